"""Tests for the quality gate: rule precedence, threshold modes and policy parsing."""

import unittest

from app.services.capabilities import get_capabilities
from app.services.quality_gate import evaluate_gate, gate_message, gate_policy_from_config
from tests.support import finding

PRO = get_capabilities("pro")
FREE = get_capabilities("free")


def _critical_security(**kwargs):
    return finding(severity="CRITICAL", category="SECURITY", **kwargs)


class TestGatePolicyFromConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        policy = gate_policy_from_config(None)
        self.assertTrue(policy.enabled)
        self.assertEqual(policy.mode, "zero-new")
        self.assertEqual(policy.by_category["SECURITY"], 0)

    def test_only_explicit_false_disables(self) -> None:
        self.assertFalse(gate_policy_from_config({"gate": {"enabled": False}}).enabled)
        self.assertTrue(gate_policy_from_config({"gate": {"enabled": 0}}).enabled)

    def test_limits_are_floored_and_unknown_mode_falls_back(self) -> None:
        policy = gate_policy_from_config(
            {"gate": {"mode": "weird", "by_severity": {"HIGH": 2.7, "LOW": "lots", "MEDIUM": -3}}}
        )
        self.assertEqual(policy.mode, "zero-new")
        self.assertEqual(policy.by_severity["HIGH"], 2)
        self.assertEqual(policy.by_severity["LOW"], 0)
        self.assertEqual(policy.by_severity["MEDIUM"], 0)


class TestEvaluateGate(unittest.TestCase):
    def test_zero_new_passes_without_new_findings(self) -> None:
        result = evaluate_gate(
            [finding(is_new=False)], gate_policy_from_config({}), is_whitelisted=False, capabilities=FREE
        )
        self.assertTrue(result.passed)
        self.assertEqual(result.reason, "zero-new")
        self.assertEqual(result.legacy_count, 1)

    def test_zero_new_fails_on_unsuppressed_new(self) -> None:
        findings = [finding(is_new=True), finding(is_new=True, is_suppressed=True)]
        result = evaluate_gate(
            findings, gate_policy_from_config({}), is_whitelisted=False, capabilities=PRO
        )
        self.assertFalse(result.passed)
        self.assertEqual(result.unsuppressed_new_count, 1)
        self.assertEqual(result.suppressed_new_count, 1)
        self.assertEqual(gate_message(result), "Quality Gate Failed! 1 new violations introduced.")

    def test_legacy_critical_security_fails(self) -> None:
        result = evaluate_gate(
            [_critical_security(is_new=False)],
            gate_policy_from_config({}),
            is_whitelisted=False,
            capabilities=FREE,
        )
        self.assertFalse(result.passed)
        self.assertEqual(result.reason, "critical-security")
        self.assertIn("critical security", gate_message(result))

    def test_suppressed_critical_security_does_not_block(self) -> None:
        result = evaluate_gate(
            [_critical_security(is_new=False, is_suppressed=True)],
            gate_policy_from_config({}),
            is_whitelisted=False,
            capabilities=PRO,
        )
        self.assertTrue(result.passed)
        self.assertEqual(result.critical_security_count, 0)

    def test_override_beats_critical_security_only_with_plan_support(self) -> None:
        findings = [_critical_security(is_new=True)]
        policy = gate_policy_from_config({})
        self.assertTrue(
            evaluate_gate(findings, policy, is_whitelisted=True, capabilities=PRO).passed
        )
        self.assertFalse(
            evaluate_gate(findings, policy, is_whitelisted=True, capabilities=FREE).passed
        )

    def test_disabled_gate_passes(self) -> None:
        result = evaluate_gate(
            [_critical_security(is_new=True)],
            gate_policy_from_config({"gate": {"enabled": False}}),
            is_whitelisted=False,
            capabilities=FREE,
        )
        self.assertTrue(result.passed)
        self.assertEqual(result.reason, "gate-disabled")
        self.assertEqual(gate_message(result), "Quality Gate Passed.")

    def test_category_thresholds(self) -> None:
        policy = gate_policy_from_config({"gate": {"mode": "category", "by_category": {"QUALITY": 2}}})
        within = [finding(category="QUALITY", is_new=True) for _ in range(2)]
        self.assertTrue(
            evaluate_gate(within, policy, is_whitelisted=False, capabilities=FREE).passed
        )
        over = within + [finding(category="QUALITY", is_new=True)]
        self.assertFalse(evaluate_gate(over, policy, is_whitelisted=False, capabilities=FREE).passed)
        # Buckets without a configured limit allow nothing.
        secret = [finding(category="SECRET", is_new=True)]
        self.assertFalse(evaluate_gate(secret, policy, is_whitelisted=False, capabilities=FREE).passed)

    def test_both_mode_requires_both(self) -> None:
        policy = gate_policy_from_config(
            {
                "gate": {
                    "mode": "both",
                    "by_category": {"QUALITY": 5},
                    "by_severity": {"MEDIUM": 0},
                }
            }
        )
        findings = [finding(category="QUALITY", severity="MEDIUM", is_new=True)]
        result = evaluate_gate(findings, policy, is_whitelisted=False, capabilities=FREE)
        self.assertFalse(result.passed)
        self.assertEqual(result.reason, "thresholds")


if __name__ == "__main__":
    unittest.main()
