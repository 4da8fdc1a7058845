"""Tests for report normalization: paths, vocabularies, caps and SARIF detection."""

import unittest

from app.services.normalize import (
    MAX_FINDINGS,
    MAX_MESSAGE_LENGTH,
    coerce_line_number,
    normalize_category,
    normalize_finding,
    normalize_findings,
    normalize_path,
    normalize_report,
    normalize_severity,
    truncate,
)


class TestNormalizePath(unittest.TestCase):
    def test_strips_ci_workspace_prefix(self) -> None:
        self.assertEqual(
            normalize_path("/home/runner/work/repo/repo/src/app.py"), "src/app.py"
        )
        self.assertEqual(normalize_path("/github/workspace/src/app.py"), "src/app.py")
        self.assertEqual(normalize_path("/__w/repo/repo/src/app.py"), "src/app.py")

    def test_windows_and_file_uri(self) -> None:
        self.assertEqual(normalize_path("C:\\work\\src\\app.py"), "work/src/app.py")
        self.assertEqual(normalize_path("file:///src/app.py"), "src/app.py")

    def test_percent_decoding(self) -> None:
        self.assertEqual(normalize_path("src/my%20file.py"), "src/my file.py")

    def test_idempotent(self) -> None:
        samples = [
            "/home/runner/work/a/a/src/x.py",
            "file:///C:/x/y.py",
            "src%2Fnested%252Fdouble.py",
            "  ./relative.py  ",
            "\\\\server\\share\\z.py",
            "",
        ]
        for raw in samples:
            once = normalize_path(raw)
            self.assertEqual(normalize_path(once), once, raw)

    def test_deeply_nested_percent_encoding_reaches_fixed_point(self) -> None:
        raw = "x%" + "25" * 10 + "41.py"
        self.assertEqual(normalize_path(raw), "xA.py")
        self.assertEqual(normalize_path(normalize_path(raw)), "xA.py")

    def test_none_is_empty(self) -> None:
        self.assertEqual(normalize_path(None), "")


class TestVocabularies(unittest.TestCase):
    def test_severity(self) -> None:
        self.assertEqual(normalize_severity("high"), "HIGH")
        self.assertEqual(normalize_severity(" critical "), "CRITICAL")
        self.assertEqual(normalize_severity("warning"), "MEDIUM")
        self.assertEqual(normalize_severity("bogus"), "MEDIUM")
        self.assertEqual(normalize_severity(None), "MEDIUM")

    def test_category(self) -> None:
        self.assertEqual(normalize_category("security"), "SECURITY")
        self.assertEqual(normalize_category("secrets"), "SECRET")
        self.assertEqual(normalize_category("dead-code"), "DEAD_CODE")
        self.assertEqual(normalize_category("style"), "QUALITY")


class TestScalars(unittest.TestCase):
    def test_line_number(self) -> None:
        self.assertEqual(coerce_line_number(12), 12)
        self.assertEqual(coerce_line_number("7"), 7)
        self.assertEqual(coerce_line_number(3.9), 3)
        self.assertEqual(coerce_line_number(-4), 0)
        self.assertEqual(coerce_line_number("abc"), 0)
        self.assertEqual(coerce_line_number(True), 0)
        self.assertEqual(coerce_line_number(float("nan")), 0)

    def test_line_number_beyond_integer_column_is_zero(self) -> None:
        self.assertEqual(coerce_line_number(2**31 - 1), 2**31 - 1)
        self.assertEqual(coerce_line_number(2**31), 0)
        self.assertEqual(coerce_line_number(1e12), 0)
        self.assertEqual(coerce_line_number("1e12"), 0)

    def test_truncate(self) -> None:
        self.assertIsNone(truncate("", 5))
        self.assertEqual(truncate("abc", 5), "abc")
        self.assertEqual(truncate("abcdefgh", 5), "abcde...")


class TestNormalizeFinding(unittest.TestCase):
    def test_required_fields_always_present(self) -> None:
        f = normalize_finding({})
        self.assertEqual(f.rule_id, "UNKNOWN")
        self.assertEqual(f.file_path, "")
        self.assertEqual(f.line_number, 0)
        self.assertEqual(f.severity, "MEDIUM")
        self.assertEqual(f.category, "QUALITY")

    def test_alternate_keys_and_caps(self) -> None:
        f = normalize_finding(
            {
                "rule_id": "R" * 150,
                "file": "/github/workspace/a.py",
                "line": "9",
                "message": "m" * (MAX_MESSAGE_LENGTH + 10),
            }
        )
        self.assertEqual(len(f.rule_id), 100)
        self.assertEqual(f.file_path, "a.py")
        self.assertEqual(f.line_number, 9)
        self.assertTrue(f.message.endswith("..."))
        self.assertEqual(len(f.message), MAX_MESSAGE_LENGTH + 3)


class TestNormalizeFindings(unittest.TestCase):
    def test_caps_list_and_reports_original_length(self) -> None:
        items = [{"rule_id": "X", "file_path": "a.py", "line_number": i} for i in range(MAX_FINDINGS + 5)]
        findings, truncated_from = normalize_findings(items)
        self.assertEqual(len(findings), MAX_FINDINGS)
        self.assertEqual(truncated_from, MAX_FINDINGS + 5)

    def test_non_list_and_non_object_items_are_ignored(self) -> None:
        self.assertEqual(normalize_findings({"a": 1}), ([], None))
        findings, truncated_from = normalize_findings([1, "x", {"rule_id": "A"}])
        self.assertEqual([f.rule_id for f in findings], ["A"])
        self.assertIsNone(truncated_from)


class TestNormalizeReport(unittest.TestCase):
    def test_native_defaults(self) -> None:
        report = normalize_report({"findings": [{"rule_id": "SKY-D211"}]})
        self.assertEqual(report.tool, "skylos")
        self.assertEqual(report.commit_hash, "local")
        self.assertEqual(report.branch, "main")
        self.assertEqual(report.actor, "unknown")
        self.assertEqual(len(report.findings), 1)

    def test_sarif_detected_by_shape(self) -> None:
        body = {
            "runs": [
                {
                    "tool": {"driver": {"name": "Semgrep"}},
                    "results": [
                        {
                            "ruleId": "sql-injection",
                            "level": "error",
                            "message": {"text": "SQL built from input"},
                            "locations": [
                                {
                                    "physicalLocation": {
                                        "artifactLocation": {"uri": "file:///src/db.py"},
                                        "region": {"startLine": 42},
                                    }
                                }
                            ],
                        }
                    ],
                }
            ],
            "branch": "feature/x",
        }
        report = normalize_report(body)
        self.assertEqual(report.tool, "sarif")
        self.assertEqual(report.actor, "sarif")
        self.assertEqual(report.branch, "feature/x")
        f = report.findings[0]
        self.assertEqual(f.rule_id, "Semgrep:sql-injection")
        self.assertEqual(f.file_path, "src/db.py")
        self.assertEqual(f.line_number, 42)
        self.assertEqual(f.severity, "HIGH")
        self.assertEqual(f.category, "SECURITY")


if __name__ == "__main__":
    unittest.main()
