"""End-to-end tests for POST /report and GET /issue-groups with FastAPI TestClient and SQLite."""

import unittest
from datetime import timedelta
from unittest.mock import patch

from fastapi.testclient import TestClient

from app.core.config import Settings, get_settings
from app.core.database import get_db, get_optional_db
from app.main import app
from app.models import Finding, IssueGroup, Project, Scan, Suppression
from app.services.normalize import MAX_BODY_BYTES
from tests.support import T0, add_project, add_scan, make_session_factory, minutes

API_KEY = "sg_test_key"
AUTH = {"Authorization": f"Bearer {API_KEY}"}


def _finding(rule_id: str = "SKY-D211", file_path: str = "app/db.py", line: int = 10, **kwargs) -> dict:
    body = {
        "rule_id": rule_id,
        "file_path": file_path,
        "line_number": line,
        "severity": "HIGH",
        "category": "SECURITY",
        "message": "Possible SQL injection",
    }
    body.update(kwargs)
    return body


class ReportApiTestCase(unittest.TestCase):
    plan = "free"
    project_fields: dict = {}
    app_env = "dev"

    def setUp(self) -> None:
        self.Session = make_session_factory()
        with self.Session() as db:
            self.project_id = add_project(
                db, plan=self.plan, api_key=API_KEY, **self.project_fields
            ).id

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        self.settings = Settings(
            _env_file=None,
            APP_ENV=self.app_env,
            DATABASE_URL=None,
            GITHUB_TOKEN=None,
            GITHUB_APP_ID=None,
            GITHUB_APP_PRIVATE_KEY=None,
        )
        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_settings] = lambda: self.settings
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def post_report(self, body: dict, headers: dict | None = None, path: str = "/report"):
        return self.client.post(path, json=body, headers=AUTH if headers is None else headers)


class TestFirstAndSecondScan(ReportApiTestCase):
    def test_first_scan_establishes_baseline_and_passes(self) -> None:
        resp = self.post_report(
            {"findings": [_finding()], "commit_hash": "abc123", "branch": "main", "actor": "ci"}
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        data = resp.json()
        self.assertTrue(data["success"])
        self.assertEqual(data["scanId"], data["scan_id"])
        self.assertEqual(
            data["quality_gate"],
            {
                "passed": True,
                "new_violations": 0,
                "suppressed_new_violations": 0,
                "message": "Quality Gate Passed.",
            },
        )
        self.assertEqual(data["explain"]["detection_mode"], "first-scan")
        self.assertEqual(
            data["explain"]["baseline"], {"scan_id": None, "branch": None, "source": "none"}
        )
        self.assertEqual(data["plan"], "free")
        self.assertFalse(data["capabilities"]["pr_diff"])
        self.assertIn("upgrade_hint", data)
        self.assertEqual(data["upgrade_url"], "/dashboard/settings?upgrade=true")

        with self.Session() as db:
            row = db.query(Finding).one()
            self.assertFalse(row.is_new)
            self.assertEqual(row.new_reason, "first-scan-baseline")
            self.assertIsNotNone(row.group_id)
            scan = db.query(Scan).one()
            self.assertEqual(scan.commit_hash, "abc123")
            self.assertEqual(scan.stats["total_findings"], 1)
            self.assertTrue(scan.quality_gate_passed)

    def test_second_scan_flags_finding_not_in_baseline(self) -> None:
        first = self.post_report({"findings": [_finding()]}).json()
        resp = self.post_report(
            {"findings": [_finding(line=12), _finding(rule_id="SKY-Q301", category="QUALITY")]}
        )
        data = resp.json()
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(data["success"])
        self.assertEqual(data["quality_gate"]["new_violations"], 1)
        self.assertEqual(
            data["quality_gate"]["message"], "Quality Gate Failed! 1 new violations introduced."
        )
        self.assertEqual(data["explain"]["detection_mode"], "baseline")
        self.assertEqual(data["explain"]["baseline"]["scan_id"], first["scan_id"])
        self.assertEqual(data["explain"]["baseline"]["source"], "same-branch")

        groups = self.client.get("/issue-groups", headers=AUTH).json()["groups"]
        self.assertEqual(len(groups), 3)
        self.assertEqual(groups[0]["last_seen_scan_id"], data["scan_id"])

    def test_v1_prefix_and_sarif_on_free_plan(self) -> None:
        sarif = {
            "runs": [
                {
                    "tool": {"driver": {"name": "CodeQL"}},
                    "results": [{"ruleId": "py/sql-injection", "level": "error"}],
                }
            ]
        }
        resp = self.post_report(sarif, path="/api/v1/report")
        self.assertEqual(resp.status_code, 200, resp.text)
        with self.Session() as db:
            scan = db.query(Scan).one()
            self.assertEqual(scan.tool, "sarif")
            self.assertEqual(scan.actor, "sarif")
            self.assertEqual(db.query(Finding).one().rule_id, "CodeQL:py/sql-injection")


class TestRejections(ReportApiTestCase):
    def test_missing_token(self) -> None:
        resp = self.post_report({"findings": []}, headers={})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["code"], "NO_TOKEN")

    def test_non_bearer_token(self) -> None:
        resp = self.post_report({"findings": []}, headers={"Authorization": f"Token {API_KEY}"})
        self.assertEqual(resp.status_code, 401)

    def test_unknown_token(self) -> None:
        resp = self.post_report({"findings": []}, headers={"Authorization": "Bearer nope"})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["code"], "INVALID_TOKEN")

    def test_oversized_body_rejected_before_auth(self) -> None:
        resp = self.client.post(
            "/report",
            content=b"x" * (MAX_BODY_BYTES + 1),
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(resp.status_code, 413)
        self.assertEqual(resp.json()["error"], "Payload too large. Max 5MB allowed.")

    def test_invalid_json(self) -> None:
        resp = self.client.post(
            "/report", content=b"{not json", headers={**AUTH, "Content-Type": "application/json"}
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "INVALID_BODY")
        resp = self.client.post("/report", json=[1, 2], headers=AUTH)
        self.assertEqual(resp.status_code, 400)

    def test_store_not_configured(self) -> None:
        app.dependency_overrides.pop(get_db)
        with patch("app.core.database.SessionLocal", None), patch(
            "app.core.database.settings", self.settings
        ):
            resp = self.post_report({"findings": []})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(
            resp.json(), {"error": "Server misconfigured", "missing": {"DATABASE_URL": True}}
        )

    def test_pipeline_failure_returns_500_with_details_in_dev(self) -> None:
        with patch("app.api.v1.report.ingest_report", side_effect=RuntimeError("boom")):
            with self.assertLogs("app.api.v1.report", level="ERROR"):
                resp = self.post_report({"findings": []})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(
            resp.json(), {"error": "Server error processing report", "details": "boom"}
        )


class TestProdRedactsDetails(ReportApiTestCase):
    app_env = "prod"

    def test_no_details_in_prod(self) -> None:
        with patch("app.api.v1.report.ingest_report", side_effect=RuntimeError("secret")):
            with self.assertLogs("app.api.v1.report", level="ERROR"):
                resp = self.post_report({"findings": []})
        self.assertEqual(resp.json(), {"error": "Server error processing report"})


class TestRetentionOnIngest(ReportApiTestCase):
    def test_free_plan_drops_oldest_scan_when_over_cap(self) -> None:
        with self.Session() as db:
            project = db.get(Project, self.project_id)
            seeded = [
                add_scan(
                    db, project, created_at=T0 + minutes(i), findings=[("SKY-Q301", "a.py", i + 1)]
                ).id
                for i in range(10)
            ]

        resp = self.post_report({"findings": [_finding()]})
        self.assertEqual(resp.status_code, 200, resp.text)
        new_scan_id = resp.json()["scan_id"]

        with self.Session() as db:
            remaining = [row[0] for row in db.query(Scan.id).order_by(Scan.id)]
            self.assertEqual(remaining, seeded[1:] + [new_scan_id])
            self.assertEqual(db.query(Finding).filter(Finding.scan_id == seeded[0]).count(), 0)
            self.assertEqual(db.query(Finding).filter(Finding.scan_id == new_scan_id).count(), 1)


class TestStrictMode(ReportApiTestCase):
    project_fields = {"strict_mode": True}

    def test_forced_upload_rejected_without_persisting(self) -> None:
        resp = self.post_report({"findings": [_finding()], "is_forced": True})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(
            resp.json(),
            {
                "success": False,
                "error": "STRICT MODE ENABLED. The '--force' flag is disabled by your administrator.",
                "code": "STRICT_MODE",
            },
        )
        with self.Session() as db:
            self.assertEqual(db.query(Scan).count(), 0)

    def test_truthy_forced_flag_is_rejected(self) -> None:
        for forced in (1, "true"):
            resp = self.post_report({"findings": [], "is_forced": forced})
            self.assertEqual(resp.status_code, 403, forced)
            self.assertEqual(resp.json()["code"], "STRICT_MODE")
        with self.Session() as db:
            self.assertEqual(db.query(Scan).count(), 0)

    def test_unforced_upload_accepted(self) -> None:
        resp = self.post_report({"findings": []})
        self.assertEqual(resp.status_code, 200)
        explain = resp.json()["explain"]
        self.assertTrue(explain["strict_mode"])
        self.assertTrue(explain["force_disabled_when_strict"])


class TestProPlanSuppressions(ReportApiTestCase):
    plan = "pro"

    def test_suppressed_new_finding_does_not_fail_gate(self) -> None:
        self.post_report({"findings": [_finding()]})
        with self.Session() as db:
            db.add(
                Suppression(
                    project_id=self.project_id,
                    rule_id="SKY-Q301",
                    file_path="app/util.py",
                    line_number=5,
                )
            )
            db.commit()
        resp = self.post_report(
            {
                "findings": [
                    _finding(),
                    _finding("SKY-Q301", "/github/workspace/app/util.py", 5, category="QUALITY"),
                ]
            }
        )
        data = resp.json()
        self.assertTrue(data["success"])
        self.assertEqual(data["quality_gate"]["new_violations"], 0)
        self.assertEqual(data["quality_gate"]["suppressed_new_violations"], 1)
        self.assertTrue(data["explain"]["suppressions_enabled"])
        self.assertNotIn("upgrade_hint", data)

    def test_commit_override_is_inherited(self) -> None:
        self.post_report({"findings": [_finding()], "commit_hash": "deadbeef"})
        with self.Session() as db:
            scan = db.query(Scan).one()
            scan.is_overridden = True
            scan.override_reason = "Approved by security"
            db.commit()
        resp = self.post_report(
            {
                "findings": [_finding(severity="CRITICAL"), _finding("SKY-NEW", "x.py", 1)],
                "commit_hash": "deadbeef",
            }
        )
        self.assertTrue(resp.json()["quality_gate"]["passed"])
        with self.Session() as db:
            latest = db.query(Scan).order_by(Scan.id.desc()).first()
            self.assertTrue(latest.is_overridden)
            self.assertEqual(latest.override_reason, "Inherited override")


class TestIssueGroupsEndpoint(ReportApiTestCase):
    def test_requires_token_and_validates_limit(self) -> None:
        self.assertEqual(self.client.get("/issue-groups").status_code, 401)
        self.assertEqual(
            self.client.get("/issue-groups", params={"limit": 0}, headers=AUTH).status_code, 422
        )

    def test_filters_by_status(self) -> None:
        self.post_report({"findings": [_finding(), _finding(line=99)]})
        with self.Session() as db:
            group = db.query(IssueGroup).filter(IssueGroup.canonical_line == 99).one()
            group.status = "resolved"
            db.commit()
        open_groups = self.client.get("/api/v1/issue-groups", headers=AUTH).json()["groups"]
        self.assertEqual([g["canonical_line"] for g in open_groups], [10])
        resolved = self.client.get(
            "/issue-groups", params={"status": "resolved", "limit": 1}, headers=AUTH
        ).json()["groups"]
        self.assertEqual(len(resolved), 1)


class TestHealth(unittest.TestCase):
    def test_not_configured(self) -> None:
        def no_db():
            yield None

        app.dependency_overrides[get_optional_db] = no_db
        try:
            resp = TestClient(app).get("/api/v1/health/")
        finally:
            app.dependency_overrides.clear()
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["database"], "not-configured")


if __name__ == "__main__":
    unittest.main()
