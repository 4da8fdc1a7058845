"""Tests for scan retention: per-project trimming and the plan-wide backfill job."""

import unittest
from unittest.mock import MagicMock

from app.models import Finding, Organization, Project, Scan
from app.services.retention import run_retention, trim_scans
from tests.support import T0, add_project, add_scan, make_session_factory, minutes


class TestRetentionDisabled(unittest.TestCase):
    """When RETENTION_ENABLED is False, run_retention does nothing."""

    def test_returns_zero_and_does_not_query(self) -> None:
        settings = MagicMock()
        settings.RETENTION_ENABLED = False
        session = MagicMock()
        self.assertEqual(run_retention(session, settings), (0, 0))
        session.query.assert_not_called()


class TestTrimScans(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.project = add_project(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def test_keeps_newest_and_deletes_oldest_with_findings(self) -> None:
        scans = [
            add_scan(self.db, self.project, created_at=T0 + minutes(i), findings=[("R", "a.py", i)])
            for i in range(15)
        ]
        old_ids = [s.id for s in scans[:5]]
        kept_ids = [s.id for s in scans[5:]]
        deleted = trim_scans(self.db, self.project.id, 10)
        self.assertEqual(deleted, 5)

        remaining = [row[0] for row in self.db.query(Scan.id).order_by(Scan.id)]
        self.assertEqual(remaining, kept_ids)
        orphaned = (
            self.db.query(Finding)
            .filter(Finding.scan_id.in_(old_ids))
            .count()
        )
        self.assertEqual(orphaned, 0)

    def test_under_limit_is_noop(self) -> None:
        add_scan(self.db, self.project)
        self.assertEqual(trim_scans(self.db, self.project.id, 10), 0)
        self.assertEqual(self.db.query(Scan).count(), 1)


class TestRunRetention(unittest.TestCase):
    def test_trims_each_project_to_its_plan(self) -> None:
        db = make_session_factory()()
        try:
            free = add_project(db, plan="free", api_key="k-free")
            pro = add_project(db, plan="pro", api_key="k-pro")
            for i in range(12):
                add_scan(db, free, created_at=T0 + minutes(i))
                add_scan(db, pro, created_at=T0 + minutes(i))
            settings = MagicMock()
            settings.RETENTION_ENABLED = True

            self.assertEqual(run_retention(db, settings), (1, 2))
            self.assertEqual(db.query(Scan).filter(Scan.project_id == free.id).count(), 10)
            self.assertEqual(db.query(Scan).filter(Scan.project_id == pro.id).count(), 12)
            self.assertEqual(run_retention(db, settings), (0, 0))
        finally:
            db.close()

    def test_unknown_plan_gets_free_cap(self) -> None:
        db = make_session_factory()()
        try:
            org = Organization(name="legacy", plan="gold")
            db.add(org)
            db.flush()
            project = Project(org_id=org.id, name="p", api_key="k")
            db.add(project)
            db.commit()
            for i in range(11):
                add_scan(db, project, created_at=T0 + minutes(i))
            settings = MagicMock()
            settings.RETENTION_ENABLED = True
            self.assertEqual(run_retention(db, settings), (1, 1))
        finally:
            db.close()


if __name__ == "__main__":
    unittest.main()
