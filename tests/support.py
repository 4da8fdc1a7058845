"""Shared helpers for tests that need a real (in-memory SQLite) database."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Base, Finding, Organization, Project, Scan
from app.schemas.findings import NormalizedFinding

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_session_factory() -> sessionmaker:
    """One shared in-memory SQLite connection with every table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def add_project(
    db: Session,
    *,
    plan: str = "free",
    api_key: str = "sg_test_key",
    **project_fields,
) -> Project:
    org = Organization(name="acme", plan=plan)
    db.add(org)
    db.flush()
    project = Project(org_id=org.id, name="web", api_key=api_key, **project_fields)
    db.add(project)
    db.commit()
    return project


def add_scan(
    db: Session,
    project: Project,
    *,
    branch: str = "main",
    created_at: datetime = T0,
    findings: list[tuple[str, str, int]] = (),
    **scan_fields,
) -> Scan:
    """Persist a scan with (rule_id, file_path, line_number) findings."""
    scan = Scan(project_id=project.id, branch=branch, created_at=created_at, **scan_fields)
    db.add(scan)
    db.flush()
    for rule_id, file_path, line in findings:
        db.add(Finding(scan_id=scan.id, rule_id=rule_id, file_path=file_path, line_number=line))
    db.commit()
    return scan


def minutes(n: int) -> timedelta:
    return timedelta(minutes=n)


def finding(
    rule_id: str = "SKY-D211",
    file_path: str = "app/db.py",
    line_number: int = 10,
    **fields,
) -> NormalizedFinding:
    return NormalizedFinding(
        rule_id=rule_id, file_path=file_path, line_number=line_number, **fields
    )
