"""Initial tables for scan ingestion: organizations, projects, scans, issue groups, findings, suppressions.

Revision ID: 20260301000000
Revises:
Create Date: 2026-03-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20260301000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("plan", sa.String(length=32), nullable=False, server_default="free"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("org_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("repo_url", sa.String(length=1024), nullable=True),
        sa.Column("default_branch", sa.String(length=255), nullable=False, server_default="main"),
        sa.Column("api_key", sa.String(length=255), nullable=False),
        sa.Column("strict_mode", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("policy_config", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("github_installation_id", sa.BigInteger(), nullable=True),
        sa.Column("slack_webhook_url", sa.String(length=1024), nullable=True),
        sa.Column(
            "slack_notifications_enabled", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column("slack_notify_on", sa.String(length=32), nullable=False, server_default="failure"),
        sa.Column("discord_webhook_url", sa.String(length=1024), nullable=True),
        sa.Column(
            "discord_notifications_enabled", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "discord_notify_on", sa.String(length=32), nullable=False, server_default="failure"
        ),
        _created_at(),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_projects_org_id"), "projects", ["org_id"], unique=False)
    op.create_index(op.f("ix_projects_api_key"), "projects", ["api_key"], unique=True)

    op.create_table(
        "scans",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("commit_hash", sa.String(length=255), nullable=False, server_default="local"),
        sa.Column("branch", sa.String(length=255), nullable=False, server_default="main"),
        sa.Column("actor", sa.String(length=255), nullable=False, server_default="unknown"),
        sa.Column("tool", sa.String(length=32), nullable=False, server_default="skylos"),
        sa.Column("diff_context", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("stats", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("quality_gate_passed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_overridden", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("override_reason", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_scans_project_id"), "scans", ["project_id"], unique=False)
    op.create_index(op.f("ix_scans_branch"), "scans", ["branch"], unique=False)
    op.create_index(op.f("ix_scans_created_at"), "scans", ["created_at"], unique=False)

    op.create_table(
        "issue_groups",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("org_id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("fingerprint", sa.String(length=64), nullable=False),
        sa.Column("rule_id", sa.String(length=100), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=False),
        sa.Column("canonical_file", sa.String(length=1024), nullable=False, server_default=""),
        sa.Column("canonical_line", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("canonical_snippet", sa.Text(), nullable=True),
        sa.Column("occurrence_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "affected_files",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="open"),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("first_seen_scan_id", sa.Integer(), nullable=True),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_seen_scan_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "org_id", "project_id", "fingerprint", name="uq_issue_groups_org_project_fingerprint"
        ),
    )
    op.create_index(op.f("ix_issue_groups_org_id"), "issue_groups", ["org_id"], unique=False)
    op.create_index(
        op.f("ix_issue_groups_project_id"), "issue_groups", ["project_id"], unique=False
    )
    op.create_index(op.f("ix_issue_groups_status"), "issue_groups", ["status"], unique=False)
    op.create_index(
        op.f("ix_issue_groups_last_seen_at"), "issue_groups", ["last_seen_at"], unique=False
    )
    op.create_index(
        op.f("ix_issue_groups_last_seen_scan_id"),
        "issue_groups",
        ["last_seen_scan_id"],
        unique=False,
    )

    op.create_table(
        "findings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("scan_id", sa.Integer(), nullable=False),
        sa.Column("rule_id", sa.String(length=100), nullable=False),
        sa.Column("tool_rule_id", sa.String(length=100), nullable=True),
        sa.Column("file_path", sa.String(length=1024), nullable=False, server_default=""),
        sa.Column("line_number", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("snippet", sa.Text(), nullable=True),
        sa.Column("severity", sa.String(length=16), nullable=False, server_default="MEDIUM"),
        sa.Column("category", sa.String(length=32), nullable=False, server_default="QUALITY"),
        sa.Column("is_new", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("new_reason", sa.String(length=32), nullable=True),
        sa.Column("is_suppressed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["scan_id"], ["scans.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["group_id"], ["issue_groups.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_findings_scan_id"), "findings", ["scan_id"], unique=False)
    op.create_index(op.f("ix_findings_rule_id"), "findings", ["rule_id"], unique=False)
    op.create_index(op.f("ix_findings_group_id"), "findings", ["group_id"], unique=False)

    op.create_table(
        "suppressions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("rule_id", sa.String(length=100), nullable=False),
        sa.Column("file_path", sa.String(length=1024), nullable=False, server_default=""),
        sa.Column("line_number", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_suppressions_project_id"), "suppressions", ["project_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_suppressions_project_id"), table_name="suppressions")
    op.drop_table("suppressions")
    op.drop_index(op.f("ix_findings_group_id"), table_name="findings")
    op.drop_index(op.f("ix_findings_rule_id"), table_name="findings")
    op.drop_index(op.f("ix_findings_scan_id"), table_name="findings")
    op.drop_table("findings")
    op.drop_index(op.f("ix_issue_groups_last_seen_scan_id"), table_name="issue_groups")
    op.drop_index(op.f("ix_issue_groups_last_seen_at"), table_name="issue_groups")
    op.drop_index(op.f("ix_issue_groups_status"), table_name="issue_groups")
    op.drop_index(op.f("ix_issue_groups_project_id"), table_name="issue_groups")
    op.drop_index(op.f("ix_issue_groups_org_id"), table_name="issue_groups")
    op.drop_table("issue_groups")
    op.drop_index(op.f("ix_scans_created_at"), table_name="scans")
    op.drop_index(op.f("ix_scans_branch"), table_name="scans")
    op.drop_index(op.f("ix_scans_project_id"), table_name="scans")
    op.drop_table("scans")
    op.drop_index(op.f("ix_projects_api_key"), table_name="projects")
    op.drop_index(op.f("ix_projects_org_id"), table_name="projects")
    op.drop_table("projects")
    op.drop_table("organizations")
