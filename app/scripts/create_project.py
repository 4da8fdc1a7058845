"""
Create a project and print its API key (no dashboard UI). Run from project root:
  python -m app.scripts.create_project ORG_NAME PROJECT_NAME [--plan pro] [--repo-url URL]
Example:
  python -m app.scripts.create_project acme web --plan pro --repo-url https://github.com/acme/web
The organization is created when no organization with that name exists.
"""
import argparse
import secrets
import sys

from app.core.database import SessionLocal
from app.models import Organization, Project
from app.services.capabilities import PLAN_CAPABILITIES

API_KEY_PREFIX = "sg_"


def generate_api_key() -> str:
    return API_KEY_PREFIX + secrets.token_urlsafe(32)


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a Scangate project and API key.")
    parser.add_argument("org", help="Organization name (1-255 chars)")
    parser.add_argument("name", help="Project name (1-255 chars)")
    parser.add_argument("--plan", default="free", choices=sorted(PLAN_CAPABILITIES))
    parser.add_argument("--repo-url", default=None, help="GitHub repository URL")
    parser.add_argument("--default-branch", default="main")
    parser.add_argument("--strict", action="store_true", help="Reject --force uploads")
    args = parser.parse_args()

    org_name = args.org.strip()
    name = args.name.strip()
    if not org_name or len(org_name) > 255 or not name or len(name) > 255:
        print("Invalid organization or project name length.", file=sys.stderr)
        return 1
    if SessionLocal is None:
        print("DATABASE_URL is not set.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        org = db.query(Organization).filter(Organization.name == org_name).first()
        if org is None:
            org = Organization(name=org_name, plan=args.plan)
            db.add(org)
            db.flush()
        project = Project(
            org_id=org.id,
            name=name,
            repo_url=args.repo_url,
            default_branch=args.default_branch.strip() or "main",
            api_key=generate_api_key(),
            strict_mode=args.strict,
        )
        db.add(project)
        db.commit()
        print(f"Created project '{name}' (id={project.id}) in '{org_name}' on plan '{org.plan}'.")
        print(f"API key: {project.api_key}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
