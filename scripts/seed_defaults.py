"""Seed the permission catalog, default system modules and an initial administrator.

Usage:
  python scripts/seed_defaults.py [--admin-email EMAIL] [--admin-password PASSWORD]

The administrator defaults come from ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME.
Running it again only adds what is missing.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from contextlib import suppress
from typing import Dict, Optional

from dotenv import load_dotenv

from bizhub.db import database, models, schemas
from bizhub.db.repositories import rbac as rbac_repo
from bizhub.db.repositories import settings as settings_repo
from bizhub.db.repositories import users as user_repo
from bizhub.utils import permission_catalog

logger = logging.getLogger("bizhub.scripts.seed_defaults")

ADMIN_PROFILE_NAME = "Administrator"

SessionLocal = lambda: database.open_session()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed default permissions, modules and the first administrator")
    parser.add_argument("--admin-email", default=os.getenv("ADMIN_EMAIL"), help="Administrator login (default: ADMIN_EMAIL)")
    parser.add_argument("--admin-password", default=os.getenv("ADMIN_PASSWORD"), help="Administrator password (default: ADMIN_PASSWORD)")
    parser.add_argument("--admin-name", default=os.getenv("ADMIN_NAME", "Administrator"), help="Administrator display name")
    return parser.parse_args(argv)


def _admin_profile(session) -> models.Profile:
    profile = session.query(models.Profile).filter(models.Profile.name == ADMIN_PROFILE_NAME).first()
    if profile is not None:
        return profile
    admin_permission = (
        session.query(models.Permission)
        .filter(models.Permission.name == permission_catalog.PERMISSION_ADMIN)
        .first()
    )
    return rbac_repo.create_profile(session, schemas.ProfileCreate(
        name=ADMIN_PROFILE_NAME,
        description="Full access",
        permission_ids=[admin_permission.id] if admin_permission is not None else [],
    ))


def seed(session, *, admin_email: Optional[str], admin_password: Optional[str], admin_name: str = "Administrator") -> Dict[str, int]:
    summary = {"permissions": 0, "modules": 0, "admin_created": 0}
    summary["permissions"] = rbac_repo.seed_permission_catalog(session)
    summary["modules"] = settings_repo.seed_modules(session)
    if not admin_email or not admin_password:
        logger.info("No administrator credentials supplied; skipping admin user")
        return summary
    if user_repo.get_user_by_email(session, admin_email.strip().lower()):
        return summary

    profile = _admin_profile(session)
    collaborator = (
        session.query(models.Collaborator)
        .filter(models.Collaborator.email == admin_email.strip().lower())
        .first()
    )
    if collaborator is None:
        collaborator = rbac_repo.create_collaborator(session, schemas.CollaboratorCreate(
            name=admin_name,
            email=admin_email,
            position="Administrator",
            profile_id=profile.id,
        ))
    user_repo.create_user(session, schemas.UserCreate(
        email=admin_email,
        name=admin_name,
        password=admin_password,
        collaborator_id=collaborator.id,
    ))
    summary["admin_created"] = 1
    return summary


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)
    session = SessionLocal()
    try:
        summary = seed(
            session,
            admin_email=args.admin_email,
            admin_password=args.admin_password,
            admin_name=args.admin_name,
        )
    finally:
        with suppress(Exception):
            session.close()
    print(
        f"Seeded {summary['permissions']} permissions and {summary['modules']} modules; "
        f"administrator {'created' if summary['admin_created'] else 'unchanged'}."
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - manual execution path
    sys.exit(main())
