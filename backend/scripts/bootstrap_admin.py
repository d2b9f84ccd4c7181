# backend/scripts/bootstrap_admin.py
"""
Create the first admin account (and optionally a project) so invites can
be sent from the admin API.

    python scripts/bootstrap_admin.py admin@example.org 'S3cretPassw0rd' --project "Todo API"
"""

import argparse
import sys
from pathlib import Path

# --- Ensure the backend root (where `app/` lives) is on sys.path ---
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from app.core.errors import AppError  # noqa: E402
from app.db.session import SessionLocal  # noqa: E402
from app.models import User  # noqa: E402
from app.services import projects as project_service  # noqa: E402
from app.services import users as user_service  # noqa: E402
from app.services.invites import normalize_email  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the first admin account.")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--project", help="Title of an active project to create", default=None)
    args = parser.parse_args()

    db = SessionLocal()
    try:
        email = normalize_email(args.email)
        if db.get(User, email) is None:
            user_service.create_user(db, email, is_admin=True)
        user_service.set_password(db, email, args.password, is_admin=True)
        print(f"[OK] Admin account ready: {email}")

        if args.project:
            project = project_service.add_project(db, args.project)
            print(f"[OK] Created active project id={project.id} ({project.title})")
    except AppError as e:
        print(f"[FAIL] {e.code}: {e.message}")
        return 1
    finally:
        db.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
