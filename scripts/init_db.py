"""
Seed (or promote) the bootstrap admin account.

ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME come from the environment. An existing
account keeps its password; it is only promoted to admin if needed.
"""
import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.campus.audit import record_event  # noqa: E402
from app.campus.models import Role, User  # noqa: E402
from scripts._db_utils import script_session  # noqa: E402

DEFAULT_ADMIN_EMAIL = "admin@campus.local"


def seed_only(*, database_url: str | None = None) -> None:
    email = (os.environ.get("ADMIN_EMAIL") or DEFAULT_ADMIN_EMAIL).strip().lower()
    name = (os.environ.get("ADMIN_NAME") or "Administrator").strip()
    password = os.environ.get("ADMIN_PASSWORD") or ""
    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///campus.db").strip()

    with script_session(db_url) as s:
        user = s.query(User).filter(User.email == email).one_or_none()
        if user is None:
            if not password:
                env = (os.environ.get("ENV") or "").strip().lower()
                if env in ("prod", "production"):
                    raise RuntimeError("ADMIN_PASSWORD is required to create the admin account in production.")
                password = "change-me"
            user = User(name=name, email=email, password_hash=generate_password_hash(password), role=Role.ADMIN)
            s.add(user)
            s.flush()
            record_event(s, actor=None, action="admin.seed", entity_type="User", entity_id=str(user.id))
            print(f"Created admin {email}")
        elif user.role != Role.ADMIN:
            user.role = Role.ADMIN
            record_event(s, actor=None, action="admin.promote", entity_type="User", entity_id=str(user.id))
            print(f"Promoted {email} to admin")
        else:
            print(f"Admin {email} already present")


if __name__ == "__main__":
    seed_only()
