"""
Release phase: upgrade the schema to head, then make sure an admin account exists.

    python scripts/release.py               # migrate + seed
    python scripts/release.py --no-seed     # migrate only

Refuses to touch a SQLite database when ENV is production.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
from dotenv import load_dotenv  # noqa: E402

from app.campus.config import load_settings  # noqa: E402


def alembic_config(db_url: str) -> Config:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


def run_release(*, seed: bool = True) -> None:
    load_dotenv()
    settings = load_settings()
    if settings.env in ("prod", "production") and settings.database_url.startswith("sqlite"):
        raise RuntimeError("Refusing to release against a sqlite DATABASE_URL in production.")

    print(f"=== release start (ENV={settings.env}) ===", flush=True)
    command.upgrade(alembic_config(settings.database_url), "head")
    print("Schema at head.", flush=True)

    if seed:
        from scripts import init_db

        init_db.seed_only(database_url=settings.database_url)
    print("=== release done ===", flush=True)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run migrations and seed the admin account.")
    parser.add_argument("--no-seed", action="store_true")
    args = parser.parse_args()
    run_release(seed=not args.no_seed)


if __name__ == "__main__":
    main()
