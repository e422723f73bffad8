#!/usr/bin/env python3
"""
Container entrypoint: release phase, then gunicorn.

    python scripts/start.py                 # migrate + seed admin, then serve
    python scripts/start.py --skip-release  # serve only (extra web replicas)

Environment: PORT (default 8080), WEB_CONCURRENCY (default 2), GUNICORN_TIMEOUT (default 60).
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

WSGI_TARGET = "app.wsgi:app"


def _positive_int_env(name: str, default: int, *, upper: int | None = None) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise SystemExit(f"ERROR: {name} must be an integer, got {raw!r}") from e
    if value < 1 or (upper is not None and value > upper):
        raise SystemExit(f"ERROR: {name} out of range: {value}")
    return value


def gunicorn_argv(port: int, workers: int, timeout: int) -> list[str]:
    return [
        "gunicorn",
        WSGI_TARGET,
        "--bind", f"0.0.0.0:{port}",
        "--workers", str(workers),
        "--timeout", str(timeout),
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run the release phase and start gunicorn.")
    parser.add_argument("--skip-release", action="store_true", help="do not run migrations / admin seed")
    args = parser.parse_args(argv)

    port = _positive_int_env("PORT", 8080, upper=65535)
    workers = _positive_int_env("WEB_CONCURRENCY", 2)
    timeout = _positive_int_env("GUNICORN_TIMEOUT", 60)

    if not args.skip_release:
        from scripts.release import run_release

        try:
            run_release()
        except Exception as e:
            print(f"Release failed: {e}", flush=True)
            sys.exit(1)

    cmd = gunicorn_argv(port, workers, timeout)
    print(f"=== Starting gunicorn on 0.0.0.0:{port} (workers={workers}) ===", flush=True)
    # exec so gunicorn becomes PID 1 and receives signals directly
    os.execvp(cmd[0], cmd)


if __name__ == "__main__":
    main()
