#!/usr/bin/env python3
"""
Container entrypoint: run the release step, then hand the process over to
gunicorn.

Chat replies are streamed for as long as the model keeps talking, so workers
are threaded and the worker timeout is kept above LLM_TIMEOUT_SECONDS.

Usage:
    python scripts/start.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PORT = 8080
DEFAULT_WORKERS = 2
THREADS_PER_WORKER = 4
# Slack on top of the upstream model timeout before gunicorn kills a worker.
TIMEOUT_HEADROOM_SECONDS = 60


def parse_port(raw: str | None) -> int:
    raw = (raw or "").strip()
    if not raw:
        return DEFAULT_PORT
    port = int(raw)  # ValueError for junk
    if not 1 <= port <= 65535:
        raise ValueError(f"PORT out of range: {port}")
    return port


def gunicorn_argv(*, port: int, workers: int, llm_timeout: int) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", str(workers),
        "--threads", str(THREADS_PER_WORKER),
        "--timeout", str(llm_timeout + TIMEOUT_HEADROOM_SECONDS),
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def _int_env(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    return int(raw) if raw.isdigit() else default


def main() -> None:
    try:
        port = parse_port(os.environ.get("PORT"))
    except ValueError as e:
        print(f"Invalid PORT: {e}", flush=True)
        sys.exit(1)

    from scripts.release import run_release

    try:
        run_release()
    except Exception as e:
        print(f"Release failed, not starting the web server: {e}", flush=True)
        sys.exit(1)

    argv = gunicorn_argv(
        port=port,
        workers=_int_env("WEB_CONCURRENCY", DEFAULT_WORKERS),
        llm_timeout=_int_env("LLM_TIMEOUT_SECONDS", 60),
    )
    print("Starting: " + " ".join(argv), flush=True)
    # gunicorn takes over this PID so it receives the platform's signals
    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()
