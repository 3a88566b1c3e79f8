# start_app.py
"""Create the schema if requested and launch the API server."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

import uvicorn
from dotenv import load_dotenv

import config


async def _init_db() -> None:
    from api.app import db

    db.configure()
    await db.init_schema(db.engine)
    await db.engine.dispose()


def main(argv: list[str] | None = None) -> None:
    """Load settings, optionally create tables, then start the API."""

    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create missing tables before starting",
    )
    parser.add_argument(
        "--no-serve",
        action="store_true",
        help="Exit after --init-db instead of starting the server",
    )
    args = parser.parse_args(argv)

    load_dotenv()  # load environment variables from a .env file
    config.get_settings.cache_clear()
    settings = config.get_settings()

    if args.init_db:
        asyncio.run(_init_db())
        print(f"schema ready at {settings.database_url}", file=sys.stderr)
    if args.no_serve:
        return

    uvicorn.run(
        "api.app.main:app",
        host="0.0.0.0",  # nosec B104: bind for local development
        port=int(os.getenv("PORT", "8000")),
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
