#!/usr/bin/env python3
"""
Create the Taskflow tables for the environment selected by ENVIRONMENT.

    python scripts/init_db.py            # create missing tables
    python scripts/init_db.py --reset    # drop everything first
"""
import argparse
import asyncio

from taskflow.config import get_settings
from taskflow.database import build_engine
from taskflow.models import Base
from taskflow.utils.logging import get_logger, setup_logging

logger = get_logger("taskflow.init_db")


async def init_database(reset: bool = False) -> None:
    config = get_settings()
    engine = build_engine(config)
    tables = ", ".join(table.name for table in Base.metadata.sorted_tables)

    try:
        async with engine.begin() as conn:
            if reset:
                logger.warning("Dropping all tables on %s", engine.url.render_as_string(hide_password=True))
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()

    logger.info("Tables ready: %s", tables)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--reset", action="store_true", help="drop all tables before creating them")
    args = parser.parse_args()

    setup_logging(get_settings().log_level)
    asyncio.run(init_database(reset=args.reset))


if __name__ == "__main__":
    main()
