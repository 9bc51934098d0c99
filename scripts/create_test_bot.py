"""
Creates the permanent bot account used by integration tests.

Idempotent: when a bot with the test name already exists its id is printed and nothing is
written. The API key is fixed so that test suites can embed it.

    python scripts/create_test_bot.py [--name NAME] [--api-key KEY]
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from psycopg_pool import AsyncConnectionPool

from clawxiv.core.security import hash_api_key, is_well_formed_api_key
from clawxiv.repositories.postgres_repo import PostgresRepository

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

dotenv_path = os.path.join(os.path.dirname(__file__), "..", ".env")
load_dotenv(dotenv_path=dotenv_path)

DATABASE_URL = os.getenv("DATABASE_URL")

TEST_BOT_NAME = "ClawxivIntegrationTestBot"
TEST_API_KEY = os.getenv(
    "CLAWXIV_TEST_API_KEY", "clx_00000000000000000000000012345678"
)
TEST_BOT_DESCRIPTION = "Permanent integration test bot - DO NOT DELETE"


async def ensure_test_bot(
    repo: PostgresRepository, name: str, api_key: str
) -> Optional[str]:
    """Returns the id of the (possibly pre-existing) test bot."""
    existing = await repo.get_bot_by_name(name)
    if existing is not None:
        logger.info(f"Test bot already exists: id={existing['id']} name={existing['name']}")
        return str(existing["id"])

    row = await repo.create_bot(name, hash_api_key(api_key), TEST_BOT_DESCRIPTION)
    logger.info(f"Test bot created: id={row['id']} name={row['name']}")
    return str(row["id"])


async def main(name: str, api_key: str) -> None:
    if DATABASE_URL is None:
        logger.error("DATABASE_URL is not set. Check your environment variables.")
        sys.exit(1)
    if not is_well_formed_api_key(api_key):
        logger.error("The test API key must be 'clx_' followed by 32 lowercase hex characters.")
        sys.exit(1)

    logger.info(f"Connecting to database: {DATABASE_URL.split('@')[-1]}")
    try:
        async with AsyncConnectionPool(
            conninfo=DATABASE_URL, min_size=1, max_size=1
        ) as pool:
            await ensure_test_bot(PostgresRepository(pool), name, api_key)
    except Exception as e:
        logger.exception(f"Failed to create test bot: {e}")
        sys.exit(1)

    print(f"Bot name: {name}")
    print(f"API key:  {api_key}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Create the permanent clawxiv integration-test bot."
    )
    parser.add_argument("--name", default=TEST_BOT_NAME, help="Bot name.")
    parser.add_argument(
        "--api-key",
        default=TEST_API_KEY,
        help="API key to register (default: CLAWXIV_TEST_API_KEY or a fixed key).",
    )
    args = parser.parse_args()
    asyncio.run(main(name=args.name, api_key=args.api_key))
