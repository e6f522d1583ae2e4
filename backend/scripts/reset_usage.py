#!/usr/bin/env python3
"""
Free-Tier Usage Reset Script

Sets usage ledger counts back to zero at the start of a new period.
Run as a cron job or manually: python -m scripts.reset_usage

Usage:
    python -m scripts.reset_usage                    # Reset every user
    python -m scripts.reset_usage --user-id user_1   # Reset one user
"""

import asyncio
import argparse
import logging
from typing import Optional

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config.settings import Settings, get_settings
from app.infrastructure.db.database import DatabaseManager
from app.infrastructure.db.repositories.usage_repository import UsageRepository

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def reset_usage(
    user_id: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> int:
    """
    Reset free-tier usage.

    Args:
        user_id: Only reset this user; all users when None
        settings: Explicit settings (tests); defaults to the environment

    Returns:
        Number of usage records reset
    """
    db = DatabaseManager(settings or get_settings())
    try:
        async with db.session_scope() as session:
            repo = UsageRepository(session)
            if user_id:
                reset = 1 if await repo.reset(user_id) else 0
                if not reset:
                    logger.info(f"No usage record for user {user_id}")
            else:
                reset = await repo.reset_all()
    finally:
        await db.close()

    logger.info(f"Usage reset complete: {reset} record(s)")
    return reset


async def main():
    parser = argparse.ArgumentParser(description="Reset free-tier usage counts")
    parser.add_argument(
        "--user-id",
        default=None,
        help="Reset a single user instead of everyone"
    )
    args = parser.parse_args()

    reset = await reset_usage(user_id=args.user_id)
    print(f"Reset {reset} usage record(s)")


if __name__ == "__main__":
    asyncio.run(main())
