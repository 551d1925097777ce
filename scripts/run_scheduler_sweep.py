"""
One scheduler sweep against the configured database: posts every due scheduled item.
Cron-style fallback for users without an active session (their in-process scheduler is not running).

Run from repo root (DATABASE_URL from env / .env):
  python scripts/run_scheduler_sweep.py --user-id <uuid>
  python scripts/run_scheduler_sweep.py --all-users
"""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import List

REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT))

from sqlalchemy import select  # noqa: E402

from content_studio.db import async_session_factory, engine  # noqa: E402
from content_studio.logging_config import configure_logging, get_logger  # noqa: E402
from content_studio.models import ContentItemRecord  # noqa: E402
from content_studio.schemas.content import ContentStatus  # noqa: E402
from content_studio.services.scheduler_service import SessionSchedulers, promote_due_items, utcnow  # noqa: E402
from content_studio.services.sql_item_store import SqlItemStore  # noqa: E402

logger = get_logger("scripts.run_scheduler_sweep")

EXIT_OK = 0
EXIT_FAILED = 1


async def users_with_scheduled_items() -> List[str]:
    async with async_session_factory() as db:
        q = (
            select(ContentItemRecord.user_id)
            .where(ContentItemRecord.status == ContentStatus.SCHEDULED.value)
            .distinct()
        )
        r = await db.execute(q)
        return [str(uid) for uid in r.scalars().all()]


async def sweep(user_ids: List[str]) -> int:
    store = SqlItemStore()
    registry = SessionSchedulers(store, enabled=False)
    total = 0
    for user_id in user_ids:
        items = await store.list(user_id)
        result = promote_due_items(items, utcnow())
        if result.changed:
            await registry.persist_promotions(user_id)(result)
        total += len(result.promoted)
        print(f"user {user_id}: {len(result.promoted)} posted")
    return total


async def run(args: argparse.Namespace) -> int:
    configure_logging()
    try:
        user_ids = await users_with_scheduled_items() if args.all_users else [args.user_id]
        total = await sweep(user_ids)
    except Exception as e:
        logger.warning("sweep.failed", error=str(e))
        print(f"[ERROR] sweep failed: {e}")
        return EXIT_FAILED
    finally:
        await engine.dispose()
    print(f"done: {total} item(s) posted for {len(user_ids)} user(s)")
    return EXIT_OK


def main() -> int:
    parser = argparse.ArgumentParser(description="Post due scheduled content items")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--user-id", type=str, help="Sweep one user (UUID)")
    group.add_argument("--all-users", action="store_true", help="Sweep every user with scheduled items")
    args = parser.parse_args()
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
