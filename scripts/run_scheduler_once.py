"""Script to run a single scheduler pass and print its summary."""

import asyncio
import json
import sys

sys.path.insert(0, ".")

from gen_scheduler.db.session import engine, init_db
from gen_scheduler.schemas.schemas import SchedulerErrorResponse
from gen_scheduler.services.scheduler import Scheduler


async def main() -> int:
    """Run one pass against the configured database and functions."""
    print("Initializing database...")
    await init_db()

    print("Running scheduler pass...")
    try:
        result = await Scheduler.from_settings().run_pass()
    finally:
        await engine.dispose()

    print(json.dumps(result.model_dump(exclude_none=True), indent=2))
    return 1 if isinstance(result, SchedulerErrorResponse) else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
