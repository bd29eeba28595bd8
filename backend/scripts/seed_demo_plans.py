#!/usr/bin/env python3
"""
Seed script for demo maintenance plans.

Creates a handful of recurring checklists and one execution in progress:
1. Car - monthly check
2. House - autumn preparation
3. Bicycle - before a long ride

Run with: uv run python scripts/seed_demo_plans.py
"""

import asyncio
import os
import sys

# Add the backend directory to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from planner.db.database import close_database, init_database
from planner.db.execution_store import ExecutionStore
from planner.db.plan_store import PlanStore

DEMO_PLANS: dict[str, list[str]] = {
    "Car - monthly check": [
        "Check oil level",
        "Check tyre pressure",
        "Check coolant level",
        "Top up washer fluid",
        "Test all lights",
    ],
    "House - autumn preparation": [
        "Clean gutters",
        "Bleed radiators",
        "Test smoke alarms",
        "Drain garden hose",
    ],
    "Bicycle - before a long ride": [
        "Check tyre pressure",
        "Lube chain",
        "Test brakes",
    ],
}


async def seed() -> None:
    db_path = os.getenv("DATABASE_PATH", "./data/planner.db")
    await init_database(db_path)

    plans = PlanStore()
    executions = ExecutionStore()

    try:
        plan_ids = {}
        for name, items in DEMO_PLANS.items():
            plan_ids[name] = await plans.create_plan(name, items)
            print(f"  Created plan: {name} ({len(items)} items)")

        # One run of the car check, with the first two items done
        execution_id = await executions.create_execution(plan_ids["Car - monthly check"])
        execution = await executions.get_execution(execution_id)
        if execution is not None:
            for item in execution.items[:2]:
                await executions.set_item_finished(item.id, True)
        print(f"  Started execution: {execution_id}")
    finally:
        await close_database()

    print(f"\nSeeded {len(DEMO_PLANS)} plans into {db_path}")


if __name__ == "__main__":
    asyncio.run(seed())
