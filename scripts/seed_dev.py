#!/usr/bin/env python
"""Seed development database with fixture data.

Creates one content item (no audio yet) and a token balance for a fixed dev
user so the listening audio flow can be exercised end to end locally.

Constraints:
- Refuses to run in staging or prod (READLISTEN_ENV check)
- Idempotent via ON CONFLICT DO NOTHING
- Never runs automatically (manual invocation only)

Usage:
    cd python && DATABASE_URL=... python ../scripts/seed_dev.py
"""

import os
import sys

DEV_USER_ID = "00000000-0000-4000-8000-00000000d001"
DEV_RL_ITEM_ID = 1
DEV_RL_ITEM_TITLE = "A short story"
DEV_RL_ITEM_TEXT = (
    "It was a bright cold day in April, and the clocks were striking thirteen. "
    "This paragraph is read aloud by the listening audio pipeline."
)
DEV_FREE_TOKENS = 20


def main():
    # 1. Environment check (hard fail in staging/prod)
    readlisten_env = os.getenv("READLISTEN_ENV", "local")
    if readlisten_env not in ("local", "test"):
        print(f"ERROR: seed_dev.py refuses to run in READLISTEN_ENV={readlisten_env}")
        sys.exit(1)

    # 2. Check DATABASE_URL
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL environment variable must be set")
        sys.exit(1)

    from sqlalchemy import create_engine, text

    engine = create_engine(database_url)

    with engine.connect() as conn:
        # 3. Idempotent seeding
        result = conn.execute(
            text("""
                INSERT INTO rl_items (id, owner_id, title, r_item)
                VALUES (:id, :owner_id, :title, :r_item)
                ON CONFLICT (id) DO NOTHING
                RETURNING id
            """),
            {
                "id": DEV_RL_ITEM_ID,
                "owner_id": DEV_USER_ID,
                "title": DEV_RL_ITEM_TITLE,
                "r_item": DEV_RL_ITEM_TEXT,
            },
        )
        item_created = result.fetchone() is not None

        result = conn.execute(
            text("""
                INSERT INTO tokens (user_id, free, paid)
                VALUES (:user_id, :free, 0)
                ON CONFLICT (user_id) DO NOTHING
                RETURNING user_id
            """),
            {"user_id": DEV_USER_ID, "free": DEV_FREE_TOKENS},
        )
        tokens_created = result.fetchone() is not None

        conn.commit()

    # 4. Report
    db_display = database_url.split("@")[1] if "@" in database_url else database_url
    print(f"Database: {db_display}")
    print(f"READLISTEN_ENV: {readlisten_env}")
    print()
    print(f"{'✓ Created' if item_created else '• Exists'}: rl_item {DEV_RL_ITEM_ID}")
    print(f"{'✓ Created' if tokens_created else '• Exists'}: tokens for {DEV_USER_ID}")


if __name__ == "__main__":
    main()
