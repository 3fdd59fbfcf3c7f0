#!/usr/bin/env python
# reactionTally - Discord Reaction Tally Bot
# AGPL-3.0 License - https://www.gnu.org/licenses/agpl-3.0.html

"""
Tally Inspector CLI

Inspect and maintain the reaction tally files without running the bot.
Reads the same CSV_FILE_PATH / IGNORED_USERS_CSV_PATH settings as the bot.

Usage:
    # Top 20 users by reactions received
    python scripts/tally_inspector.py leaderboard --limit 20

    # One user's tally
    python scripts/tally_inspector.py show --user-id 123456789

    # List opted-out users
    python scripts/tally_inspector.py ignored

    # Opt a user out, or back in
    python scripts/tally_inspector.py ignore --user-id 123456789
    python scripts/tally_inspector.py unignore --user-id 123456789

Do not edit the opt-out list while the bot is running; the bot rewrites
the file from memory on its next change.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv

from tally import OptOutRegistry, OptOutResult, ReactionCounter, TallyConfig, TallyStorage

load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
)
logger = logging.getLogger(__name__)


def show_leaderboard(counter: ReactionCounter, limit: int) -> None:
    records = counter.records()[:limit]
    if not records:
        print("No tallies recorded yet.")
        return

    print(f"{'#':>3}  {'User ID':<20} {'User Name':<32} {'Reactions':>9}")
    print("-" * 68)
    for rank, record in enumerate(records, start=1):
        print(f"{rank:>3}  {record.user_id:<20} {record.user_name[:32]:<32} {record.count:>9}")


def show_user(counter: ReactionCounter, registry: OptOutRegistry, user_id: int) -> None:
    record = counter.get_record(user_id)
    if record is None:
        print(f"User {user_id} has no tally.")
    else:
        print(f"User ID:   {record.user_id}")
        print(f"User Name: {record.user_name}")
        print(f"Reactions: {record.count}")
    print(f"Ignored:   {'yes' if registry.is_ignored(user_id) else 'no'}")


def show_ignored(registry: OptOutRegistry) -> None:
    user_ids = sorted(registry.user_ids())
    if not user_ids:
        print("No ignored users.")
        return
    print(f"{len(user_ids)} ignored user(s):")
    for user_id in user_ids:
        print(f"  {user_id}")


async def change_ignored(registry: OptOutRegistry, user_id: int, ignore: bool) -> None:
    if ignore:
        result = await registry.add_ignored_user(user_id)
    else:
        result = await registry.remove_ignored_user(user_id)

    messages = {
        OptOutResult.ADDED: f"User {user_id} added to ignored users.",
        OptOutResult.ALREADY_IGNORED: f"User {user_id} is already in the ignored users list.",
        OptOutResult.REMOVED: f"User {user_id} removed from ignored users.",
        OptOutResult.NOT_IGNORED: f"User {user_id} is not in the ignored users list.",
    }
    print(messages[result])


def main():
    parser = argparse.ArgumentParser(
        description="Tally Inspector CLI - Inspect and maintain reaction tallies"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    leaderboard_parser = subparsers.add_parser("leaderboard", help="List top users by reactions")
    leaderboard_parser.add_argument(
        "--limit", type=int, default=20, help="Max results (default: 20)"
    )

    show_parser = subparsers.add_parser("show", help="Show one user's tally")
    show_parser.add_argument("--user-id", type=int, required=True, help="Discord user ID")

    subparsers.add_parser("ignored", help="List ignored users")

    ignore_parser = subparsers.add_parser("ignore", help="Add a user to the ignored list")
    ignore_parser.add_argument("--user-id", type=int, required=True, help="Discord user ID")

    unignore_parser = subparsers.add_parser("unignore", help="Remove a user from the ignored list")
    unignore_parser.add_argument("--user-id", type=int, required=True, help="Discord user ID")

    args = parser.parse_args()

    config = TallyConfig.from_env(require_token=False)
    storage = TallyStorage(config.tally_path, config.ignored_path)
    registry = OptOutRegistry(storage)
    registry.load()

    if args.command == "leaderboard":
        counter = ReactionCounter(storage, registry)
        counter.load()
        show_leaderboard(counter, args.limit)
    elif args.command == "show":
        counter = ReactionCounter(storage, registry)
        counter.load()
        show_user(counter, registry, args.user_id)
    elif args.command == "ignored":
        show_ignored(registry)
    elif args.command == "ignore":
        asyncio.run(change_ignored(registry, args.user_id, ignore=True))
    elif args.command == "unignore":
        asyncio.run(change_ignored(registry, args.user_id, ignore=False))


if __name__ == "__main__":
    main()
