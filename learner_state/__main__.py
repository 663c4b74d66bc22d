"""CLI interface for the learner state tracker.

Usage:
    python -m learner_state add "original" "correct"   Schedule a harvested error
    python -m learner_state due                        List errors due for review
    python -m learner_state review ITEM_ID QUALITY     Review an error (quality 0-5)
    python -m learner_state errors                     List harvested errors by type
    python -m learner_state encounter WORD             Record seeing a word
    python -m learner_state lookup WORD                Unlock a word by looking it up
    python -m learner_state discover WORD              Unlock a word you worked out
    python -m learner_state recognize WORD             Record recognizing a word
    python -m learner_state produce WORD               Record producing a word
    python -m learner_state gap                        Show the production gap
    python -m learner_state stats                      Show all statistics
"""

import argparse
import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import settings
from backend.database import async_session, engine, retry_storage
from backend.exceptions import LearnerStateError
from backend.models import Base
from backend.srs.scheduler import ReviewScheduler
from backend.tracking.encounters import EncounterUnlocker
from backend.tracking.vocabulary import GapAnalyzer

scheduler = ReviewScheduler()
unlocker = EncounterUnlocker()
analyzer = GapAnalyzer()

Command = Callable[[argparse.Namespace, AsyncSession], Awaitable[None]]


async def ensure_db() -> None:
    """Create tables if they don't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def cmd_add(args: argparse.Namespace, db: AsyncSession) -> None:
    """Schedule a harvested error for review."""
    item = await scheduler.record_new_item(
        db,
        args.user,
        args.item_id,
        args.language,
        args.original,
        args.correct,
        args.context,
        error_type=args.error_type,
    )
    print(f"  Scheduled {item.item_id}: {item.original} -> {item.correct_answer} (due now)")


async def cmd_due(args: argparse.Namespace, db: AsyncSession) -> None:
    """List errors due for review."""
    items = await scheduler.get_due_items(db, args.user, args.language, limit=args.limit)
    if not items:
        print("\n  Nothing due for review. You're all caught up!")
        return
    print(f"\n  {len(items)} due for review\n")
    for item in items:
        label = "NEW" if item.last_reviewed_at is None else f"{item.interval_days}d"
        print(f"  {item.item_id:<34} [{label:>4}] {item.original} -> {item.correct_answer}")


async def cmd_review(args: argparse.Namespace, db: AsyncSession) -> None:
    """Apply a 0-5 quality rating to an error."""
    item = await scheduler.process_review(db, args.item_id, args.quality)
    print(
        f"  Next review in {item.interval_days} day(s) on {item.due_at:%Y-%m-%d} "
        f"(reps={item.repetition_count}, EF={item.easiness_factor:.2f})"
    )


async def cmd_errors(args: argparse.Namespace, db: AsyncSession) -> None:
    """List harvested errors with a per-type breakdown."""
    stats = await scheduler.get_error_stats(db, args.user, args.language)
    items = await scheduler.list_items(db, args.user, args.language, error_type=args.type, limit=args.limit)

    print(f"\n  {stats.total} harvested error(s)")
    for error_type, count in stats.by_type.items():
        print(f"  {error_type + ':':<20} {count}")
    print()
    for item in items:
        print(f"  {item.item_id:<34} x{item.occurrences:<3} {item.original} -> {item.correct_answer}")


async def cmd_encounter(args: argparse.Namespace, db: AsyncSession) -> None:
    """Record one exposure to a word."""
    record = await unlocker.record_encounter(db, args.user, args.word, args.language, args.context)
    if record.definition_unlocked:
        state = "definition unlocked"
    else:
        remaining = unlocker.threshold - record.encounter_count
        state = f"{remaining} more encounter(s) to unlock"
    print(f"  {record.word}: seen {record.encounter_count}x, {state}")


async def cmd_lookup(args: argparse.Namespace, db: AsyncSession) -> None:
    record = await unlocker.mark_looked_up(db, args.user, args.word, args.language)
    print(f"  {record.word}: looked up, definition unlocked")


async def cmd_discover(args: argparse.Namespace, db: AsyncSession) -> None:
    record = await unlocker.mark_self_discovered(db, args.user, args.word, args.language)
    print(f"  {record.word}: self-discovered, definition unlocked")


async def cmd_recognize(args: argparse.Namespace, db: AsyncSession) -> None:
    state = await analyzer.record_recognition(db, args.user, args.word, args.language)
    print(f"  {state.word}: recognized {state.recognition_count}x")


async def cmd_produce(args: argparse.Namespace, db: AsyncSession) -> None:
    state = await analyzer.record_production(db, args.user, args.word, args.language)
    print(f"  {state.word}: produced {state.production_count}x")


async def cmd_gap(args: argparse.Namespace, db: AsyncSession) -> None:
    """Show the recognition/production gap and the words to practice."""
    gap = await analyzer.get_production_gap(db, args.user, args.language)
    print("\n  Production Gap")
    print(f"  {'Recognize only:':<20} {gap.recognize_only_count}")
    print(f"  {'Produce only:':<20} {gap.produce_only_count}")
    print(f"  {'Both:':<20} {gap.both_count}")
    print(f"  {'Gap:':<20} {gap.gap_percentage}%")
    if gap.focus_words:
        print("\n  Focus on producing:")
        for state in gap.focus_words:
            print(f"    {state.word} (recognized {state.recognition_count}x)")
    print()


async def cmd_stats(args: argparse.Namespace, db: AsyncSession) -> None:
    """Show review, encounter and vocabulary statistics."""
    review = await scheduler.get_stats(db, args.user, args.language)
    encounters = await unlocker.get_stats(db, args.user, args.language)
    vocab = await analyzer.get_stats(db, args.user, args.language)

    print("\n  Learner State Statistics")
    print(f"  {'Review items:':<24} {review.total_count}")
    print(f"  {'Due now:':<24} {review.due_count}")
    print(f"  {'Due this week:':<24} {review.due_this_week}")
    print(f"  {'Average interval:':<24} {review.average_interval:.1f} days")
    print(f"  {'Mastered (21d+):':<24} {review.mastered}")
    print(f"  {'Words encountered:':<24} {encounters.total}")
    print(f"  {'Definitions unlocked:':<24} {encounters.unlocked}")
    print(f"  {'Pending unlock:':<24} {encounters.pending_unlock}")
    print(f"  {'Words recognized:':<24} {vocab.recognized}")
    print(f"  {'Words produced:':<24} {vocab.produced}")
    print()


COMMANDS: dict[str, Command] = {
    "add": cmd_add,
    "due": cmd_due,
    "review": cmd_review,
    "errors": cmd_errors,
    "encounter": cmd_encounter,
    "lookup": cmd_lookup,
    "discover": cmd_discover,
    "recognize": cmd_recognize,
    "produce": cmd_produce,
    "gap": cmd_gap,
    "stats": cmd_stats,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="learner_state",
        description="Review scheduling and vocabulary tracking for language learners",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("-u", "--user", default="local", help="User ID (default: local)")
    parser.add_argument(
        "-l",
        "--language",
        default=settings.supported_languages[0],
        choices=settings.supported_languages,
        help="Language code",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    add_parser = subparsers.add_parser("add", help="Schedule a harvested error")
    add_parser.add_argument("original", help="What you got wrong")
    add_parser.add_argument("correct", help="The correct form")
    add_parser.add_argument("-c", "--context", default=None, help="Sentence it appeared in")
    add_parser.add_argument("--item-id", default=None, help="Item ID (generated if omitted)")
    add_parser.add_argument("-t", "--error-type", default="vocabulary", help="Error category")

    due_parser = subparsers.add_parser("due", help="List errors due for review")
    due_parser.add_argument("-n", "--limit", type=int, default=settings.due_items_limit)

    review_parser = subparsers.add_parser("review", help="Review an error")
    review_parser.add_argument("item_id", help="Item to review")
    review_parser.add_argument("quality", type=int, help="Recall quality, 0 (blackout) to 5 (perfect)")

    errors_parser = subparsers.add_parser("errors", help="List harvested errors")
    errors_parser.add_argument("-t", "--type", default=None, help="Only this error type")
    errors_parser.add_argument("-n", "--limit", type=int, default=settings.default_list_limit)

    encounter_parser = subparsers.add_parser("encounter", help="Record seeing a word")
    encounter_parser.add_argument("word")
    encounter_parser.add_argument("-c", "--context", default=None, help="Sentence it appeared in")

    for name, help_text in [
        ("lookup", "Unlock a word's definition by looking it up"),
        ("discover", "Unlock a word's definition you worked out yourself"),
        ("recognize", "Record recognizing a word"),
        ("produce", "Record producing a word"),
    ]:
        subparsers.add_parser(name, help=help_text).add_argument("word")

    subparsers.add_parser("gap", help="Show the production gap")
    subparsers.add_parser("stats", help="Show all statistics")
    return parser


@retry_storage
async def execute(args: argparse.Namespace) -> None:
    """Run one command in its own session, retrying it after a storage failure."""
    async with async_session() as db:
        await COMMANDS[args.command](args, db)


async def run(args: argparse.Namespace) -> None:
    await ensure_db()
    try:
        await execute(args)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    """Entry point for the learner state CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if not args.command:
        parser.print_help()
        return 0

    try:
        asyncio.run(run(args))
    except LearnerStateError as e:
        print(f"  Error: {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
