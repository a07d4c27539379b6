#!/usr/bin/env python3
"""
Command-line tool for inspecting and maintaining a memory database.

Run with: python -m wing_memory.cli --db ./data/wing_memory.db stats

or if installed: wing-memory

The tool works on the store directly, so `ingest` and `retrieve` run even
while the app's memory feature toggles are off.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from wing_memory.api import MemoryEngine
from wing_memory.config import MemoryConfig
from wing_memory.exceptions import MemoryEngineError
from wing_memory.models import MemoryCategory
from wing_memory.retrieval import format_memory

CATEGORY_CHOICES = [c.value for c in MemoryCategory]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wing-memory",
        description="Wing memory engine - inspect, ingest, merge and clear long-term memories",
    )
    parser.add_argument("--db", type=Path, help="SQLite database path (overrides config)")
    parser.add_argument("--config", "-c", type=Path, help="JSON configuration file")
    parser.add_argument("--debug", "-d", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("stats", help="Show memory counts")

    list_cmd = sub.add_parser("list", help="List memories, oldest first")
    list_cmd.add_argument("--category", choices=CATEGORY_CHOICES)

    ingest = sub.add_parser("ingest", help="Ingest an extraction result (JSON file)")
    ingest.add_argument("file", type=Path)
    ingest.add_argument("--entry-id", required=True, help="Journal entry the file was extracted from")
    ingest.add_argument("--date", required=True, help="Entry date (YYYY-MM-DD)")

    groups = sub.add_parser("groups", help="Show merge candidate groups")
    groups.add_argument("category", choices=CATEGORY_CHOICES)

    merge = sub.add_parser("merge", help="Merge a candidate group")
    merge.add_argument("group_id")
    merge.add_argument("--content", help="Resolved content for the merged memory")
    merge.add_argument("--keep", help="ID of the member to keep (default: oldest)")

    delete = sub.add_parser("delete", help="Delete memories by id")
    delete.add_argument("ids", nargs="+")

    clear = sub.add_parser("clear", help="Delete all memories")
    clear.add_argument("--category", choices=CATEGORY_CHOICES)

    retrieve = sub.add_parser("retrieve", help="Show what would be injected into a prompt")
    retrieve.add_argument("--budget", type=int)

    return parser


def load_config(args: argparse.Namespace) -> MemoryConfig:
    config = MemoryConfig.from_file(args.config) if args.config else MemoryConfig()
    if args.db:
        config.storage.sqlite_path = args.db
    if args.debug:
        config.debug = True
    return config


async def run_command(args: argparse.Namespace, config: MemoryConfig) -> int:
    """Execute one subcommand. Returns the process exit code."""
    async with MemoryEngine(config) as engine:
        store = engine.store

        if args.command == "stats":
            stats = await store.get_stats()
            print(f"Total memories: {stats['total_memories']}")
            for category, count in stats["by_category"].items():
                print(f"  {category:<11} {count}")

        elif args.command == "list":
            category = MemoryCategory(args.category) if args.category else None
            for memory in await store.list_memories(category):
                print(f"{memory.id}  {memory.category.value:<10}  {format_memory(memory)}")

        elif args.command == "ingest":
            payload = args.file.read_text(encoding="utf-8")
            batch = engine.normalizer.normalize(payload, args.entry_id, args.date)
            report = await store.ingest(batch)
            print(
                f"Inserted {len(report.inserted_ids)}, reinforced {len(report.reinforced_ids)}, "
                f"rejected {len(report.rejections)}, failed {len(report.failures)}"
            )
            if report.error:
                print(f"Error: {report.error}", file=sys.stderr)
                return 1

        elif args.command == "groups":
            for group in await store.find_merge_candidates(MemoryCategory(args.category)):
                print(f"{group.group_id}  [{group.group_key}]  {group.size} memories")
                print(f"    suggested: {group.suggested_content}")
                for memory_id in group.memory_ids:
                    print(f"    - {memory_id}")

        elif args.command == "merge":
            result = await store.merge(args.group_id, args.content, args.keep)
            print(f"Merged {len(result.merged_ids)} memories into {result.result_id}")

        elif args.command == "delete":
            deleted = await store.delete_all(args.ids)
            print(f"Deleted {deleted} memories")

        elif args.command == "clear":
            category = MemoryCategory(args.category) if args.category else None
            deleted = await store.clear_all(category)
            print(f"Cleared {deleted} memories")

        elif args.command == "retrieve":
            for memory in await engine.selector.select(args.budget):
                print(format_memory(memory))

    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for CLI."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_config(args)
        return asyncio.run(run_command(args, config))
    except (MemoryEngineError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
