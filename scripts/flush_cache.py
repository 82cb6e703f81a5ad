#!/usr/bin/env python3
"""
Inspect or flush the Todo service's Redis cache.

Dropping one owner's record is the same owner-wide invalidation the service
performs after an update or delete; ``--all`` flushes the whole cache
database the way the service does at bootstrap.
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

from shared.config import get_config
from shared.errors import StoreError
from service_todo.app.cache import CacheStore, parse_field_name, record_key


async def run(
    *,
    redis_url: str,
    owner: Optional[int],
    flush_all: bool,
    inspect: bool,
    dry_run: bool,
    op_timeout: float,
) -> dict:
    """Execute the requested action and return a summary."""
    store = CacheStore(redis_url, op_timeout=op_timeout)
    await store.start()
    try:
        summary: dict = {"redis_url": redis_url, "dry_run": dry_run}

        if owner is not None:
            key = record_key(owner)
            fields = await store.list_fields(key)
            summary["owner"] = owner
            summary["fields"] = sorted(fields)
            if inspect:
                kinds, invalid = _classify_fields(fields)
                summary["kinds"] = kinds
                # Fields the service would never have written
                summary["invalid_fields"] = invalid
            elif not dry_run:
                summary["deleted"] = await store.delete_record(key)

        if flush_all and not dry_run:
            await store.flush()
            summary["flushed"] = True

        return summary
    finally:
        await store.stop()


def _classify_fields(fields) -> tuple:
    """Split field names into their kinds and the names that do not parse."""
    kinds, invalid = set(), []
    for name in fields:
        try:
            kinds.add(parse_field_name(name).kind)
        except ValueError:
            invalid.append(name)
    return sorted(kinds), sorted(invalid)


def _parse_args() -> argparse.Namespace:
    config = get_config("todo", 0)
    parser = argparse.ArgumentParser(description="Inspect or flush the Todo service cache.")
    parser.add_argument("--redis-url", default=config.redis_url, help="Redis connection URL")
    parser.add_argument("--owner", type=int, default=None, help="Owner whose cache record to act on")
    parser.add_argument("--all", dest="flush_all", action="store_true", help="Flush the whole cache database")
    parser.add_argument("--inspect", action="store_true", help="List the owner's cached fields without deleting")
    parser.add_argument("--dry-run", action="store_true", help="Report what would be deleted without deleting")
    parser.add_argument("--timeout", type=float, default=config.cache_op_timeout_seconds, help="Per-operation timeout in seconds")
    args = parser.parse_args()

    if args.owner is None and not args.flush_all:
        parser.error("one of --owner or --all is required")
    if args.inspect and args.owner is None:
        parser.error("--inspect requires --owner")
    return args


def main() -> int:
    args = _parse_args()
    try:
        summary = asyncio.run(
            run(
                redis_url=args.redis_url,
                owner=args.owner,
                flush_all=args.flush_all,
                inspect=args.inspect,
                dry_run=args.dry_run,
                op_timeout=args.timeout,
            )
        )
    except StoreError as exc:
        print(f"Cache operation failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(summary, indent=2))
    return 1 if summary.get("invalid_fields") else 0


if __name__ == "__main__":
    sys.exit(main())
