#!/usr/bin/env python3
"""Run one memory retention pass and print what was removed.

Usage:
    python scripts/run_cleanup.py
    python scripts/run_cleanup.py --stats
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from aguwai.memory.store import MemoryStore, MemoryStoreError


async def _run(show_stats: bool) -> int:
    store = MemoryStore.get()
    try:
        report = await store.run_cleanup()
    except MemoryStoreError as exc:
        print(f"ERROR: cleanup failed: {exc}", file=sys.stderr)
        return 1

    print(
        f"Removed {report.threads} thread(s), {report.sessions} session(s), "
        f"{report.events} event(s), {report.checkpoints} checkpoint(s)"
    )
    if show_stats:
        stats = await store.get_memory_stats()
        avg = f"{stats.avg_importance:.2f}" if stats.avg_importance is not None else "n/a"
        print(
            f"Active threads: {stats.active_threads}  Profiles: {stats.user_profiles}  "
            f"Events: {stats.memory_events} (avg importance {avg})  "
            f"Checkpoints: {stats.checkpoints}"
        )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Run assistant memory cleanup once.")
    parser.add_argument("--stats", action="store_true", help="Print memory stats afterwards")
    args = parser.parse_args()
    sys.exit(asyncio.run(_run(args.stats)))


if __name__ == "__main__":
    main()
