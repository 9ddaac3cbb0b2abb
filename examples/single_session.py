#!/usr/bin/env python
"""
Single Session Example

Runs one detox session in a visible browser and prints every status
event to the terminal.

Usage:
    python examples/single_session.py cookies.json "Rust programming"

Requirements:
    - YOUTUBE_API_KEY environment variable set
    - Feed detox installed: pip install -e . && playwright install chromium
"""

import asyncio
import sys
from pathlib import Path

from feed_detox.config import DetoxConfig, configure_logging
from feed_detox.orchestrator import create_orchestrator
from feed_detox.tui import ConsoleReporter


async def main(cookies_path: str, topic: str) -> None:
    """Run a two-minute session."""
    configure_logging()
    orchestrator = create_orchestrator(ConsoleReporter(), DetoxConfig.from_env())

    try:
        session = await orchestrator.run(
            topic,
            120,
            Path(cookies_path).read_text(encoding="utf-8"),
            "example",
        )
    finally:
        await orchestrator.resolver.close()

    print(f"Finished in state {session.state.value}, visited {len(session.visited)} videos")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else "Rust programming"))
