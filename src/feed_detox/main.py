"""
Feed Detox CLI Entry Point

Usage:
    feed-detox serve [--host 0.0.0.0] [--port 3000]
    feed-detox run "Rust programming" --cookies cookies.json --duration 120
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import uvicorn

from feed_detox.config import DetoxConfig, configure_logging
from feed_detox.orchestrator import create_orchestrator
from feed_detox.session import RunState
from feed_detox.server import create_app
from feed_detox.tui import ConsoleReporter, get_console

CLI_SUBSCRIBER = "cli"


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Retrain a YouTube feed by watching long-form videos on a topic",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    feed-detox serve --port 3000
    feed-detox run "Rust programming" --cookies cookies.json
    feed-detox run "linear algebra" --cookies cookies.json --duration 300
        """,
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Development mode with debug output",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP and WebSocket server")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: PORT or 3000)")

    run = commands.add_parser("run", help="Run a single detox session in this terminal")
    run.add_argument("topic", help="Topic to search videos for")
    run.add_argument(
        "--cookies", "-c",
        type=Path,
        required=True,
        help="Path to a JSON cookie export for youtube.com",
    )
    run.add_argument(
        "--duration", "-d",
        type=float,
        default=None,
        help="Total watch time in seconds (default: 60)",
    )

    return parser.parse_args(argv)


def serve(config: DetoxConfig, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Start the API server."""
    host = host or config.host
    port = port or config.port

    get_console().print_banner(host, port)
    uvicorn.run(create_app(config), host=host, port=port, log_level="info")


async def run_session(
    config: DetoxConfig,
    topic: str,
    cookies_path: Path,
    duration: Optional[float] = None,
) -> bool:
    """
    Run one session with events printed to the terminal.

    Returns:
        True if the run completed successfully
    """
    orchestrator = create_orchestrator(ConsoleReporter(), config)
    try:
        session = await orchestrator.run(
            topic,
            duration,
            cookies_path.read_text(encoding="utf-8"),
            CLI_SUBSCRIBER,
        )
    finally:
        await orchestrator.resolver.close()

    return session.state is RunState.COMPLETED


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    configure_logging(level=logging.DEBUG if args.dev else None, verbose=args.dev)
    config = DetoxConfig.from_env()

    if args.command == "serve":
        serve(config, args.host, args.port)
        return 0

    if not args.cookies.is_file():
        get_console().print(f"[error]Cookie file not found: {args.cookies}[/error]")
        return 2

    success = asyncio.run(run_session(config, args.topic, args.cookies, args.duration))
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
