"""
Rich Terminal Output

Server-side terminal output for the detox service: the startup banner
and a live mirror of events pushed to subscribers.
"""

from feed_detox.tui.console import (
    ConsoleReporter,
    DetoxConsole,
    TUIConfig,
    get_console,
)

__all__ = [
    "ConsoleReporter",
    "DetoxConsole",
    "TUIConfig",
    "get_console",
]
