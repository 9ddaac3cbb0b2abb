"""
Rich TUI Console Setup

Terminal output for the detox server. Configured via environment
variables for customizable appearance.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import IO, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.style import Style
from rich.theme import Theme

from ..events import EventReporter, StatusEvent


@dataclass
class TUIConfig:
    """
    TUI configuration loaded from environment variables.

    Attributes:
        color_progress: Color for in-progress log lines
        color_success: Color for success lines and completion panels
        color_error: Color for warnings and failure panels
        show_timestamps: Whether to display timestamps
    """

    color_progress: str = "blue"
    color_success: str = "green"
    color_error: str = "red"
    show_timestamps: bool = True

    @classmethod
    def from_env(cls) -> "TUIConfig":
        """Load configuration from environment variables."""
        return cls(
            color_progress=os.getenv("COLOR_PROGRESS", "blue"),
            color_success=os.getenv("COLOR_SUCCESS", "green"),
            color_error=os.getenv("COLOR_ERROR", "red"),
            show_timestamps=os.getenv("SHOW_TIMESTAMPS", "true").lower() == "true",
        )


def create_theme(config: TUIConfig) -> Theme:
    """Create a Rich theme from TUI configuration."""
    return Theme(
        {
            "progress": Style(color=config.color_progress),
            "success": Style(color=config.color_success, bold=True),
            "error": Style(color=config.color_error, bold=True),
            "timestamp": Style(dim=True),
            "subscriber": Style(dim=True, italic=True),
        }
    )


class DetoxConsole:
    """Rich console wrapper with consistent styling and optional timestamps."""

    def __init__(self, config: Optional[TUIConfig] = None, file: Optional[IO[str]] = None):
        """
        Initialize the console.

        Args:
            config: TUI configuration. If None, loads from environment.
            file: Output stream (default: stdout)
        """
        self.config = config or TUIConfig.from_env()
        self._theme = create_theme(self.config)
        self.console = Console(theme=self._theme, file=file)

    def _get_timestamp(self) -> str:
        """Get formatted timestamp if enabled."""
        if self.config.show_timestamps:
            return datetime.now().strftime("%H:%M:%S")
        return ""

    def print_banner(self, host: str, port: int) -> None:
        """Print the startup panel."""
        display_host = "localhost" if host == "0.0.0.0" else host
        self.console.print(
            Panel(
                f"Detox backend running on [bold]http://{display_host}:{port}[/bold]\n"
                f"Push channel: ws://{display_host}:{port}/ws",
                title="[FEED DETOX]",
                title_align="left",
                border_style=self.config.color_success,
                padding=(0, 1),
            )
        )

    def print_event(self, subscriber_id: str, event: StatusEvent) -> None:
        """Print one status event; terminal events get a panel."""
        timestamp = self._get_timestamp()
        prefix = f"[timestamp]{timestamp}[/timestamp] " if timestamp else ""
        who = f"[subscriber]{subscriber_id[:8]}[/subscriber]"

        if event.terminal:
            style = "success" if event.kind == "success" else "error"
            title = "[COMPLETE]" if event.kind == "success" else "[FAILED]"
            self.console.print(
                Panel(
                    escape(event.message),
                    title=f"{timestamp} {title}".strip(),
                    subtitle=subscriber_id[:8],
                    title_align="left",
                    border_style=style,
                    padding=(0, 1),
                )
            )
            return

        self.console.print(f"{prefix}{who} [{event.kind}]{escape(event.message)}[/{event.kind}]")

    def print(self, *args, **kwargs) -> None:
        """Passthrough to underlying Rich console."""
        self.console.print(*args, **kwargs)


class ConsoleReporter(EventReporter):
    """Mirrors pushed events to the server terminal."""

    def __init__(self, console: Optional[DetoxConsole] = None):
        self.console = console or get_console()

    async def emit(self, subscriber_id: str, event: StatusEvent) -> None:
        self.console.print_event(subscriber_id, event)


# Global console instance
_console: Optional[DetoxConsole] = None


def get_console() -> DetoxConsole:
    """Get or create the global console instance."""
    global _console
    if _console is None:
        _console = DetoxConsole()
    return _console
