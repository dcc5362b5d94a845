"""
Reporter interface used by the core components.

Core logic never touches the console directly. It emits events at one of
the levels below through an injected reporter: the CLI uses the Nord-themed
ConsoleReporter, tests use RecordingReporter and inspect the captured events.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from rich.console import Console
from rich.theme import Theme


# ----------------------------------------------------------------
# Nord-Themed Colors
# ----------------------------------------------------------------
class NordColors:
    """
    Nord color palette for consistent UI styling.
    https://www.nordtheme.com/docs/colors-and-palettes
    """

    POLAR_NIGHT_1: str = "#2E3440"
    POLAR_NIGHT_4: str = "#4C566A"
    SNOW_STORM_1: str = "#D8DEE9"
    SNOW_STORM_2: str = "#E5E9F0"
    FROST_1: str = "#8FBCBB"
    FROST_2: str = "#88C0D0"
    FROST_3: str = "#81A1C1"
    FROST_4: str = "#5E81AC"
    RED: str = "#BF616A"
    YELLOW: str = "#EBCB8B"
    GREEN: str = "#A3BE8C"
    PURPLE: str = "#B48EAD"

    @classmethod
    def get_frost_gradient(cls, steps: int = 4) -> List[str]:
        """Return a list of frost colors for banner gradients."""
        frosts = [cls.FROST_1, cls.FROST_2, cls.FROST_3, cls.FROST_4]
        return frosts[:steps]


nord_theme = Theme(
    {
        "info": NordColors.FROST_2,
        "warning": NordColors.YELLOW,
        "danger": NordColors.RED,
        "success": NordColors.GREEN,
        "primary": NordColors.FROST_4,
        "section": f"bold {NordColors.PURPLE}",
        "muted": NordColors.POLAR_NIGHT_4,
    }
)
console = Console(theme=nord_theme)


# ----------------------------------------------------------------
# Events
# ----------------------------------------------------------------
class Level(str, Enum):
    """Severity of a reported event."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    SECTION = "section"


@dataclass(frozen=True)
class ReportEvent:
    level: Level
    message: str


# ----------------------------------------------------------------
# Reporters
# ----------------------------------------------------------------
class Reporter:
    """
    Base reporter. Subclasses implement emit(); the level helpers are shared.
    """

    def emit(self, level: Level, message: str) -> None:
        raise NotImplementedError

    def info(self, message: str) -> None:
        self.emit(Level.INFO, message)

    def success(self, message: str) -> None:
        self.emit(Level.SUCCESS, message)

    def warning(self, message: str) -> None:
        self.emit(Level.WARNING, message)

    def error(self, message: str) -> None:
        self.emit(Level.ERROR, message)

    def section(self, title: str) -> None:
        self.emit(Level.SECTION, title)


class ConsoleReporter(Reporter):
    """
    Print events to the rich console and mirror them to the oladmin logger.

    The console gets the colored, prefixed line; the log file gets the plain
    message at the matching logging level.
    """

    _STYLES = {
        Level.INFO: ("info", "•"),
        Level.SUCCESS: ("success", "✓"),
        Level.WARNING: ("warning", "⚠"),
        Level.ERROR: ("danger", "✗"),
    }
    _LOG_LEVELS = {
        Level.INFO: logging.INFO,
        Level.SUCCESS: logging.INFO,
        Level.WARNING: logging.WARNING,
        Level.ERROR: logging.ERROR,
        Level.SECTION: logging.INFO,
    }

    def __init__(
        self,
        out: Optional[Console] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.console = out or console
        self.logger = logger or logging.getLogger("oladmin")

    def emit(self, level: Level, message: str) -> None:
        if level is Level.SECTION:
            self.console.print(f"\n[section]{message}[/section]")
            self.console.print(f"[muted]{'─' * 60}[/muted]")
        else:
            style, prefix = self._STYLES[level]
            self.console.print(f"[{style}]{prefix} {message}[/{style}]", highlight=False)
        # Tagged records are dropped by the console log handler (see logs.py).
        self.logger.log(self._LOG_LEVELS[level], message, extra={"reporter": True})


@dataclass
class RecordingReporter(Reporter):
    """Collect events in memory instead of printing them."""

    events: List[ReportEvent] = field(default_factory=list)

    def emit(self, level: Level, message: str) -> None:
        self.events.append(ReportEvent(level, message))

    def messages(self, level: Optional[Level] = None) -> List[str]:
        return [e.message for e in self.events if level is None or e.level == level]


class NullReporter(Reporter):
    """Discard every event."""

    def emit(self, level: Level, message: str) -> None:
        pass
