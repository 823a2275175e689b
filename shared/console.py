"""
AirLedger Console Interface
============================

Rich-powered console wrapper giving every AirLedger command the same
banner, section rules, severity-coloured messages and tables.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

import datetime as _dt
from typing import Any, Sequence

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

# ---------------------------------------------------------------------------
# Theme
# ---------------------------------------------------------------------------
_AIR_THEME = Theme(
    {
        "air.banner": "bold bright_cyan",
        "air.section": "bold bright_magenta",
        "air.success": "bold green",
        "air.warning": "bold yellow",
        "air.error": "bold red",
        "air.info": "bold bright_blue",
        "air.dim": "dim white",
        "air.highlight": "bold bright_white",
        "air.critical": "bold white on red",
        "air.high": "bold red",
        "air.medium": "bold yellow",
        "air.low": "bold bright_cyan",
        "air.informational": "bold bright_blue",
    }
)

#: Rich style per severity / risk label, shared with the tool output layer.
SEVERITY_STYLES: dict[str, str] = {
    "CRITICAL": "air.critical",
    "HIGH": "air.high",
    "WARNING": "air.medium",
    "MEDIUM": "air.medium",
    "LOW": "air.low",
    "INFO": "air.informational",
}

_BANNER_ART = r"""
[bright_cyan]
    _    _      _             _
   / \  (_)_ __| |    ___  __| | __ _  ___ _ __
  / _ \ | | '__| |   / _ \/ _` |/ _` |/ _ \ '__|
 / ___ \| | |  | |__|  __/ (_| | (_| |  __/ |
/_/   \_\_|_|  |_____\___|\__,_|\__, |\___|_|
                                |___/
[/bright_cyan]"""

_TAGLINE = "Wireless network observation ledger & anomaly detector"


class AirConsole:
    """Unified console interface for AirLedger commands.

    Usage::

        con = AirConsole()
        con.banner()
        con.section("Ledger statistics")
        con.success("Ingested 120 observations")
    """

    def __init__(self, *, quiet: bool = False) -> None:
        """Initialise the console.

        Args:
            quiet:  Suppress all output (library and test use).
        """
        self._console = Console(
            theme=_AIR_THEME,
            quiet=quiet,
            highlight=False,
        )

    # ------------------------------------------------------------------ #
    #  Banner and sections
    # ------------------------------------------------------------------ #

    def banner(self, version: str = "1.0.0") -> None:
        """Display the AirLedger banner with version and local time."""
        now = _dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        subtitle = (
            f"[air.highlight]{_TAGLINE}[/air.highlight]\n"
            f"[air.dim]Version: {version}  |  {now}[/air.dim]"
        )
        self._console.print(
            Panel(
                Align.center(Text.from_markup(_BANNER_ART + "\n" + subtitle)),
                border_style="bright_cyan",
                padding=(0, 2),
            )
        )

    def section(self, title: str) -> None:
        """Print a horizontal rule carrying *title*."""
        self._console.rule(f"  {title}  ", style="air.section", characters="─")
        self._console.print()

    # ------------------------------------------------------------------ #
    #  Severity-coloured messages
    # ------------------------------------------------------------------ #

    def success(self, message: str) -> None:
        self._console.print(f"[air.success][✔] SUCCESS:[/air.success] {message}")

    def warning(self, message: str) -> None:
        self._console.print(f"[air.warning][⚠] WARNING:[/air.warning] {message}")

    def error(self, message: str) -> None:
        self._console.print(f"[air.error][✘] ERROR:[/air.error] {message}")

    def info(self, message: str) -> None:
        self._console.print(f"[air.info][ℹ] INFO:[/air.info] {message}")

    def critical(self, message: str) -> None:
        self._console.print(f"[air.critical][☠] CRITICAL: {message}[/air.critical]")

    # ------------------------------------------------------------------ #
    #  Tables
    # ------------------------------------------------------------------ #

    def table(
        self,
        title: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        *,
        caption: str | None = None,
        styles: Sequence[str] | None = None,
    ) -> None:
        """Render a styled Rich table.

        Args:
            title:    Table title.
            columns:  Column header labels.
            rows:     Row tuples; each cell is stringified.
            caption:  Optional footer caption.
            styles:   Optional per-column Rich style strings.
        """
        tbl = self.new_table(title, caption=caption)
        for idx, col_name in enumerate(columns):
            style = styles[idx] if styles and idx < len(styles) else ""
            tbl.add_column(col_name, style=style)
        for row in rows:
            tbl.add_row(*(str(cell) for cell in row))
        self._console.print(tbl)

    @staticmethod
    def new_table(title: str, *, caption: str | None = None) -> Table:
        """Empty table with the house border and header styling."""
        return Table(
            title=title,
            caption=caption,
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            show_lines=False,
            padding=(0, 1),
        )

    @staticmethod
    def severity_cell(label: str) -> str:
        """Markup for a severity or risk label in its theme colour."""
        style = SEVERITY_STYLES.get(label.upper(), "")
        return f"[{style}]{label}[/{style}]" if style else label

    # ------------------------------------------------------------------ #
    #  Utility
    # ------------------------------------------------------------------ #

    def print(self, *args: Any, **kwargs: Any) -> None:
        """Proxy to :meth:`rich.console.Console.print`."""
        self._console.print(*args, **kwargs)

    def blank(self, count: int = 1) -> None:
        for _ in range(count):
            self._console.print()

