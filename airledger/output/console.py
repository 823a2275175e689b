"""
AirLedger Console Output
=========================

Rich-based console output for AirLedger.  Renders the network listing,
ledger statistics, anomalies raised during ingestion, vendor / MAC
analysis, channel lookups and the security sweep report.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from rich.panel import Panel
from rich.text import Text

from shared.console import AirConsole
from shared.models import RiskLevel

from airledger import __version__
from airledger.core.models import (
    AnomalyRecord,
    AnomalySeverity,
    ChannelInfo,
    LedgerStats,
    MacSecurityAnalysis,
    NetworkEntry,
    Observation,
    SecurityReport,
    signal_quality,
)


# ---------------------------------------------------------------------------
# Colour mappings
# ---------------------------------------------------------------------------

_RISK_COLORS: dict[str, str] = {
    "SAFE": "bold green",
    "CAUTION": "bold yellow",
    "WARNING": "bold bright_red",
    "DANGER": "bold white on red",
}

_SECURITY_COLORS: dict[str, str] = {
    "WPA3": "bold bright_green",
    "WPA3-SAE": "bold bright_green",
    "OWE": "bold green",
    "WPA2": "bold yellow",
    "WPA": "bold bright_red",
    "WEP": "bold red",
    "Open": "bold white on red",
}

_VENDOR_RISK_COLORS: dict[str, str] = {
    "LOW": "green",
    "MEDIUM": "yellow",
    "HIGH": "bold red",
    "UNKNOWN": "dim",
}

_ANOMALY_RANK: dict[AnomalySeverity, int] = {
    sev: idx for idx, sev in enumerate(AnomalySeverity)
}


def _fmt_ms(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).strftime(
        "%Y-%m-%d %H:%M:%S"
    )


def _security_label(entry: NetworkEntry) -> str:
    parts = []
    for value in sorted(t.value for t in entry.security_types):
        color = _SECURITY_COLORS.get(value, "")
        parts.append(f"[{color}]{value}[/{color}]" if color else value)
    return ", ".join(parts) or "-"


# ---------------------------------------------------------------------------
# Console Output
# ---------------------------------------------------------------------------


class LedgerConsoleOutput:
    """Rich-based console output for AirLedger results.

    Usage::

        output = LedgerConsoleOutput(AirConsole())
        output.display_networks(ledger.get_all_entries())
        output.display_report(report)
    """

    def __init__(self, console: Optional[AirConsole] = None) -> None:
        self._console = console or AirConsole()

    @property
    def console(self) -> AirConsole:
        return self._console

    def display_banner(self) -> None:
        self._console.banner(__version__)

    def display_networks(
        self, entries: Sequence[NetworkEntry], limit: Optional[int] = None
    ) -> None:
        """Network listing, most recently seen first."""
        self._console.section("Networks")
        shown = list(entries)[:limit] if limit else list(entries)
        if not shown:
            self._console.info("The ledger is empty")
            return

        table = self._console.new_table(
            "Known Networks",
            caption=f"{len(shown)} of {len(entries)} networks",
        )
        table.add_column("SSID", style="bold")
        table.add_column("BSSID", style="bright_white", width=19)
        table.add_column("Vendor", width=14)
        table.add_column("Security")
        table.add_column("Signal", justify="right")
        table.add_column("Scans", justify="right")
        table.add_column("Last seen (UTC)")
        table.add_column("Anomalies", justify="center")

        for entry in shown:
            ssid = entry.ssid or "[dim italic]<hidden>[/dim italic]"
            last = entry.last_signal
            signal = (
                f"{last.level} dBm ({signal_quality(last.level)}%)" if last else "-"
            )
            worst = max(
                (a.severity for a in entry.anomalies),
                key=_ANOMALY_RANK.__getitem__,
                default=None,
            )
            anomalies = (
                self._console.severity_cell(worst.value) + f" x{len(entry.anomalies)}"
                if worst is not None else "[green]-[/green]"
            )
            table.add_row(
                ssid,
                entry.bssid,
                entry.vendor or "-",
                _security_label(entry),
                signal,
                str(entry.scan_count),
                _fmt_ms(entry.last_seen),
                anomalies,
            )
        self._console.print(table)
        self._console.blank()

    def display_stats(self, stats: LedgerStats) -> None:
        self._console.section("Ledger Statistics")
        self._console.table(
            "Statistics",
            ["Metric", "Value"],
            [
                ("Networks", stats.total_networks),
                ("Open networks", stats.open_networks),
                ("Anomalies", stats.total_anomalies),
                ("Critical anomalies", stats.critical_anomalies),
            ],
            styles=["bold", "bright_white"],
        )
        self._console.blank()

    def display_update(
        self, observation: Observation, records: Sequence[AnomalyRecord]
    ) -> None:
        """One line per anomaly raised by a single observation."""
        name = observation.ssid or "<hidden>"
        for record in records:
            cell = self._console.severity_cell(record.severity.value)
            self._console.print(
                f"{cell} [bold]{record.type.value}[/bold] "
                f"{name} ({observation.bssid}): {record.description}"
            )

    def display_ingest_summary(self, observations: int, anomalies: int, networks: int) -> None:
        self._console.success(
            f"Ingested {observations} observations, {anomalies} anomalies raised, "
            f"{networks} networks in ledger"
        )

    def display_vendor(self, analysis: MacSecurityAnalysis) -> None:
        self._console.section("Vendor Lookup")
        vendor = analysis.vendor
        risk_color = _VENDOR_RISK_COLORS.get(analysis.risk_level.value, "")
        rows = [
            ("BSSID", analysis.bssid),
            ("Vendor", vendor.name),
            ("Full name", vendor.full_name or "-"),
            ("Country", vendor.country or "-"),
            ("Vendor risk", vendor.security_risk.value),
            ("Randomized MAC", "yes" if analysis.is_randomized else "no"),
            ("Multicast", "yes" if analysis.is_multicast else "no"),
            ("Risk", f"[{risk_color}]{analysis.risk_level.value}[/{risk_color}]"),
        ]
        self._console.table("MAC Analysis", ["Field", "Value"], rows, styles=["bold", ""])
        for factor in analysis.suspicious_factors:
            self._console.warning(factor)

    def display_channel(self, info: ChannelInfo) -> None:
        self._console.section("Channel Mapping")
        if not info.is_known:
            self._console.warning(f"{info.frequency} MHz is not a WiFi channel")
            return
        self._console.table(
            "Channel",
            ["Frequency", "Channel", "Band", "Region"],
            [(f"{info.frequency} MHz", info.channel, info.band, info.region)],
        )

    def display_report(self, report: SecurityReport) -> None:
        """Risk panel followed by the findings table."""
        self._console.section("Security Analysis")
        color = _RISK_COLORS.get(report.risk_level.value, "")
        self._console.print(Panel(
            Text.from_markup(
                f"Risk level: [{color}]{report.risk_level.value}[/{color}]\n"
                f"{report.summary}"
            ),
            border_style="bright_cyan",
            padding=(0, 2),
        ))
        if report.risk_level == RiskLevel.DANGER:
            self._console.critical("Active attack indicators; avoid connecting here")
        if not report.anomalies:
            return

        table = self._console.new_table("Findings")
        table.add_column("Severity", justify="center")
        table.add_column("Type", style="bold")
        table.add_column("Description")
        table.add_column("Networks", justify="right")
        table.add_column("Action", style="dim")

        ordered = sorted(report.anomalies, key=lambda a: a.severity.rank, reverse=True)
        for anomaly in ordered:
            table.add_row(
                self._console.severity_cell(anomaly.severity.value),
                anomaly.type.value,
                anomaly.description,
                str(len(anomaly.affected_networks)),
                anomaly.recommended_action,
            )
        self._console.print(table)
        self._console.blank()
