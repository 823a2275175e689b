"""
AirLedger Engine
=================

Composition root for AirLedger.  Builds the vendor registry, channel
mapper, anomaly engine, snapshot store, ledger and security analyzer from
one :class:`AirConfig`, and exposes the operations the CLI needs.

The engine follows a pipeline architecture:
    1. Input: parse observation files (JSON array or JSON lines)
    2. Ledger: merge each observation in arrival order, collect anomalies
    3. Analysis: population-level security sweep over the ledger
    4. Output: console display, JSON reports and snapshot exports

References:
    - Evans, E. (2003). Domain-Driven Design. Addison-Wesley.
    - JSON Lines. https://jsonlines.org/
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from pydantic import ValidationError

from shared.config import AirConfig
from shared.console import AirConsole
from shared.logger import AirLogger

from airledger.analyzers.anomaly import AnomalyEngine
from airledger.analyzers.channel import ChannelMapper
from airledger.analyzers.security import SecurityAnalyzer
from airledger.analyzers.vendor import VendorRegistry
from airledger.core.ledger import NetworkLedger
from airledger.core.models import (
    AnomalyRecord,
    ChannelInfo,
    LedgerStats,
    MacSecurityAnalysis,
    NetworkEntry,
    Observation,
    SecurityReport,
    network_fingerprint,
)
from airledger.core.storage import JsonSnapshotStore, SnapshotStore
from airledger.output.console import LedgerConsoleOutput
from airledger.output.report import LedgerReportGenerator

logger = AirLogger("core.engine")

# Alternative field names accepted in observation files
_KEY_ALIASES: dict[str, str] = {
    "lat": "latitude",
    "lon": "longitude",
    "lng": "longitude",
    "rssi": "level",
    "time": "timestamp",
    "caps": "capabilities",
}


def _normalise_record(raw: dict[str, Any]) -> dict[str, Any]:
    return {_KEY_ALIASES.get(k, k): v for k, v in raw.items()}


def load_observations(path: str | Path) -> list[Observation]:
    """Parse an observation file.

    The file holds either one JSON array of observation objects or one
    object per line (JSON lines; blank lines are skipped).

    Raises:
        FileNotFoundError: *path* does not exist.
        ValueError: A record is not valid JSON or not a valid observation;
            the message carries the line (or array position) number.
    """
    text = Path(path).read_text(encoding="utf-8")
    stripped = text.lstrip()

    records: list[tuple[int, Any]] = []
    if stripped.startswith("["):
        try:
            items = json.loads(stripped)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path}:{exc.lineno}: invalid JSON: {exc.msg}") from exc
        records = list(enumerate(items, start=1))
    else:
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                records.append((lineno, json.loads(line)))
            except json.JSONDecodeError as exc:
                raise ValueError(f"{path}:{lineno}: invalid JSON: {exc.msg}") from exc

    observations: list[Observation] = []
    for lineno, raw in records:
        if not isinstance(raw, dict):
            raise ValueError(f"{path}:{lineno}: expected an object")
        try:
            observations.append(Observation.model_validate(_normalise_record(raw)))
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ())) or "record"
            raise ValueError(
                f"{path}:{lineno}: invalid observation ({field}: {first.get('msg')})"
            ) from exc
    return observations


class LedgerEngine:
    """Central orchestration for AirLedger.

    Usage::

        engine = LedgerEngine(AirConfig.load())
        engine.ingest(load_observations("scan.jsonl"))
        report = engine.analyze("output/report.json")

    Args:
        config: Configuration; defaults when omitted.
        console: Console for output; a new one when omitted.
        store: Snapshot store; a :class:`JsonSnapshotStore` on
            ``ledger.database_path`` when omitted.
        geocoder: Optional ``(lat, lon) -> address`` callable.
    """

    def __init__(
        self,
        config: Optional[AirConfig] = None,
        console: Optional[AirConsole] = None,
        *,
        store: Optional[SnapshotStore] = None,
        geocoder: Optional[Callable[[float, float], str]] = None,
    ) -> None:
        self._config = config or AirConfig()
        self._console = console or AirConsole()
        self._output = LedgerConsoleOutput(self._console)
        self._report_gen = LedgerReportGenerator()

        gs = self._config.global_settings
        AirLogger.configure(
            log_level=gs.log_level, log_file=gs.log_file, json_logs=gs.log_json
        )

        self._registry = VendorRegistry(
            suspicious_ssid_patterns=self._config.detection.suspicious_ssid_patterns
        )
        if self._config.vendor.oui_path:
            self._registry.load(self._config.vendor.oui_path)
        self._mapper = ChannelMapper()
        self._anomaly_engine = AnomalyEngine(
            self._config.detection, self._registry, self._mapper
        )
        self._store = store or JsonSnapshotStore(self._config.ledger.database_path)
        self._ledger = NetworkLedger(
            self._config.ledger,
            self._registry,
            self._mapper,
            engine=self._anomaly_engine,
            store=self._store,
            geocoder=geocoder,
        )
        self._analyzer = SecurityAnalyzer(
            self._config.analyzer,
            self._registry,
            self._mapper,
            detection=self._config.detection,
        )
        # Fingerprints seen by the latest ingest batch; None until one ran
        self._last_scan: Optional[set[str]] = None
        self._ledger.load()

    # ------------------------------------------------------------------ #
    #  Accessors
    # ------------------------------------------------------------------ #

    @property
    def ledger(self) -> NetworkLedger:
        return self._ledger

    @property
    def analyzer(self) -> SecurityAnalyzer:
        return self._analyzer

    @property
    def output(self) -> LedgerConsoleOutput:
        return self._output

    # ------------------------------------------------------------------ #
    #  Operations
    # ------------------------------------------------------------------ #

    def ingest(
        self, observations: Iterable[Observation], *, show: bool = True
    ) -> list[tuple[Observation, list[AnomalyRecord]]]:
        """Feed observations to the ledger in order and flush once done.

        The batch counts as one scan: the next :meth:`analyze` compares the
        networks it saw against the previous sweep.
        """
        results: list[tuple[Observation, list[AnomalyRecord]]] = []
        seen: set[str] = set()
        with logger.operation("ingest"):
            for obs in observations:
                records = self._ledger.update(obs)
                results.append((obs, records))
                seen.add(obs.fingerprint)
                if show and records:
                    self._output.display_update(obs, records)
            if not self._ledger.flush():
                self._console.warning("Ledger could not be saved; changes kept in memory")

        self._last_scan = seen
        raised = sum(len(r) for _, r in results)
        logger.info(f"Ingested {len(results)} observations ({raised} anomalies)")
        if show:
            self._output.display_ingest_summary(len(results), raised, len(self._ledger))
        return results

    def analyze(
        self, output_path: Optional[str | Path] = None, *, show: bool = True
    ) -> SecurityReport:
        """Run the security sweep and optionally write a JSON report.

        Every detector sweeps the whole ledger; the disappearance check
        looks only at the networks of the latest ingest batch.
        """
        entries = self._ledger.get_all_entries()
        scan = None
        if self._last_scan is not None:
            scan = [
                e for e in entries
                if network_fingerprint(e.ssid, e.bssid) in self._last_scan
            ]
        report = self._analyzer.analyze(entries, scan=scan)
        if show:
            self._output.display_report(report)

        if output_path is not None:
            try:
                written = self._report_gen.generate_json(
                    report, output_path, entries=entries, stats=self._ledger.get_stats()
                )
                self._console.info(f"JSON report: {written}")
            except Exception as exc:
                logger.error(f"JSON report error: {exc}")
        return report

    def export(self, path: Optional[str | Path] = None) -> Path:
        """Write the ledger snapshot; defaults to a timestamped file."""
        if path is None:
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            path = Path(self._config.global_settings.output_dir) / f"airledger_export_{stamp}.json"
        written = self._report_gen.write_snapshot(self._ledger.export_snapshot(), path)
        return Path(written)

    def stats(self) -> LedgerStats:
        return self._ledger.get_stats()

    def networks(self, limit: Optional[int] = None) -> list[NetworkEntry]:
        entries = self._ledger.get_all_entries()
        return entries[:limit] if limit else entries

    def clear(self) -> None:
        self._ledger.clear()
        self._analyzer.reset_history()
        self._last_scan = None

    def lookup_vendor(self, bssid: str) -> MacSecurityAnalysis:
        return self._registry.analyze_mac_security(bssid)

    def channel_info(self, frequency: int) -> ChannelInfo:
        return self._mapper.get_channel_info(frequency)
