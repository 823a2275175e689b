"""
AirLedger Report Generator
===========================

Writes the outcome of a security sweep as structured JSON for
integration with other tools: the report header, the per-severity
summary, every finding and, optionally, the ledger entries it was computed
from.

References:
    - ECMA-404 (2017). The JSON Data Interchange Syntax.
"""

from __future__ import annotations

import json
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence
from uuid import UUID

from shared.logger import AirLogger
from shared.models import Severity

from airledger import __version__
from airledger.core.models import LedgerStats, NetworkEntry, SecurityReport

logger = AirLogger("output.report")


class _LedgerJSONEncoder(json.JSONEncoder):
    """JSON encoder handling AirLedger model serialization."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, UUID):
            return str(obj)
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, frozenset, deque)):
            return list(obj)
        return super().default(obj)


class LedgerReportGenerator:
    """Serialises :class:`SecurityReport` objects to disk."""

    def build(
        self,
        report: SecurityReport,
        *,
        entries: Optional[Sequence[NetworkEntry]] = None,
        stats: Optional[LedgerStats] = None,
    ) -> dict[str, Any]:
        """Report document as a plain mapping (not yet encoded)."""
        data: dict[str, Any] = {
            "tool": "airledger",
            "version": __version__,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "analysis_time": report.timestamp,
            "risk_level": report.risk_level.value,
            "summary": {
                "text": report.summary,
                "network_count": report.network_count,
                "total_anomalies": len(report.anomalies),
                **{
                    f"{sev.value.lower()}_anomalies": report.count(sev)
                    for sev in Severity
                },
            },
            "anomalies": [a.model_dump(mode="json") for a in report.anomalies],
        }
        if stats is not None:
            data["ledger_statistics"] = stats.model_dump()
        if entries is not None:
            data["networks"] = [e.model_dump(mode="json") for e in entries]
        return data

    def generate_json(
        self,
        report: SecurityReport,
        output_path: str | Path,
        *,
        entries: Optional[Sequence[NetworkEntry]] = None,
        stats: Optional[LedgerStats] = None,
    ) -> str:
        """Write a JSON report.

        Args:
            report: Security sweep result.
            output_path: Destination file; parent directories are created.
            entries: Ledger entries to embed.
            stats: Ledger statistics to embed.

        Returns:
            Absolute path to the generated report.
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.build(report, entries=entries, stats=stats)
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2, cls=_LedgerJSONEncoder, ensure_ascii=False)
        logger.info(f"JSON report written to {path}")
        return str(path.resolve())

    @staticmethod
    def write_snapshot(snapshot: dict[str, Any], output_path: str | Path) -> str:
        """Write an exported ledger snapshot to *output_path*."""
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(snapshot, fh, indent=2, cls=_LedgerJSONEncoder, ensure_ascii=False)
        logger.info(f"Ledger snapshot exported to {path}")
        return str(path.resolve())
