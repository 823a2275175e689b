"""
AirLedger Core
===============

Domain models and snapshot storage.  The ledger lives in
:mod:`airledger.core.ledger` and the composition root in
:mod:`airledger.core.engine`.
"""

from airledger.core.models import (
    AnomalyRecord,
    AnomalySeverity,
    AnomalyType,
    EncryptionType,
    LedgerStats,
    NetworkEntry,
    Observation,
    SecurityAnomaly,
    SecurityReport,
    ThreatType,
    network_fingerprint,
)
from airledger.core.storage import JsonSnapshotStore, SnapshotError

__all__ = [
    "AnomalyRecord",
    "AnomalySeverity",
    "AnomalyType",
    "EncryptionType",
    "LedgerStats",
    "NetworkEntry",
    "Observation",
    "SecurityAnomaly",
    "SecurityReport",
    "ThreatType",
    "network_fingerprint",
    "JsonSnapshotStore",
    "SnapshotError",
]
