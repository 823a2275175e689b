"""
Shared fixtures for AirLedger tests.
"""

import json
from collections import deque

import pytest

from shared.config import AnalyzerConfig, DetectionConfig, LedgerConfig

from airledger.analyzers.anomaly import AnomalyEngine
from airledger.analyzers.channel import ChannelMapper
from airledger.analyzers.security import SecurityAnalyzer
from airledger.analyzers.vendor import VendorRegistry
from airledger.core.ledger import NetworkLedger
from airledger.core.models import (
    EncryptionType,
    LocationReading,
    NetworkEntry,
    Observation,
    SignalReading,
)

BASE_TS = 1_700_000_000_000

#: Small OUI table: two ordinary vendors, both LOW risk.
OUI_TABLE = {
    "00:11:22": "Acme Networks",
    "00:AA:BB": "Globex",
}


@pytest.fixture
def oui_json(tmp_path):
    path = tmp_path / "oui.json"
    path.write_text(json.dumps(OUI_TABLE), encoding="utf-8")
    return path


@pytest.fixture
def registry(oui_json):
    return VendorRegistry(
        oui_json,
        suspicious_ssid_patterns=DetectionConfig().suspicious_ssid_patterns,
    )


@pytest.fixture
def mapper():
    return ChannelMapper()


@pytest.fixture
def anomaly_engine(registry, mapper):
    return AnomalyEngine(DetectionConfig(), registry, mapper)


@pytest.fixture
def make_ledger(registry, mapper):
    """Factory building a ledger that shares the test registry."""

    def _make(config=None, **kwargs):
        return NetworkLedger(config or LedgerConfig(), registry, mapper, **kwargs)

    return _make


@pytest.fixture
def ledger(make_ledger):
    return make_ledger()


@pytest.fixture
def analyzer(registry, mapper):
    return SecurityAnalyzer(AnalyzerConfig(), registry, mapper, detection=DetectionConfig())


@pytest.fixture
def make_obs():
    """Factory for observations with sensible WPA2 defaults."""

    def _make(**overrides):
        data = {
            "ssid": "Home",
            "bssid": "00:11:22:33:44:55",
            "capabilities": "[WPA2-PSK-CCMP][ESS]",
            "frequency": 2437,
            "level": -60,
            "timestamp": BASE_TS,
        }
        data.update(overrides)
        return Observation(**data)

    return _make


@pytest.fixture
def make_entry():
    """Factory for ledger entries built directly (no ledger involved)."""

    def _make(
        bssid,
        ssid="Net",
        frequency=2437,
        levels=(-60,),
        location=None,
        security=(EncryptionType.WPA2,),
        vendor="",
    ):
        signals = deque(
            SignalReading(timestamp=BASE_TS + i, level=lvl, frequency=frequency)
            for i, lvl in enumerate(levels)
        )
        locations = deque()
        if location is not None:
            locations.append(LocationReading(
                timestamp=BASE_TS, latitude=location[0], longitude=location[1]
            ))
        return NetworkEntry(
            bssid=bssid,
            ssid=ssid,
            first_seen=BASE_TS,
            last_seen=BASE_TS + len(levels),
            scan_count=max(1, len(levels)),
            signal_history=signals,
            locations=locations,
            security_types=set(security),
            vendor=vendor,
        )

    return _make


@pytest.fixture
def write_jsonl(tmp_path):
    """Write observation dicts as a JSON-lines file and return its path."""

    def _write(name, records):
        path = tmp_path / name
        path.write_text(
            "\n".join(json.dumps(r) for r in records) + "\n", encoding="utf-8"
        )
        return path

    return _write
