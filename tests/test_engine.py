"""
Tests for the engine that wires the ledger to the security analyzer.
"""

import pytest

from shared.config import AirConfig
from shared.console import AirConsole

from airledger.core.engine import LedgerEngine
from airledger.core.models import Observation, ThreatType

from conftest import BASE_TS


def _scan(count, ts):
    return [
        Observation(
            ssid=f"Net{i}",
            bssid=f"00:11:22:00:00:{i:02x}",
            capabilities="[WPA2-PSK-CCMP][ESS]",
            frequency=2412 + 5 * (i % 11),
            level=-60,
            timestamp=ts,
        )
        for i in range(count)
    ]


@pytest.fixture
def config(tmp_path, oui_json):
    config = AirConfig()
    config.ledger.database_path = str(tmp_path / "ledger.json")
    config.vendor.oui_path = str(oui_json)
    return config


@pytest.fixture
def engine(config):
    return LedgerEngine(config, AirConsole(quiet=True))


class TestScanComparison:
    """Disappearance is judged on ingest batches, not on the whole ledger."""

    def test_shrinking_scan_raises_deauth(self, engine):
        engine.ingest(_scan(20, BASE_TS), show=False)
        first = engine.analyze(show=False)
        assert first.of_type(ThreatType.DEAUTH_ATTACK) == []

        engine.ingest(_scan(5, BASE_TS + 60_000), show=False)
        report = engine.analyze(show=False)

        found = report.of_type(ThreatType.DEAUTH_ATTACK)
        assert len(found) == 1
        assert found[0].evidence["previous_count"] == 20
        assert found[0].evidence["current_count"] == 5
        assert len(found[0].affected_networks) == 15
        # The other detectors still see the full ledger
        assert report.network_count == 20
        assert len(engine.ledger) == 20

    def test_same_scan_twice_is_quiet(self, engine):
        engine.ingest(_scan(20, BASE_TS), show=False)
        engine.analyze(show=False)
        engine.ingest(_scan(20, BASE_TS + 60_000), show=False)
        assert engine.analyze(show=False).of_type(ThreatType.DEAUTH_ATTACK) == []

    def test_clear_forgets_last_scan(self, engine):
        engine.ingest(_scan(20, BASE_TS), show=False)
        engine.analyze(show=False)
        engine.clear()
        assert engine.analyzer.history == []

        engine.ingest(_scan(5, BASE_TS + 60_000), show=False)
        assert engine.analyze(show=False).of_type(ThreatType.DEAUTH_ATTACK) == []

    def test_analyze_without_ingest_uses_ledger(self, engine, config):
        engine.ingest(_scan(3, BASE_TS), show=False)
        fresh = LedgerEngine(config, AirConsole(quiet=True))
        report = fresh.analyze(show=False)
        assert report.network_count == 3
        assert fresh.analyzer.history[-1].network_count == 3
