"""
Unit tests for the per-observation anomaly checks.
"""

from airledger.analyzers.anomaly import AnomalyEngine, PriorState
from airledger.core.models import (
    AnomalySeverity,
    AnomalyType,
    EncryptionType,
    Observation,
)


def _types(records):
    return {(r.type, r.severity) for r in records}


class TestSecurityChecks:

    def test_hidden_network(self, anomaly_engine, make_obs, make_entry):
        obs = make_obs(ssid="")
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid, ssid=""), [])
        assert (AnomalyType.HIDDEN_NETWORK, AnomalySeverity.INFO) in _types(records)

    def test_wep_and_wpa_are_warnings(self, anomaly_engine, make_obs, make_entry):
        for caps in ("[WEP][ESS]", "[WPA-PSK-TKIP][ESS]"):
            obs = make_obs(capabilities=caps)
            records = anomaly_engine.inspect(obs, make_entry(obs.bssid), [])
            assert (AnomalyType.WEAK_SECURITY, AnomalySeverity.WARNING) in _types(records)

    def test_wpa2_not_weak(self, anomaly_engine, make_obs, make_entry):
        obs = make_obs()
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid), [])
        assert AnomalyType.WEAK_SECURITY not in {r.type for r in records}

    def test_downgrade_wpa_to_wep(self):
        prior = PriorState(
            security_types=frozenset({EncryptionType.WPA}),
            last_frequency=2437,
            last_location=None,
        )
        obs = Observation(bssid="00:11:22:33:44:55", capabilities="[WEP]", timestamp=1)
        records = AnomalyEngine.check_security_downgrade(obs, prior)
        assert len(records) == 1
        assert records[0].severity == AnomalySeverity.CRITICAL

    def test_owe_is_not_a_downgrade(self, make_obs):
        prior = PriorState(frozenset({EncryptionType.WPA3}), 2437, None)
        obs = make_obs(capabilities="[RSN-OWE-CCMP][ESS]")
        assert AnomalyEngine.check_security_downgrade(obs, prior) == []

    def test_prior_checks_skipped_for_new_entries(self, anomaly_engine, make_obs, make_entry):
        obs = make_obs(capabilities="[ESS]", frequency=5180)
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid), [], prior=None)
        types = {r.type for r in records}
        assert AnomalyType.SECURITY_DOWNGRADE not in types
        assert AnomalyType.FREQUENCY_CHANGE not in types


class TestSignalChecks:

    def test_unstable_window(self, anomaly_engine, make_obs, make_entry):
        entry = make_entry("00:11:22:33:44:55", levels=(-30, -90, -30, -90, -30))
        records = anomaly_engine.inspect(make_obs(level=-30), entry, [])
        assert (AnomalyType.SIGNAL_ANOMALY, AnomalySeverity.WARNING) in _types(records)

    def test_short_window_ignored(self, anomaly_engine, make_obs, make_entry):
        entry = make_entry("00:11:22:33:44:55", levels=(-30, -90, -30))
        records = anomaly_engine.inspect(make_obs(level=-30), entry, [])
        assert (AnomalyType.SIGNAL_ANOMALY, AnomalySeverity.WARNING) not in _types(records)

    def test_super_strong(self, anomaly_engine, make_obs, make_entry):
        obs = make_obs(level=-10)
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid, levels=(-10,)), [])
        assert (AnomalyType.SIGNAL_ANOMALY, AnomalySeverity.INFO) in _types(records)
        assert (AnomalyType.SUPER_STRONG_SIGNAL, AnomalySeverity.WARNING) in _types(records)

    def test_boundary_not_strong(self, anomaly_engine, make_obs, make_entry):
        obs = make_obs(level=-20)
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid), [])
        assert AnomalyType.SUPER_STRONG_SIGNAL not in {r.type for r in records}

    def test_unusual_frequency(self, anomaly_engine, make_obs, make_entry):
        obs = make_obs(frequency=900)
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid, frequency=900), [])
        assert (AnomalyType.UNUSUAL_FREQUENCY, AnomalySeverity.WARNING) in _types(records)

    def test_frequency_change(self, anomaly_engine, make_obs, make_entry):
        prior = PriorState(frozenset({EncryptionType.WPA2}), 2437, None)
        obs = make_obs(frequency=5180)
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid, frequency=5180), [], prior)
        assert (AnomalyType.FREQUENCY_CHANGE, AnomalySeverity.INFO) in _types(records)


class TestVendorCheck:

    def test_high_risk_vendor(self, anomaly_engine, make_obs, make_entry):
        obs = make_obs(bssid="00:13:37:aa:bb:cc")
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid), [])
        assert (AnomalyType.VENDOR_ANOMALY, AnomalySeverity.HIGH) in _types(records)

    def test_unknown_vendor_with_suspicious_ssid(self, anomaly_engine, make_obs, make_entry):
        obs = make_obs(bssid="10:20:30:40:50:60", ssid="FreeHackZone")
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid, ssid=obs.ssid), [])
        assert (AnomalyType.VENDOR_ANOMALY, AnomalySeverity.LOW) in _types(records)

    def test_unknown_vendor_with_swing(self, anomaly_engine, make_obs, make_entry):
        obs = make_obs(bssid="10:20:30:40:50:60", level=-30)
        entry = make_entry(obs.bssid, levels=(-80, -40, -30))
        records = anomaly_engine.inspect(obs, entry, [])
        assert (AnomalyType.VENDOR_ANOMALY, AnomalySeverity.LOW) in _types(records)

    def test_unknown_vendor_alone_is_fine(self, anomaly_engine, make_obs, make_entry):
        obs = make_obs(bssid="10:20:30:40:50:60")
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid), [])
        assert AnomalyType.VENDOR_ANOMALY not in {r.type for r in records}


class TestPopulationChecks:

    def test_beacon_stuffing(self, anomaly_engine, make_obs, make_entry):
        other = make_entry("00:11:22:33:44:55", ssid="Corp")
        obs = make_obs(ssid="Guest")
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid, ssid="Guest"), [other])
        assert (AnomalyType.BEACON_STUFFING, AnomalySeverity.WARNING) in _types(records)

    def test_evil_twin_far_is_high(self, anomaly_engine, make_obs, make_entry):
        twin = make_entry("00:aa:bb:00:00:01", ssid="Home", location=(48.0, 2.0))
        obs = make_obs(ssid="Home", latitude=52.0, longitude=21.0)
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid, ssid="Home"), [twin])
        assert (AnomalyType.EVIL_TWIN, AnomalySeverity.HIGH) in _types(records)

    def test_evil_twin_without_locations_is_high(self, anomaly_engine, make_obs, make_entry):
        twin = make_entry("00:aa:bb:00:00:01", ssid="Home")
        obs = make_obs(ssid="Home")
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid, ssid="Home"), [twin])
        assert (AnomalyType.EVIL_TWIN, AnomalySeverity.HIGH) in _types(records)

    def test_dual_band_pair_exempt(self, anomaly_engine, make_obs, make_entry):
        twin = make_entry("00:11:22:00:00:01", ssid="Home", frequency=2437, location=(52.0, 21.0))
        obs = make_obs(ssid="Home", frequency=5180, latitude=52.0, longitude=21.0001)
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid, ssid="Home"), [twin])
        assert AnomalyType.EVIL_TWIN not in {r.type for r in records}

    def test_dual_band_too_far_apart(self, anomaly_engine, make_obs, make_entry):
        twin = make_entry("00:11:22:00:00:01", ssid="Home", frequency=2437, location=(52.0, 21.0))
        obs = make_obs(ssid="Home", frequency=5180, latitude=52.01, longitude=21.0)
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid, ssid="Home"), [twin])
        assert AnomalyType.EVIL_TWIN in {r.type for r in records}

    def test_dual_band_requires_every_twin(self, anomaly_engine, make_obs, make_entry):
        twins = [
            make_entry("00:11:22:00:00:01", ssid="Home", frequency=2437, location=(52.0, 21.0)),
            make_entry("00:11:22:00:00:02", ssid="Home", frequency=5200, location=(52.0, 21.0)),
        ]
        obs = make_obs(ssid="Home", frequency=5180, latitude=52.0, longitude=21.0)
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid, ssid="Home"), twins)
        assert AnomalyType.EVIL_TWIN in {r.type for r in records}


class TestAdversarialInput:
    """No check raises on absent values."""

    def test_everything_absent(self, anomaly_engine, make_obs, make_entry):
        obs = make_obs(ssid="", bssid="zz", frequency=-5, level=-100, capabilities="")
        entry = make_entry(obs.bssid, ssid="", frequency=-5, levels=())
        prior = PriorState(frozenset(), 0, None)
        records = anomaly_engine.inspect(obs, entry, [entry], prior)
        types = {r.type for r in records}
        assert AnomalyType.HIDDEN_NETWORK in types
        assert AnomalyType.UNUSUAL_FREQUENCY not in types
        assert AnomalyType.FREQUENCY_CHANGE not in types

    def test_zero_timestamp(self, anomaly_engine, make_obs, make_entry):
        obs = make_obs(timestamp=0, latitude=0.0, longitude=0.0)
        records = anomaly_engine.inspect(obs, make_entry(obs.bssid), [])
        assert all(r.timestamp == 0 for r in records)
