"""
Unit tests for the population-level security analyzer.
"""

from shared.models import RiskLevel, Severity

from airledger.analyzers.security import SecurityAnalyzer
from airledger.core.models import EncryptionType, ScanSnapshot, ThreatType


def _acme(i):
    return f"00:11:22:00:00:{i:02x}"


class TestDisappearance:
    """Scan-to-scan deauthentication heuristic."""

    def test_mass_disappearance(self, analyzer, make_entry):
        everyone = [make_entry(_acme(i), ssid=f"Net{i}") for i in range(20)]
        analyzer.analyze(everyone)
        report = analyzer.analyze(everyone[:5])

        found = report.of_type(ThreatType.DEAUTH_ATTACK)
        assert len(found) == 1
        evidence = found[0].evidence
        assert evidence["disappearance_rate"] == 0.75
        assert evidence["previous_count"] == 20
        assert evidence["current_count"] == 5
        assert len(evidence["missing_bssids"]) == 15
        assert found[0].severity == Severity.CRITICAL
        assert report.risk_level == RiskLevel.DANGER

    def test_explicit_previous_snapshot(self, analyzer, make_entry):
        previous = ScanSnapshot(
            network_count=10, bssids=[_acme(i) for i in range(10)]
        )
        current = [make_entry(_acme(i)) for i in range(4)]
        report = analyzer.analyze(current, previous=previous)
        found = report.of_type(ThreatType.DEAUTH_ATTACK)
        assert len(found) == 1
        assert found[0].evidence["missing_bssids"] == [_acme(i) for i in range(4, 10)]

    def test_small_prior_ignored(self, analyzer, make_entry):
        analyzer.analyze([make_entry(_acme(i)) for i in range(5)])
        report = analyzer.analyze([])
        assert report.of_type(ThreatType.DEAUTH_ATTACK) == []

    def test_first_sweep_has_no_baseline(self, analyzer, make_entry):
        report = analyzer.analyze([make_entry(_acme(1))])
        assert report.of_type(ThreatType.DEAUTH_ATTACK) == []

    def test_growth_is_not_disappearance(self, analyzer, make_entry):
        analyzer.analyze([make_entry(_acme(i)) for i in range(6)])
        report = analyzer.analyze([make_entry(_acme(i)) for i in range(8)])
        assert report.of_type(ThreatType.DEAUTH_ATTACK) == []

    def test_history_and_reset(self, analyzer, make_entry):
        analyzer.analyze([make_entry(_acme(1))])
        analyzer.analyze([make_entry(_acme(1)), make_entry(_acme(2))])
        assert [s.network_count for s in analyzer.history] == [1, 2]
        analyzer.reset_history()
        assert analyzer.history == []


class TestEvilTwin:

    def test_different_vendors(self, analyzer, make_entry):
        entries = [
            make_entry("00:11:22:00:00:01", ssid="Corp"),
            make_entry("00:aa:bb:00:00:01", ssid="Corp"),
        ]
        found = analyzer.analyze(entries).of_type(ThreatType.EVIL_TWIN)
        assert len(found) == 1
        assert found[0].severity == Severity.HIGH
        assert found[0].evidence["vendors"] == ["Acme Networks", "Globex"]

    def test_same_vendor_is_fine(self, analyzer, make_entry):
        entries = [
            make_entry("00:11:22:00:00:01", ssid="Corp"),
            make_entry("00:11:22:00:00:02", ssid="Corp"),
        ]
        assert analyzer.analyze(entries).of_type(ThreatType.EVIL_TWIN) == []

    def test_dual_band_exempt(self, analyzer, make_entry):
        entries = [
            make_entry("00:11:22:00:00:01", ssid="Corp", frequency=2437),
            make_entry("00:aa:bb:00:00:01", ssid="Corp", frequency=5180),
        ]
        assert analyzer.analyze(entries).of_type(ThreatType.EVIL_TWIN) == []

    def test_stored_vendor_name_used(self, analyzer, make_entry):
        entries = [
            make_entry("00:11:22:00:00:01", ssid="Corp", vendor="Acme Networks"),
            make_entry("00:11:22:00:00:02", ssid="Corp", vendor="Someone Else"),
        ]
        assert len(analyzer.analyze(entries).of_type(ThreatType.EVIL_TWIN)) == 1


class TestVendorThreats:

    def test_rogue_ap_is_danger(self, analyzer, make_entry):
        report = analyzer.analyze([make_entry("00:13:37:00:00:01", ssid="Corp")])
        assert len(report.of_type(ThreatType.ROGUE_AP)) == 1
        assert len(report.of_type(ThreatType.VENDOR_ANOMALY)) == 1
        assert report.count(Severity.HIGH) == 2
        assert report.risk_level == RiskLevel.DANGER

    def test_unknown_vendor_suspicious_ssid(self, analyzer, make_entry):
        report = analyzer.analyze([make_entry("10:20:30:40:50:60", ssid="evil-ap")])
        found = report.of_type(ThreatType.VENDOR_ANOMALY)
        assert len(found) == 1
        assert found[0].severity == Severity.LOW

    def test_unknown_vendor_locally_administered(self, analyzer, make_entry):
        report = analyzer.analyze([make_entry("02:12:34:56:78:9a", ssid="Office")])
        found = report.of_type(ThreatType.VENDOR_ANOMALY)
        assert len(found) == 1
        assert found[0].severity == Severity.LOW
        assert "locally administered MAC" in found[0].description

    def test_unknown_vendor_signal_swing(self, analyzer, make_entry):
        entry = make_entry("10:20:30:40:50:60", ssid="Office", levels=(-80, -40, -30))
        found = analyzer.analyze([entry]).of_type(ThreatType.VENDOR_ANOMALY)
        assert len(found) == 1
        assert "signal swing 50 dBm" in found[0].description

    def test_unknown_vendor_steady_signal_is_quiet(self, analyzer, make_entry):
        entry = make_entry("10:20:30:40:50:60", ssid="Office", levels=(-60, -55, -58))
        assert analyzer.analyze([entry]).of_type(ThreatType.VENDOR_ANOMALY) == []

    def test_default_analyzer_flags_suspicious_ssid(self, make_entry):
        report = SecurityAnalyzer().analyze([make_entry("10:34:56:78:9a:bc", ssid="pwned-rogue")])
        assert len(report.of_type(ThreatType.VENDOR_ANOMALY)) == 1

    def test_mass_unknown(self, analyzer, make_entry):
        entries = [make_entry(f"10:20:30:00:00:{i:02x}") for i in range(11)]
        found = analyzer.analyze(entries).of_type(ThreatType.MASS_UNKNOWN_VENDOR)
        assert len(found) == 1
        assert len(found[0].affected_networks) == 5
        assert found[0].evidence["unknown_count"] == 11

    def test_ten_unknown_not_enough(self, analyzer, make_entry):
        entries = [make_entry(f"10:20:30:00:00:{i:02x}") for i in range(10)]
        assert analyzer.analyze(entries).of_type(ThreatType.MASS_UNKNOWN_VENDOR) == []


class TestRadioThreats:

    def test_karma(self, analyzer, make_entry):
        entries = [
            make_entry(_acme(1), ssid="Free WiFi"),
            make_entry(_acme(2), ssid="Airport WiFi Lounge"),
            make_entry(_acme(3), ssid="Hotel WiFi"),
        ]
        found = analyzer.analyze(entries).of_type(ThreatType.KARMA_ATTACK)
        assert len(found) == 1
        assert found[0].severity == Severity.HIGH

    def test_two_generic_ssids_not_karma(self, analyzer, make_entry):
        entries = [
            make_entry(_acme(1), ssid="Free WiFi"),
            make_entry(_acme(2), ssid="Hotel WiFi"),
        ]
        assert analyzer.analyze(entries).of_type(ThreatType.KARMA_ATTACK) == []

    def test_jamming(self, analyzer, make_entry):
        entry = make_entry(_acme(1), levels=(-30, -90, -30))
        found = analyzer.analyze([entry]).of_type(ThreatType.SIGNAL_JAMMING)
        assert len(found) == 1
        assert found[0].evidence["levels"] == [-30, -90, -30]

    def test_stable_signal_not_jamming(self, analyzer, make_entry):
        entry = make_entry(_acme(1), levels=(-60, -62, -61))
        assert analyzer.analyze([entry]).of_type(ThreatType.SIGNAL_JAMMING) == []

    def test_beacon_flooding(self, analyzer, make_entry):
        entries = [
            make_entry(_acme(i), location=(52.0001, 21.0001)) for i in range(21)
        ]
        found = analyzer.analyze(entries).of_type(ThreatType.BEACON_FLOODING)
        assert len(found) == 1
        assert found[0].evidence["network_count"] == 21

    def test_twenty_in_a_cell_is_fine(self, analyzer, make_entry):
        entries = [
            make_entry(_acme(i), location=(52.0001, 21.0001)) for i in range(20)
        ]
        assert analyzer.analyze(entries).of_type(ThreatType.BEACON_FLOODING) == []

    def test_channel_concentration(self, analyzer, make_entry):
        entries = [make_entry(_acme(i), frequency=2437) for i in range(11)]
        found = analyzer.analyze(entries).of_type(ThreatType.CHANNEL_HOPPING)
        assert len(found) == 1
        assert found[0].evidence["channel"] == 6
        assert found[0].evidence["frequency"] == 2437

    def test_spread_channels_fine(self, analyzer, make_entry):
        freqs = [2412, 2437, 2462, 5180, 5200, 5220, 5240, 5260, 5280, 5300, 5320]
        entries = [make_entry(_acme(i), frequency=f) for i, f in enumerate(freqs)]
        assert analyzer.analyze(entries).of_type(ThreatType.CHANNEL_HOPPING) == []


class TestCaptivePortal:

    def test_open_unknown_vendor(self, analyzer, make_entry):
        entry = make_entry(
            "10:20:30:40:50:60", ssid="CoffeeShop", security=(EncryptionType.OPEN,)
        )
        found = analyzer.analyze([entry]).of_type(ThreatType.CAPTIVE_PORTAL_ATTACK)
        assert len(found) == 1

    def test_guest_network_excluded(self, analyzer, make_entry):
        entry = make_entry(
            "10:20:30:40:50:60", ssid="Guest Lounge", security=(EncryptionType.OPEN,)
        )
        assert analyzer.analyze([entry]).of_type(ThreatType.CAPTIVE_PORTAL_ATTACK) == []

    def test_mainstream_vendor_excluded(self, analyzer, make_entry):
        entry = make_entry(_acme(1), ssid="CoffeeShop", security=(EncryptionType.OPEN,))
        assert analyzer.analyze([entry]).of_type(ThreatType.CAPTIVE_PORTAL_ATTACK) == []


class TestReport:

    def test_clean_population(self, analyzer, make_entry):
        report = analyzer.analyze([make_entry(_acme(1), ssid="Home")])
        assert report.anomalies == []
        assert report.risk_level == RiskLevel.SAFE
        assert report.summary == "No security anomalies detected in 1 networks"
        assert report.network_count == 1

    def test_summary_counts(self, analyzer, make_entry):
        report = analyzer.analyze([make_entry(_acme(1), levels=(-30, -90, -30))])
        assert report.summary == "1 security anomaly detected in 1 networks"
        assert report.risk_level == RiskLevel.CAUTION

    def test_empty_population(self, analyzer):
        report = analyzer.analyze([])
        assert report.risk_level == RiskLevel.SAFE
        assert report.network_count == 0
