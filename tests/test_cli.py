"""
Tests for the Click command-line interface.
"""

import json

import pytest
from click.testing import CliRunner

from airledger.cli import cli

from conftest import BASE_TS


def _scan(bssid, ssid="Home", level=-60, ts=BASE_TS, **extra):
    record = {
        "ssid": ssid,
        "bssid": bssid,
        "capabilities": "[WPA2-PSK-CCMP][ESS]",
        "frequency": 2437,
        "level": level,
        "timestamp": ts,
    }
    record.update(extra)
    return record


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, tmp_path):
    """Invoke the CLI against a ledger file inside tmp_path."""
    database = tmp_path / "ledger.json"

    def _invoke(*args, **kwargs):
        return runner.invoke(
            cli, ["--database", str(database), *args], obj={}, **kwargs
        )

    _invoke.database = database
    return _invoke


class TestIngest:

    def test_ingest_jsonl(self, invoke, write_jsonl):
        path = write_jsonl("scan.jsonl", [
            _scan("00:11:22:33:44:55"),
            _scan("00:11:22:33:44:66", ssid="Office", ts=BASE_TS + 1000),
        ])
        result = invoke("ingest", str(path))
        assert result.exit_code == 0, result.output
        assert "Ingested 2 observations" in result.output

        snapshot = json.loads(invoke.database.read_text(encoding="utf-8"))
        assert snapshot["metadata"]["total_networks"] == 2
        assert len(snapshot["networks"]) == 2

    def test_ingest_json_array_with_aliases(self, invoke, tmp_path):
        path = tmp_path / "scan.json"
        path.write_text(json.dumps([{
            "ssid": "Home",
            "bssid": "00:11:22:33:44:55",
            "caps": "[WPA2-PSK-CCMP][ESS]",
            "frequency": 2437,
            "rssi": -55,
            "time": BASE_TS,
            "lat": 52.0,
            "lng": 21.0,
        }]), encoding="utf-8")
        result = invoke("ingest", str(path))
        assert result.exit_code == 0, result.output

        snapshot = json.loads(invoke.database.read_text(encoding="utf-8"))
        entry = next(iter(snapshot["networks"].values()))
        assert entry["locations"][0]["latitude"] == 52.0
        assert entry["signal_history"][0]["level"] == -55

    def test_invalid_line_fails(self, invoke, tmp_path):
        path = tmp_path / "broken.jsonl"
        path.write_text(
            json.dumps(_scan("00:11:22:33:44:55")) + "\n{not json\n",
            encoding="utf-8",
        )
        result = invoke("ingest", str(path))
        assert result.exit_code != 0
        assert "broken.jsonl:2" in result.output
        assert not invoke.database.exists()

    def test_missing_timestamp_fails(self, invoke, write_jsonl):
        record = _scan("00:11:22:33:44:55")
        del record["timestamp"]
        result = invoke("ingest", str(write_jsonl("scan.jsonl", [record])))
        assert result.exit_code != 0
        assert "timestamp" in result.output

    def test_ingest_with_analysis_exit_code(self, invoke, write_jsonl, tmp_path):
        path = write_jsonl("scan.jsonl", [_scan("00:13:37:00:00:01", ssid="Corp")])
        report = tmp_path / "report.json"
        result = invoke("ingest", str(path), "--analyze", "-o", str(report))
        assert result.exit_code == 2
        data = json.loads(report.read_text(encoding="utf-8"))
        assert data["risk_level"] == "DANGER"

    def test_disappearing_networks_between_files(self, invoke, write_jsonl, tmp_path):
        bssids = [f"00:11:22:00:00:{i:02x}" for i in range(20)]
        first = write_jsonl("scan1.jsonl", [
            _scan(b, ssid=f"Net{i}", frequency=2412 + 5 * (i % 11))
            for i, b in enumerate(bssids)
        ])
        second = write_jsonl("scan2.jsonl", [
            _scan(b, ssid=f"Net{i}", frequency=2412 + 5 * (i % 11), ts=BASE_TS + 60_000)
            for i, b in enumerate(bssids[:5])
        ])
        report = tmp_path / "report.json"
        result = invoke("ingest", str(first), str(second), "--analyze", "-o", str(report))
        assert result.exit_code == 2, result.output

        data = json.loads(report.read_text(encoding="utf-8"))
        types = [a["type"] for a in data["anomalies"]]
        assert "DEAUTH_ATTACK" in types


class TestAnalyze:

    def test_danger_exit_code(self, invoke, write_jsonl):
        invoke("ingest", str(write_jsonl("scan.jsonl", [_scan("00:13:37:00:00:01")])))
        result = invoke("analyze")
        assert result.exit_code == 2
        assert "DANGER" in result.output

    def test_clean_ledger_exits_zero(self, invoke, write_jsonl):
        invoke("ingest", str(write_jsonl("scan.jsonl", [_scan("00:11:22:33:44:55")])))
        result = invoke("analyze")
        assert result.exit_code == 0, result.output
        assert "SAFE" in result.output

    def test_json_report(self, invoke, write_jsonl, tmp_path):
        invoke("ingest", str(write_jsonl("scan.jsonl", [_scan("00:11:22:33:44:55")])))
        report = tmp_path / "out" / "report.json"
        result = invoke("analyze", "--output", str(report))
        assert result.exit_code == 0, result.output
        data = json.loads(report.read_text(encoding="utf-8"))
        assert data["tool"] == "airledger"
        assert data["summary"]["network_count"] == 1


class TestQueries:

    def test_networks_empty(self, invoke):
        result = invoke("networks")
        assert result.exit_code == 0
        assert "The ledger is empty" in result.output

    def test_networks_listing(self, invoke, write_jsonl):
        invoke("ingest", str(write_jsonl("scan.jsonl", [_scan("00:11:22:33:44:55")])))
        result = invoke("networks", "--limit", "5")
        assert result.exit_code == 0, result.output
        assert "Known Networks" in result.output

    def test_stats(self, invoke, write_jsonl):
        invoke("ingest", str(write_jsonl("scan.jsonl", [_scan("00:11:22:33:44:55")])))
        result = invoke("stats")
        assert result.exit_code == 0, result.output
        assert "Open networks" in result.output

    def test_vendor(self, invoke):
        result = invoke("vendor", "00:13:37:aa:bb:cc")
        assert result.exit_code == 0, result.output
        assert "Hak5" in result.output
        assert "High-risk vendor" in result.output

    def test_channel(self, invoke):
        result = invoke("channel", "2484")
        assert result.exit_code == 0, result.output
        assert "14" in result.output
        assert "2.4GHz" in result.output

    def test_unknown_channel(self, invoke):
        result = invoke("channel", "900")
        assert result.exit_code == 0
        assert "not a WiFi channel" in result.output


class TestMaintenance:

    def test_export(self, invoke, write_jsonl, tmp_path):
        invoke("ingest", str(write_jsonl("scan.jsonl", [_scan("00:11:22:33:44:55")])))
        target = tmp_path / "export.json"
        result = invoke("export", "-o", str(target))
        assert result.exit_code == 0, result.output
        data = json.loads(target.read_text(encoding="utf-8"))
        assert data["metadata"]["total_networks"] == 1
        assert data["metadata"]["version"] == "1.0"

    def test_clear_requires_confirmation(self, invoke, write_jsonl):
        invoke("ingest", str(write_jsonl("scan.jsonl", [_scan("00:11:22:33:44:55")])))
        result = invoke("clear", input="n\n")
        assert result.exit_code == 1
        snapshot = json.loads(invoke.database.read_text(encoding="utf-8"))
        assert snapshot["metadata"]["total_networks"] == 1

    def test_clear_yes(self, invoke, write_jsonl):
        invoke("ingest", str(write_jsonl("scan.jsonl", [_scan("00:11:22:33:44:55")])))
        result = invoke("clear", "--yes")
        assert result.exit_code == 0, result.output
        assert "Ledger cleared" in result.output
        snapshot = json.loads(invoke.database.read_text(encoding="utf-8"))
        assert snapshot["networks"] == {}


class TestGlobalOptions:

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_missing_config(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config", str(tmp_path / "nope.toml"), "stats"], obj={})
        assert result.exit_code == 1
