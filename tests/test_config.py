"""
Unit tests for TOML configuration loading.
"""

import pytest

from shared.config import AirConfig, LedgerConfig


class TestDefaults:

    def test_verbose_caps(self):
        cfg = LedgerConfig()
        assert cfg.history_mode == "verbose"
        assert (cfg.signal_cap, cfg.location_cap) == (100, 50)
        assert not cfg.compact

    def test_compact_caps(self):
        cfg = LedgerConfig(history_mode="compact")
        assert (cfg.signal_cap, cfg.location_cap) == (5, 10)
        assert cfg.compact

    def test_explicit_caps_override_mode(self):
        cfg = LedgerConfig(history_mode="compact", signal_history_cap=7, location_history_cap=0)
        assert cfg.signal_cap == 7
        assert cfg.location_cap == 1

    def test_unknown_mode_falls_back_to_verbose(self):
        assert LedgerConfig(history_mode="chatty").signal_cap == 100

    def test_thresholds(self):
        cfg = AirConfig()
        assert cfg.ledger.evil_twin_split_distance_m == 5000.0
        assert cfg.ledger.evil_twin_split_window_ms == 60_000
        assert cfg.detection.dual_band_radius_m == 200.0
        assert cfg.analyzer.disappearance_rate == 0.5


class TestTomlLoading:

    def test_load_file(self, tmp_path):
        path = tmp_path / "airledger.toml"
        path.write_text(
            "[global]\n"
            'log_level = "DEBUG"\n'
            "\n"
            "[ledger]\n"
            'history_mode = "compact"\n'
            "save_interval = 1\n"
            "\n"
            "[detection]\n"
            "dual_band_radius_m = 150.0\n",
            encoding="utf-8",
        )
        cfg = AirConfig.load(path)
        assert cfg.global_settings.log_level == "DEBUG"
        assert cfg.ledger.compact
        assert cfg.ledger.save_interval == 1
        assert cfg.detection.dual_band_radius_m == 150.0
        assert cfg.analyzer.beacon_flood_threshold == 20

    def test_unknown_keys_ignored(self):
        cfg = AirConfig.from_dict({"ledger": {"save_interval": 3, "bogus": True}})
        assert cfg.ledger.save_interval == 3

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AirConfig.load(tmp_path / "nope.toml")

    def test_to_dict_round_trip(self):
        cfg = AirConfig.from_dict({"vendor": {"oui_path": "x.txt"}})
        raw = cfg.to_dict()
        assert raw["vendor"]["oui_path"] == "x.txt"
        assert raw["global_settings"]["output_dir"] == "output"
