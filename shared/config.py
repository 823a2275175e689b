"""
AirLedger Configuration Management
===================================

Dataclass-based configuration for the network ledger, the per-observation
anomaly checks, the fleet-wide security analyzer and the vendor registry,
persisted as TOML.

Every threshold that the detection heuristics rely on lives here rather
than in code, including the two uncalibrated distances (the 5 km evil-twin
split radius and the 200 m dual-band radius), so that deployments can tune
them without patching.

Example ``config.toml``::

    [global]
    log_level = "DEBUG"

    [ledger]
    database_path = "data/ledger.json"
    history_mode = "compact"

    [detection]
    dual_band_radius_m = 150.0

References:
    - Wiggins, A. (2011). The Twelve-Factor App. https://12factor.net/
    - TOML v1.0.0 Specification. https://toml.io/en/v1.0.0
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore[no-redef]


# ---------------------------------------------------------------------------
# Default configuration file path relative to the project root
# ---------------------------------------------------------------------------
_DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parent.parent / "config.toml"

# History caps per mode: (signal samples, location samples)
HISTORY_CAPS: dict[str, tuple[int, int]] = {
    "verbose": (100, 50),
    "compact": (5, 10),
}


# ========================== Section Configs ================================


@dataclass(frozen=False, slots=True)
class LedgerConfig:
    """Storage, history and merge policy of the network ledger.

    ``history_mode`` selects between the two recording policies:

    * ``verbose`` -- every accepted observation appends a signal sample;
      caps of 100 signal / 50 location samples.
    * ``compact`` -- a signal sample is appended only when the level moved
      by more than ``compact_signal_delta_dbm``; caps of 5 / 10.

    Explicit ``signal_history_cap`` / ``location_history_cap`` values
    override the mode defaults.
    """

    database_path: str = "data/airledger.json"
    history_mode: str = "verbose"
    signal_history_cap: Optional[int] = None
    location_history_cap: Optional[int] = None
    compact_signal_delta_dbm: int = 10

    # Location rate limiter (aggressive profile; 3000 ms / 5 m is conservative)
    min_location_interval_ms: int = 1000
    min_location_distance_m: float = 2.0

    # Persist after this many mutations (1 = write-through)
    save_interval: int = 10

    # Same identity seen this far apart this quickly is split off
    evil_twin_split_distance_m: float = 5000.0
    evil_twin_split_window_ms: int = 60_000

    @property
    def signal_cap(self) -> int:
        if self.signal_history_cap is not None:
            return max(1, self.signal_history_cap)
        return HISTORY_CAPS.get(self.history_mode, HISTORY_CAPS["verbose"])[0]

    @property
    def location_cap(self) -> int:
        if self.location_history_cap is not None:
            return max(1, self.location_history_cap)
        return HISTORY_CAPS.get(self.history_mode, HISTORY_CAPS["verbose"])[1]

    @property
    def compact(self) -> bool:
        return self.history_mode == "compact"


@dataclass(frozen=False, slots=True)
class DetectionConfig:
    """Thresholds for the checks run on every ledger update."""

    signal_variance_threshold_dbm: float = 15.0
    signal_variance_window: int = 5
    strong_signal_dbm: int = -20
    location_mismatch_m: float = 1000.0
    frequency_change_mhz: int = 100
    dual_band_radius_m: float = 200.0
    evil_twin_proximity_m: float = 100.0
    min_usual_frequency_mhz: int = 2400
    max_usual_frequency_mhz: int = 6000
    vendor_signal_swing_dbm: float = 30.0
    suspicious_ssid_patterns: list[str] = field(
        default_factory=lambda: [
            "test", "hack", "pwn", "evil", "rogue", "fake", "monitor",
            "probe", "scan", "attack", "pineapple", r"wifi.*pineapple",
        ]
    )


@dataclass(frozen=False, slots=True)
class AnalyzerConfig:
    """Thresholds for the population-level security sweep.

    Reference:
        Bahl, P. & Padmanabhan, V. N. (2000). RADAR: An In-Building
        RF-based User Location and Tracking System. IEEE INFOCOM.
    """

    disappearance_rate: float = 0.5
    disappearance_min_prior: int = 5
    karma_min_networks: int = 3
    karma_ssids: list[str] = field(
        default_factory=lambda: [
            "Free WiFi", "Public WiFi", "Guest", "WiFi", "Internet",
            "Starbucks", "McDonalds", "Airport WiFi", "Hotel WiFi",
        ]
    )
    beacon_flood_threshold: int = 20
    grid_precision: int = 1000
    channel_concentration_ratio: float = 0.5
    channel_min_population: int = 10
    unknown_vendor_ratio: float = 0.8
    unknown_vendor_min: int = 10
    jamming_variance: float = 400.0
    jamming_window: int = 3
    history_size: int = 20


@dataclass(frozen=False, slots=True)
class VendorConfig:
    """Location of the bulk OUI table (IEEE ``oui.txt`` or JSON mapping)."""

    oui_path: str = "data/oui.txt"


# =========================== Global Settings ===============================


@dataclass(frozen=False, slots=True)
class GlobalConfig:
    """Settings shared by every AirLedger component."""

    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_json: bool = False
    output_dir: str = "output"
    version: str = "1.0.0"


# =========================== Master Config =================================


@dataclass(frozen=False, slots=True)
class AirConfig:
    """Master configuration aggregating every section.

    Usage:
        >>> config = AirConfig.load()                  # default path
        >>> config = AirConfig.load("site.toml")       # explicit path
        >>> config.ledger.signal_cap
        100
    """

    global_settings: GlobalConfig = field(default_factory=GlobalConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    vendor: VendorConfig = field(default_factory=VendorConfig)

    # ------------------------------------------------------------------ #
    #  TOML Loading
    # ------------------------------------------------------------------ #

    @classmethod
    def load(cls, path: str | Path | None = None) -> AirConfig:
        """Load configuration from a TOML file.

        Missing sections and keys fall back to dataclass defaults.

        Args:
            path: TOML file. Defaults to ``<project_root>/config.toml``.

        Returns:
            A fully-populated :class:`AirConfig`.

        Raises:
            FileNotFoundError: If an explicitly given *path* does not exist.
        """
        config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH

        if not config_path.exists():
            if path is not None:
                raise FileNotFoundError(
                    f"Configuration file not found: {config_path}"
                )
            return cls()

        with open(config_path, "rb") as fh:
            raw: dict[str, Any] = tomllib.load(fh)

        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> AirConfig:
        """Build a configuration from an already-parsed mapping."""
        return cls(
            global_settings=cls._build_section(GlobalConfig, raw.get("global", {})),
            ledger=cls._build_section(LedgerConfig, raw.get("ledger", {})),
            detection=cls._build_section(DetectionConfig, raw.get("detection", {})),
            analyzer=cls._build_section(AnalyzerConfig, raw.get("analyzer", {})),
            vendor=cls._build_section(VendorConfig, raw.get("vendor", {})),
        )

    # ------------------------------------------------------------------ #
    #  Serialisation helpers
    # ------------------------------------------------------------------ #

    def to_dict(self) -> dict[str, Any]:
        """Serialise the entire configuration tree to a plain dictionary."""
        return asdict(self)

    # ------------------------------------------------------------------ #
    #  Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _build_section(cls: type, data: dict[str, Any]) -> Any:
        """Instantiate dataclass *cls* from the keys it declares.

        Unknown keys are ignored so newer config files load on older code.
        """
        valid_keys = {f for f in cls.__dataclass_fields__}  # type: ignore[attr-defined]
        return cls(**{k: v for k, v in data.items() if k in valid_keys})

