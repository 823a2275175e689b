"""
AirLedger Core Data Models
===========================

Pydantic domain models for the wireless network observation ledger:
raw observations, the per-network ledger entry with its bounded signal and
location histories, per-entry anomaly records, vendor / channel lookups and
the fleet-wide security report.

Anomaly and threat codes are closed enumerations; their lowercase string
values only appear on the serialisation surface (snapshot files, JSON
reports).

References:
    - IEEE. (2020). IEEE Std 802.11-2020: Wireless LAN Medium Access Control
      (MAC) and Physical Layer (PHY) Specifications.
    - IEEE. (2014). IEEE Std 802-2014. Section 8.2: MAC address format
      (universal / local and individual / group bits).
    - Wi-Fi Alliance. (2018). WPA3 Specification v1.0.
    - Pydantic v2 Documentation. https://docs.pydantic.dev/latest/
"""

from __future__ import annotations

import enum
import re
from collections import deque
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from shared.models import RiskLevel, Severity


# ---------------------------------------------------------------------------
# Identity helpers
# ---------------------------------------------------------------------------

#: Fingerprint prefix used when the SSID is empty (hidden network).
HIDDEN_KEY = "hidden"

#: Separator between a fingerprint and its evil-twin sibling counter.
EVIL_TWIN_SUFFIX = "_evil-twin-"

_NON_HEX = re.compile(r"[^0-9a-fA-F]")


def canonical_bssid(value: str) -> str:
    """Normalise a MAC address to lowercase, colon-separated form.

    Accepts ``AA-BB-CC-DD-EE-FF``, ``aabb.ccdd.eeff`` and bare 12-digit hex.
    Values that do not contain exactly 12 hex digits are returned stripped
    and lowercased so that the vendor registry can flag them as invalid.
    """
    raw = (value or "").strip()
    digits = _NON_HEX.sub("", raw).lower()
    if len(digits) != 12:
        return raw.lower()
    return ":".join(digits[i:i + 2] for i in range(0, 12, 2))


def network_fingerprint(ssid: str, bssid: str) -> str:
    """Stable ledger key for an (SSID, BSSID) identity.

    The SSID is hex-encoded (UTF-8 bytes) so no SSID content can collide
    with the separator; an empty SSID becomes the literal ``hidden``, which
    contains non-hex characters and therefore never clashes with an encoded
    SSID.

    >>> network_fingerprint("Home", "AA:BB:CC:DD:EE:FF")
    '486f6d65_aa:bb:cc:dd:ee:ff'
    """
    ssid_key = ssid.encode("utf-8").hex() if ssid else HIDDEN_KEY
    return f"{ssid_key}_{canonical_bssid(bssid)}"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class EncryptionType(str, enum.Enum):
    """Security label derived from a platform capability string.

    Reference:
        IEEE. (2020). IEEE Std 802.11-2020. Section 12: Security.
    """

    OPEN = "Open"
    WEP = "WEP"
    WPA = "WPA"
    WPA2 = "WPA2"
    WPA3 = "WPA3"
    WPA3_SAE = "WPA3-SAE"
    OWE = "OWE"

    @classmethod
    def from_capabilities(cls, capabilities: str) -> EncryptionType:
        """Classify a capability descriptor such as ``[WPA2-PSK-CCMP][ESS]``.

        Tokens are tested in a fixed order and the first hit wins, so a
        mixed ``[WPA-PSK][WPA2-PSK]`` string classifies as WPA2 and any WEP
        token dominates.  No recognised token means an open network.
        """
        caps = (capabilities or "").upper()
        for token, label in _CAPABILITY_TOKENS:
            if token in caps:
                return label
        return cls.OPEN

    @property
    def strength(self) -> Optional[int]:
        """Protocol strength rank; ``None`` for OWE which is not ranked."""
        return _ENCRYPTION_STRENGTH.get(self.value)


_CAPABILITY_TOKENS: tuple[tuple[str, EncryptionType], ...] = (
    ("WEP", EncryptionType.WEP),
    ("WPA3", EncryptionType.WPA3),
    ("WPA2", EncryptionType.WPA2),
    ("WPA", EncryptionType.WPA),
    ("OWE", EncryptionType.OWE),
    ("SAE", EncryptionType.WPA3_SAE),
)

# WPA3 > WPA2 > WPA > {WEP, Open}
_ENCRYPTION_STRENGTH: dict[str, int] = {
    "WPA3": 3,
    "WPA3-SAE": 3,
    "WPA2": 2,
    "WPA": 1,
    "WEP": 0,
    "Open": 0,
}


class AnomalyType(str, enum.Enum):
    """Per-entry anomaly taxonomy recorded on ledger entries."""

    EVIL_TWIN = "evil_twin"
    SUSPECTED_EVIL_TWIN = "suspected_evil_twin"
    SECURITY_DOWNGRADE = "security_downgrade"
    WEAK_SECURITY = "weak_security"
    HIDDEN_NETWORK = "hidden_network"
    SIGNAL_ANOMALY = "signal_anomaly"
    LOCATION_MISMATCH = "location_mismatch"
    FREQUENCY_CHANGE = "frequency_change"
    VENDOR_ANOMALY = "vendor_anomaly"
    BEACON_STUFFING = "beacon_stuffing"
    SUPER_STRONG_SIGNAL = "super_strong_signal"
    UNUSUAL_FREQUENCY = "unusual_frequency"


class AnomalySeverity(str, enum.Enum):
    """Severity attached to a per-entry anomaly record."""

    INFO = "INFO"
    LOW = "LOW"
    WARNING = "WARNING"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class SecurityRisk(str, enum.Enum):
    """Risk class of a hardware vendor / MAC address."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    UNKNOWN = "UNKNOWN"


class ThreatType(str, enum.Enum):
    """Population-level threat classes reported by the security analyzer."""

    EVIL_TWIN = "EVIL_TWIN"
    ROGUE_AP = "ROGUE_AP"
    DEAUTH_ATTACK = "DEAUTH_ATTACK"
    KARMA_ATTACK = "KARMA_ATTACK"
    SIGNAL_JAMMING = "SIGNAL_JAMMING"
    VENDOR_ANOMALY = "VENDOR_ANOMALY"
    MASS_UNKNOWN_VENDOR = "MASS_UNKNOWN_VENDOR"
    CHANNEL_HOPPING = "CHANNEL_HOPPING"
    BEACON_FLOODING = "BEACON_FLOODING"
    CAPTIVE_PORTAL_ATTACK = "CAPTIVE_PORTAL_ATTACK"


# ---------------------------------------------------------------------------
# Observation (ephemeral input)
# ---------------------------------------------------------------------------


class Observation(BaseModel):
    """One sighting of a network as reported by a platform scan.

    Attributes:
        ssid: Network name; empty for a hidden network.
        bssid: Radio MAC address, canonicalised to ``aa:bb:cc:dd:ee:ff``.
        capabilities: Raw encryption descriptor, e.g. ``[WPA2-PSK-CCMP][ESS]``.
        frequency: Centre frequency in MHz (``<= 0`` means unknown).
        level: Received signal strength in dBm.
        timestamp: Milliseconds since the Unix epoch.
        latitude: Optional fix latitude in degrees.
        longitude: Optional fix longitude in degrees.
        accuracy: Optional fix accuracy radius in metres.
    """

    model_config = ConfigDict(frozen=True)

    ssid: str = ""
    bssid: str
    capabilities: str = ""
    frequency: int = 0
    level: int = -100
    timestamp: int = Field(..., ge=0, description="Epoch milliseconds")
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    accuracy: Optional[float] = None

    @field_validator("ssid", "capabilities", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("bssid")
    @classmethod
    def _canonical_bssid(cls, value: str) -> str:
        return canonical_bssid(value)

    @property
    def security_type(self) -> EncryptionType:
        return EncryptionType.from_capabilities(self.capabilities)

    @property
    def has_location(self) -> bool:
        """Both coordinates present.

        Absence is ``None``; an explicit ``(0.0, 0.0)`` is a real fix.
        """
        return self.latitude is not None and self.longitude is not None

    @property
    def fingerprint(self) -> str:
        return network_fingerprint(self.ssid, self.bssid)

    @property
    def signal_quality(self) -> int:
        return signal_quality(self.level)


_QUALITY_STEPS: tuple[tuple[int, int], ...] = (
    (-30, 100), (-40, 90), (-50, 80), (-60, 70),
    (-70, 60), (-80, 50), (-90, 30),
)


def signal_quality(level: int) -> int:
    """Stepped RSSI-to-percentage mapping shown in network listings."""
    for floor, pct in _QUALITY_STEPS:
        if level >= floor:
            return pct
    return 10


# ---------------------------------------------------------------------------
# Ledger entry
# ---------------------------------------------------------------------------


class SignalReading(BaseModel):
    """Signal sample: epoch ms, dBm and the frequency it was heard on."""

    timestamp: int
    level: int
    frequency: int = 0


class LocationReading(BaseModel):
    """Location fix at which a network was observed."""

    timestamp: int
    latitude: float
    longitude: float
    accuracy: float = 0.0


class AnomalyRecord(BaseModel):
    """An anomaly detected on a ledger entry.

    Records are deduplicated per entry on ``(type, severity)``.
    """

    timestamp: int
    type: AnomalyType
    description: str = ""
    severity: AnomalySeverity = AnomalySeverity.INFO

    @property
    def key(self) -> tuple[AnomalyType, AnomalySeverity]:
        return self.type, self.severity


class NetworkEntry(BaseModel):
    """Deduplicated history of one network identity.

    Attributes:
        bssid: Radio MAC address.
        ssid: Network name (empty when hidden).
        first_seen: Epoch ms of the first accepted observation (immutable).
        last_seen: Epoch ms of the latest observation (non-decreasing).
        scan_count: Accepted observations merged into this entry.
        signal_history: Bounded, oldest-first signal samples.
        locations: Bounded, oldest-first, rate-limited location fixes.
        security_types: Union of every security label ever observed.
        anomalies: Append-only anomaly log.
        vendor: Vendor name resolved on creation.
        address: Reverse-geocoded address; may remain empty.
    """

    bssid: str
    ssid: str = ""
    first_seen: int
    last_seen: int
    scan_count: int = Field(default=1, ge=1)
    signal_history: deque[SignalReading] = Field(default_factory=deque)
    locations: deque[LocationReading] = Field(default_factory=deque)
    security_types: set[EncryptionType] = Field(default_factory=set)
    anomalies: list[AnomalyRecord] = Field(default_factory=list)
    vendor: str = ""
    address: str = ""

    @field_serializer("security_types")
    def _serialize_security_types(self, value: set[EncryptionType]) -> list[str]:
        return sorted(item.value for item in value)

    @property
    def last_signal(self) -> Optional[SignalReading]:
        return self.signal_history[-1] if self.signal_history else None

    @property
    def last_location(self) -> Optional[LocationReading]:
        return self.locations[-1] if self.locations else None

    @property
    def last_frequency(self) -> int:
        last = self.last_signal
        return last.frequency if last is not None else 0

    @property
    def is_open(self) -> bool:
        return EncryptionType.OPEN in self.security_types

    def recent_levels(self, count: int) -> list[int]:
        """Levels of the *count* most recent signal samples, oldest first."""
        if count <= 0:
            return []
        return [s.level for s in list(self.signal_history)[-count:]]

    def has_anomaly(self, anomaly_type: AnomalyType) -> bool:
        return any(a.type == anomaly_type for a in self.anomalies)


class LedgerStats(BaseModel):
    """Aggregate counters over the whole ledger."""

    total_networks: int = 0
    total_anomalies: int = 0
    critical_anomalies: int = 0
    open_networks: int = 0


# ---------------------------------------------------------------------------
# Vendor and channel lookups
# ---------------------------------------------------------------------------


class VendorInfo(BaseModel):
    """Result of an OUI lookup."""

    model_config = ConfigDict(frozen=True)

    name: str
    full_name: str = ""
    country: str = ""
    is_common: bool = False
    security_risk: SecurityRisk = SecurityRisk.UNKNOWN


class MacSecurityAnalysis(BaseModel):
    """Address-level risk assessment combining vendor and MAC bits.

    Attributes:
        bssid: Address analysed.
        vendor: Vendor lookup result.
        is_randomized: Locally administered bit set (bit 1 of octet 0).
        is_multicast: Group bit set (bit 0 of octet 0).
        suspicious_factors: Human-readable reasons contributing to the risk.
        risk_level: Derived risk class.
    """

    bssid: str
    vendor: VendorInfo
    is_randomized: bool = False
    is_multicast: bool = False
    suspicious_factors: list[str] = Field(default_factory=list)
    risk_level: SecurityRisk = SecurityRisk.UNKNOWN


class ChannelInfo(BaseModel):
    """Channel assignment of a centre frequency.

    Attributes:
        frequency: Centre frequency in MHz.
        channel: IEEE channel number (0 when unknown).
        band: ``2.4GHz``, ``5GHz``, ``6GHz``, ``60GHz`` or ``Unknown``.
        region: Regulatory note (``Global``, ``EU/JP``, ``JP only``) or
            ``Calc`` when the number was computed rather than tabulated.
    """

    frequency: int = 0
    channel: int = 0
    band: str = "Unknown"
    region: str = "Global"

    @property
    def is_known(self) -> bool:
        return self.band != "Unknown"


# ---------------------------------------------------------------------------
# Security analyzer output
# ---------------------------------------------------------------------------


class SecurityAnomaly(BaseModel):
    """A population-level security finding.

    Attributes:
        id: Unique finding identifier.
        type: Threat class.
        severity: Finding severity.
        description: Human-readable summary.
        affected_networks: BSSIDs involved.
        evidence: Supporting measurements (rates, counts, cells).
        recommended_action: Suggested response.
        timestamp: When the finding was produced.
    """

    id: UUID = Field(default_factory=uuid4)
    type: ThreatType
    severity: Severity
    description: str = ""
    affected_networks: list[str] = Field(default_factory=list)
    evidence: dict[str, Any] = Field(default_factory=dict)
    recommended_action: str = ""
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class SecurityReport(BaseModel):
    """Result of one :meth:`SecurityAnalyzer.analyze` sweep."""

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    anomalies: list[SecurityAnomaly] = Field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.SAFE
    summary: str = ""
    network_count: int = 0

    def count(self, severity: Severity) -> int:
        return sum(1 for a in self.anomalies if a.severity == severity)

    def of_type(self, threat: ThreatType) -> list[SecurityAnomaly]:
        return [a for a in self.anomalies if a.type == threat]


class ScanSnapshot(BaseModel):
    """Compact record of one analysed population, kept for comparison."""

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    network_count: int = 0
    bssids: list[str] = Field(default_factory=list)
    unique_vendors: list[str] = Field(default_factory=list)
