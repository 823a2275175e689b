"""
AirLedger Anomaly Engine
=========================

Per-observation anomaly checks run by the ledger on every update.  Each
check looks at the incoming observation, the entry it was merged into (or
that was created for it), the entry's state *before* the merge, and the
rest of the ledger population, and returns zero or more
:class:`AnomalyRecord` objects.

The engine holds no state between calls; all history lives on the ledger
entries.  No check raises on absent values: an empty SSID, absent
coordinates or a non-positive frequency simply make the checks that need
them skip.

Checks:
    - HIDDEN_NETWORK       empty SSID
    - WEAK_SECURITY        Open (CRITICAL), WEP / WPA (WARNING)
    - SECURITY_DOWNGRADE   weaker protocol than previously seen
    - SIGNAL_ANOMALY       unstable last-5 window or implausibly strong level
    - LOCATION_MISMATCH    moved more than 1 km since the last fix
    - FREQUENCY_CHANGE     centre frequency moved more than 100 MHz
    - VENDOR_ANOMALY       high-risk vendor, or unknown vendor plus a tell
    - BEACON_STUFFING      BSSID already advertising a different SSID
    - SUPER_STRONG_SIGNAL  level above -20 dBm
    - UNUSUAL_FREQUENCY    outside the 2400..6000 MHz window
    - EVIL_TWIN            same SSID from another BSSID, minus dual-band APs

References:
    - Bahl, P. et al. (2006). Enhancing the Security of Corporate Wi-Fi
      Networks Using DAIR. ACM MobiSys.
    - Bratus, S. et al. (2008). Active Behavioral Fingerprinting of
      Wireless Devices. ACM WiSec.
    - Vanhoef, M. & Piessens, F. (2018). Symbolic Execution of Security
      Protocol Implementations: Handling Cryptographic Primitives.
      USENIX WOOT (downgrade attacks on WPA2/WPA3 transition mode).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from shared.config import DetectionConfig
from shared.math_utils import (
    haversine_distance,
    haversine_many,
    max_swing,
    population_variance,
)

from airledger.analyzers.channel import BAND_UNKNOWN, ChannelMapper
from airledger.analyzers.vendor import VendorRegistry, is_locally_administered
from airledger.core.models import (
    AnomalyRecord,
    AnomalySeverity,
    AnomalyType,
    EncryptionType,
    LocationReading,
    NetworkEntry,
    Observation,
    SecurityRisk,
)


@dataclass(frozen=True, slots=True)
class PriorState:
    """Snapshot of the fields of an entry that the merge is about to change."""

    security_types: frozenset[EncryptionType]
    last_frequency: int
    last_location: Optional[LocationReading]

    @classmethod
    def capture(cls, entry: NetworkEntry) -> PriorState:
        last = entry.last_location
        return cls(
            security_types=frozenset(entry.security_types),
            last_frequency=entry.last_frequency,
            last_location=last.model_copy() if last is not None else None,
        )


def _position(
    observation: Observation, entry: Optional[NetworkEntry]
) -> Optional[tuple[float, float]]:
    """Current coordinates: the observation's fix, else the entry's last one."""
    if observation.has_location:
        return float(observation.latitude), float(observation.longitude)  # type: ignore[arg-type]
    if entry is not None and entry.last_location is not None:
        loc = entry.last_location
        return loc.latitude, loc.longitude
    return None


def _distance(
    a: Optional[tuple[float, float]], b: Optional[tuple[float, float]]
) -> Optional[float]:
    if a is None or b is None:
        return None
    return haversine_distance(a[0], a[1], b[0], b[1])


class AnomalyEngine:
    """Runs the per-update anomaly checks.

    Usage::

        engine = AnomalyEngine(config.detection, registry, mapper)
        records = engine.inspect(obs, entry, population, prior)

    Args:
        config: Detection thresholds.
        registry: Vendor registry used for vendor-risk checks.
        mapper: Channel mapper used to classify bands for the dual-band
            exemption.
    """

    def __init__(
        self,
        config: Optional[DetectionConfig] = None,
        registry: Optional[VendorRegistry] = None,
        mapper: Optional[ChannelMapper] = None,
    ) -> None:
        self._cfg = config or DetectionConfig()
        self._registry = registry or VendorRegistry(
            suspicious_ssid_patterns=self._cfg.suspicious_ssid_patterns
        )
        self._mapper = mapper or ChannelMapper()

    def inspect(
        self,
        observation: Observation,
        entry: NetworkEntry,
        population: Sequence[NetworkEntry],
        prior: Optional[PriorState] = None,
    ) -> list[AnomalyRecord]:
        """Run every applicable check for one accepted observation.

        Args:
            observation: The observation just applied.
            entry: The ledger entry after the observation was applied.
            population: Every *other* ledger entry.
            prior: Entry state before the merge; ``None`` for a newly
                created entry, which skips the history-based checks.

        Returns:
            Records detected for this observation, in check order.
        """
        found: list[AnomalyRecord] = []

        found += self.check_hidden(observation)
        found += self.check_weak_security(observation)
        if prior is not None:
            found += self.check_security_downgrade(observation, prior)
        found += self.check_signal(observation, entry)
        if prior is not None:
            found += self.check_location_mismatch(observation, prior)
            found += self.check_frequency_change(observation, prior)
        found += self.check_vendor(observation, entry)
        found += self.check_beacon_stuffing(observation, population)
        found += self.check_super_strong(observation)
        found += self.check_unusual_frequency(observation)
        found += self.check_evil_twin(observation, entry, population)
        return found

    # ------------------------------------------------------------------ #
    #  Security
    # ------------------------------------------------------------------ #

    @staticmethod
    def check_hidden(observation: Observation) -> list[AnomalyRecord]:
        if observation.ssid:
            return []
        return [AnomalyRecord(
            timestamp=observation.timestamp,
            type=AnomalyType.HIDDEN_NETWORK,
            severity=AnomalySeverity.INFO,
            description="Hidden network (SSID not broadcast)",
        )]

    @staticmethod
    def check_weak_security(observation: Observation) -> list[AnomalyRecord]:
        security = observation.security_type
        if security == EncryptionType.OPEN:
            severity = AnomalySeverity.CRITICAL
            text = "Open network without encryption"
        elif security in (EncryptionType.WEP, EncryptionType.WPA):
            severity = AnomalySeverity.WARNING
            text = f"Weak encryption: {security.value}"
        else:
            return []
        return [AnomalyRecord(
            timestamp=observation.timestamp,
            type=AnomalyType.WEAK_SECURITY,
            severity=severity,
            description=text,
        )]

    @staticmethod
    def check_security_downgrade(
        observation: Observation, prior: PriorState
    ) -> list[AnomalyRecord]:
        current = observation.security_type
        if current.strength is None:
            return []
        ranked = [t for t in prior.security_types if t.strength is not None]
        if not ranked:
            return []
        strongest = max(ranked, key=lambda t: (t.strength, t.value))
        if strongest.strength <= current.strength:  # type: ignore[operator]
            return []
        return [AnomalyRecord(
            timestamp=observation.timestamp,
            type=AnomalyType.SECURITY_DOWNGRADE,
            severity=AnomalySeverity.CRITICAL,
            description=(
                f"Security downgrade detected: {strongest.value} -> {current.value}"
            ),
        )]

    # ------------------------------------------------------------------ #
    #  Radio
    # ------------------------------------------------------------------ #

    def check_signal(
        self, observation: Observation, entry: NetworkEntry
    ) -> list[AnomalyRecord]:
        found: list[AnomalyRecord] = []
        window = self._cfg.signal_variance_window
        levels = entry.recent_levels(window)
        if len(levels) >= window:
            variance = population_variance(levels)
            limit = self._cfg.signal_variance_threshold_dbm ** 2
            if variance > limit:
                found.append(AnomalyRecord(
                    timestamp=observation.timestamp,
                    type=AnomalyType.SIGNAL_ANOMALY,
                    severity=AnomalySeverity.WARNING,
                    description=(
                        f"Unusual signal variation (variance {variance:.1f} "
                        f"over last {window} samples)"
                    ),
                ))
        if observation.level > self._cfg.strong_signal_dbm:
            found.append(AnomalyRecord(
                timestamp=observation.timestamp,
                type=AnomalyType.SIGNAL_ANOMALY,
                severity=AnomalySeverity.INFO,
                description=f"Unusually strong signal: {observation.level} dBm",
            ))
        return found

    def check_super_strong(self, observation: Observation) -> list[AnomalyRecord]:
        if observation.level <= self._cfg.strong_signal_dbm:
            return []
        return [AnomalyRecord(
            timestamp=observation.timestamp,
            type=AnomalyType.SUPER_STRONG_SIGNAL,
            severity=AnomalySeverity.WARNING,
            description=(
                f"Signal {observation.level} dBm exceeds "
                f"{self._cfg.strong_signal_dbm} dBm; transmitter is very close "
                f"or amplified"
            ),
        )]

    def check_unusual_frequency(self, observation: Observation) -> list[AnomalyRecord]:
        freq = observation.frequency
        if freq <= 0:
            return []
        low = self._cfg.min_usual_frequency_mhz
        high = self._cfg.max_usual_frequency_mhz
        if low <= freq <= high:
            return []
        return [AnomalyRecord(
            timestamp=observation.timestamp,
            type=AnomalyType.UNUSUAL_FREQUENCY,
            severity=AnomalySeverity.WARNING,
            description=f"Frequency {freq} MHz outside {low}-{high} MHz",
        )]

    def check_frequency_change(
        self, observation: Observation, prior: PriorState
    ) -> list[AnomalyRecord]:
        new, old = observation.frequency, prior.last_frequency
        if new <= 0 or old <= 0:
            return []
        if abs(new - old) <= self._cfg.frequency_change_mhz:
            return []
        return [AnomalyRecord(
            timestamp=observation.timestamp,
            type=AnomalyType.FREQUENCY_CHANGE,
            severity=AnomalySeverity.INFO,
            description=f"Frequency changed: {old} MHz -> {new} MHz",
        )]

    # ------------------------------------------------------------------ #
    #  Location
    # ------------------------------------------------------------------ #

    def check_location_mismatch(
        self, observation: Observation, prior: PriorState
    ) -> list[AnomalyRecord]:
        last = prior.last_location
        if last is None or not observation.has_location:
            return []
        distance = haversine_distance(
            last.latitude, last.longitude,
            observation.latitude, observation.longitude,  # type: ignore[arg-type]
        )
        if distance <= self._cfg.location_mismatch_m:
            return []
        return [AnomalyRecord(
            timestamp=observation.timestamp,
            type=AnomalyType.LOCATION_MISMATCH,
            severity=AnomalySeverity.WARNING,
            description=f"Network moved {distance:.0f} m since last sighting",
        )]

    # ------------------------------------------------------------------ #
    #  Vendor
    # ------------------------------------------------------------------ #

    def check_vendor(
        self, observation: Observation, entry: NetworkEntry
    ) -> list[AnomalyRecord]:
        vendor = self._registry.lookup(observation.bssid)
        if vendor.security_risk == SecurityRisk.HIGH:
            return [AnomalyRecord(
                timestamp=observation.timestamp,
                type=AnomalyType.VENDOR_ANOMALY,
                severity=AnomalySeverity.HIGH,
                description=f"High-risk vendor: {vendor.full_name}",
            )]
        if vendor.security_risk != SecurityRisk.UNKNOWN:
            return []

        tells = self.unknown_vendor_tells(
            observation.bssid, observation.ssid, entry.recent_levels(3)
        )
        if not tells:
            return []
        return [AnomalyRecord(
            timestamp=observation.timestamp,
            type=AnomalyType.VENDOR_ANOMALY,
            severity=AnomalySeverity.LOW,
            description=f"Unknown vendor with {', '.join(tells)}",
        )]

    def unknown_vendor_tells(
        self, bssid: str, ssid: str, levels: Sequence[int]
    ) -> list[str]:
        """Reasons an unknown-vendor network looks suspicious.

        Checks the SSID against the suspicious patterns, the locally
        administered bit of *bssid* and the swing across the last three
        *levels*.
        """
        tells: list[str] = []
        if self._registry.is_suspicious_ssid(ssid):
            tells.append(f"suspicious SSID '{ssid}'")
        recent = list(levels)[-3:]
        if len(recent) >= 3 and max_swing(recent) > self._cfg.vendor_signal_swing_dbm:
            tells.append(f"signal swing {max_swing(recent):.0f} dBm")
        if is_locally_administered(bssid):
            tells.append("locally administered MAC")
        return tells

    # ------------------------------------------------------------------ #
    #  Population
    # ------------------------------------------------------------------ #

    @staticmethod
    def check_beacon_stuffing(
        observation: Observation, population: Iterable[NetworkEntry]
    ) -> list[AnomalyRecord]:
        if not observation.ssid:
            return []
        others = sorted({
            e.ssid for e in population
            if e.bssid == observation.bssid and e.ssid and e.ssid != observation.ssid
        })
        if not others:
            return []
        return [AnomalyRecord(
            timestamp=observation.timestamp,
            type=AnomalyType.BEACON_STUFFING,
            severity=AnomalySeverity.WARNING,
            description=(
                f"BSSID {observation.bssid} also advertises: {', '.join(others)}"
            ),
        )]

    def check_evil_twin(
        self,
        observation: Observation,
        entry: NetworkEntry,
        population: Iterable[NetworkEntry],
    ) -> list[AnomalyRecord]:
        if not observation.ssid:
            return []
        twins = [
            e for e in population
            if e.ssid == observation.ssid and e.bssid != observation.bssid
        ]
        if not twins:
            return []

        here = _position(observation, entry)
        band = self._mapper.band_of(observation.frequency)
        if self.is_dual_band_group(band, here, twins):
            return []

        located = [t.last_location for t in twins if t.last_location is not None]
        close = False
        if here is not None and located:
            distances = haversine_many(
                here[0], here[1],
                [loc.latitude for loc in located],
                [loc.longitude for loc in located],
            )
            close = bool((distances < self._cfg.evil_twin_proximity_m).any())
        severity = AnomalySeverity.CRITICAL if close else AnomalySeverity.HIGH
        bssids = ", ".join(sorted({t.bssid for t in twins}))
        return [AnomalyRecord(
            timestamp=observation.timestamp,
            type=AnomalyType.EVIL_TWIN,
            severity=severity,
            description=(
                f"SSID '{observation.ssid}' also served by {bssids}"
            ),
        )]

    def is_dual_band_group(
        self,
        band: str,
        here: Optional[tuple[float, float]],
        twins: Sequence[NetworkEntry],
    ) -> bool:
        """Whether every same-SSID entry looks like another radio of one AP.

        An entry qualifies when its band (from its last known frequency) is
        known and differs from *band*, and it is closer than the dual-band
        radius.  Missing coordinates on either side count as distance 0.
        """
        if band == BAND_UNKNOWN or not twins:
            return False
        for twin in twins:
            if not twin.signal_history:
                return False
            twin_band = self._mapper.band_of(twin.last_frequency)
            if twin_band == BAND_UNKNOWN or twin_band == band:
                return False
            distance = _distance(here, self._entry_position(twin)) or 0.0
            if distance >= self._cfg.dual_band_radius_m:
                return False
        return True

    @staticmethod
    def _entry_position(entry: NetworkEntry) -> Optional[tuple[float, float]]:
        loc = entry.last_location
        return (loc.latitude, loc.longitude) if loc is not None else None
