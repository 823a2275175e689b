"""
AirLedger Security Analyzer
============================

Population-level sweep over the ledger.  Where the per-update
:class:`AnomalyEngine` looks at one observation at a time, this analyzer
looks at the whole set of known networks and at how it changed since the
previous sweep.

Threats detected:

    - EVIL_TWIN              one SSID served by hardware of several vendors
    - ROGUE_AP               MAC analysis yields HIGH risk
    - DEAUTH_ATTACK          half or more of the previous networks vanished
    - VENDOR_ANOMALY         high-risk vendor, or unknown vendor with a
                             suspicious SSID, randomised MAC or signal swing
    - MASS_UNKNOWN_VENDOR    most of the environment has no known vendor
    - KARMA_ATTACK           several generic "free WiFi"-style SSIDs
    - SIGNAL_JAMMING         violent swings across the last three samples
    - BEACON_FLOODING        too many networks in one ~100 m grid cell
    - CAPTIVE_PORTAL_ATTACK  open network on non-mainstream hardware
    - CHANNEL_HOPPING        one frequency carries most of the networks

The overall risk level follows :meth:`RiskLevel.from_severity_counts`.

References:
    - Vanhoef, M. & Piessens, F. (2014). Advanced Wi-Fi Attacks Using
      Commodity Hardware. ACSAC.
    - Dai Zovi, D. & Macaulay, S. (2005). Attacking Automatic Wireless
      Network Selection. IEEE Information Assurance Workshop (KARMA).
    - Bellardo, J. & Savage, S. (2003). 802.11 Denial-of-Service Attacks:
      Real Vulnerabilities and Practical Solutions. USENIX Security.
"""

from __future__ import annotations

from collections import defaultdict, deque
from typing import Optional, Sequence

from shared.config import AnalyzerConfig, DetectionConfig
from shared.logger import AirLogger
from shared.math_utils import dominant_share, grid_cell, population_variance
from shared.models import RiskLevel, Severity

from airledger.analyzers.anomaly import AnomalyEngine
from airledger.analyzers.channel import ChannelMapper
from airledger.analyzers.vendor import VendorRegistry
from airledger.core.models import (
    NetworkEntry,
    ScanSnapshot,
    SecurityAnomaly,
    SecurityReport,
    SecurityRisk,
    ThreatType,
)

logger = AirLogger("analyzers.security")


class SecurityAnalyzer:
    """Fleet-wide threat analysis with scan-to-scan comparison.

    Every call to :meth:`analyze` records a :class:`ScanSnapshot`; the most
    recent one is used as the baseline for the disappearance check unless
    an explicit *previous* snapshot is passed.

    Args:
        config: Analyzer thresholds.
        registry: Vendor registry.
        mapper: Channel mapper (band for the dual-band exemption, channel
            numbers in evidence).
        detection: Detection thresholds; supplies the dual-band radius.
    """

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        registry: Optional[VendorRegistry] = None,
        mapper: Optional[ChannelMapper] = None,
        detection: Optional[DetectionConfig] = None,
    ) -> None:
        self._cfg = config or AnalyzerConfig()
        detection = detection or DetectionConfig()
        self._registry = registry or VendorRegistry(
            suspicious_ssid_patterns=detection.suspicious_ssid_patterns
        )
        self._mapper = mapper or ChannelMapper()
        self._pairing = AnomalyEngine(detection, self._registry, self._mapper)
        self._history: deque[ScanSnapshot] = deque(maxlen=max(1, self._cfg.history_size))

    # ------------------------------------------------------------------ #
    #  Public API
    # ------------------------------------------------------------------ #

    @property
    def history(self) -> list[ScanSnapshot]:
        return list(self._history)

    def reset_history(self) -> None:
        self._history.clear()

    def analyze(
        self,
        entries: Sequence[NetworkEntry],
        previous: Optional[ScanSnapshot] = None,
        scan: Optional[Sequence[NetworkEntry]] = None,
    ) -> SecurityReport:
        """Run every population check over *entries*.

        Args:
            entries: Current ledger entries.
            previous: Baseline for the disappearance check; defaults to the
                snapshot recorded by the previous call.
            scan: Networks seen in the latest scan.  The disappearance
                check and the recorded snapshot use it instead of
                *entries*, since the ledger itself never forgets a network.

        Returns:
            The :class:`SecurityReport` for this sweep.
        """
        entries = list(entries)
        current = list(scan) if scan is not None else entries
        baseline = previous if previous is not None else (
            self._history[-1] if self._history else None
        )

        with logger.timed(f"security sweep over {len(entries)} networks"):
            anomalies: list[SecurityAnomaly] = []
            anomalies += self._detect_evil_twins(entries)
            anomalies += self._detect_rogue_aps(entries)
            if baseline is not None:
                anomalies += self._detect_disappearance(current, baseline)
            anomalies += self._detect_vendor_anomalies(entries)
            anomalies += self._detect_mass_unknown(entries)
            anomalies += self._detect_karma(entries)
            anomalies += self._detect_jamming(entries)
            anomalies += self._detect_beacon_flooding(entries)
            anomalies += self._detect_captive_portals(entries)
            anomalies += self._detect_channel_concentration(entries)

        self._history.append(self._snapshot(current))

        risk = RiskLevel.from_severities(a.severity for a in anomalies)
        report = SecurityReport(
            anomalies=anomalies,
            risk_level=risk,
            summary=self._summary(len(anomalies), len(entries)),
            network_count=len(entries),
        )
        logger.info(f"Security sweep: {report.summary} (risk {risk.value})")
        return report

    # ------------------------------------------------------------------ #
    #  Identity
    # ------------------------------------------------------------------ #

    def _detect_evil_twins(self, entries: list[NetworkEntry]) -> list[SecurityAnomaly]:
        groups: dict[str, list[NetworkEntry]] = defaultdict(list)
        for entry in entries:
            if entry.ssid:
                groups[entry.ssid].append(entry)

        found: list[SecurityAnomaly] = []
        for ssid, group in sorted(groups.items()):
            bssids = sorted({e.bssid for e in group})
            if len(bssids) < 2:
                continue
            vendors = sorted({self._vendor_name(e) for e in group})
            if len(vendors) < 2:
                continue
            if self._is_dual_band(group):
                continue
            found.append(SecurityAnomaly(
                type=ThreatType.EVIL_TWIN,
                severity=Severity.HIGH,
                description=(
                    f"SSID '{ssid}' is broadcast by {len(bssids)} access points "
                    f"from different vendors"
                ),
                affected_networks=bssids,
                evidence={"ssid": ssid, "vendors": vendors},
                recommended_action=(
                    "Verify which access point is legitimate and avoid "
                    "connecting until confirmed"
                ),
            ))
        return found

    def _is_dual_band(self, group: list[NetworkEntry]) -> bool:
        anchor, twins = group[0], group[1:]
        if not anchor.signal_history:
            return False
        band = self._mapper.band_of(anchor.last_frequency)
        loc = anchor.last_location
        here = (loc.latitude, loc.longitude) if loc is not None else None
        return self._pairing.is_dual_band_group(band, here, twins)

    def _detect_rogue_aps(self, entries: list[NetworkEntry]) -> list[SecurityAnomaly]:
        found: list[SecurityAnomaly] = []
        for entry in entries:
            analysis = self._registry.analyze_mac_security(entry.bssid)
            if analysis.risk_level != SecurityRisk.HIGH:
                continue
            found.append(SecurityAnomaly(
                type=ThreatType.ROGUE_AP,
                severity=Severity.HIGH,
                description=(
                    f"Potential rogue access point {entry.bssid} "
                    f"({analysis.vendor.full_name or analysis.vendor.name})"
                ),
                affected_networks=[entry.bssid],
                evidence={
                    "ssid": entry.ssid,
                    "suspicious_factors": list(analysis.suspicious_factors),
                    "randomized": analysis.is_randomized,
                },
                recommended_action="Do not connect; locate and report the device",
            ))
        return found

    # ------------------------------------------------------------------ #
    #  Scan-to-scan
    # ------------------------------------------------------------------ #

    def _detect_disappearance(
        self, entries: list[NetworkEntry], baseline: ScanSnapshot
    ) -> list[SecurityAnomaly]:
        prior_count = baseline.network_count
        if prior_count <= self._cfg.disappearance_min_prior:
            return []
        rate = max(0.0, (prior_count - len(entries)) / prior_count)
        if rate < self._cfg.disappearance_rate:
            return []

        current = {e.bssid for e in entries}
        missing = sorted(set(baseline.bssids) - current)
        logger.warning(
            f"{rate:.0%} of networks disappeared since the previous sweep"
        )
        return [SecurityAnomaly(
            type=ThreatType.DEAUTH_ATTACK,
            severity=Severity.CRITICAL,
            description=(
                f"{len(missing)} networks disappeared since the previous scan "
                f"({prior_count} -> {len(entries)})"
            ),
            affected_networks=missing,
            evidence={
                "disappearance_rate": rate,
                "previous_count": prior_count,
                "current_count": len(entries),
                "missing_bssids": missing,
            },
            recommended_action=(
                "Possible deauthentication or jamming attack; prefer wired "
                "connectivity and enable 802.11w where supported"
            ),
        )]

    # ------------------------------------------------------------------ #
    #  Vendor
    # ------------------------------------------------------------------ #

    def _detect_vendor_anomalies(
        self, entries: list[NetworkEntry]
    ) -> list[SecurityAnomaly]:
        found: list[SecurityAnomaly] = []
        for entry in entries:
            vendor = self._registry.lookup(entry.bssid)
            if vendor.security_risk == SecurityRisk.HIGH:
                severity = Severity.HIGH
                text = f"High-risk vendor {vendor.full_name or vendor.name} on {entry.bssid}"
            elif vendor.security_risk == SecurityRisk.UNKNOWN:
                tells = self._pairing.unknown_vendor_tells(
                    entry.bssid, entry.ssid, entry.recent_levels(3)
                )
                if not tells:
                    continue
                severity = Severity.LOW
                text = f"Unknown vendor on {entry.bssid} with {', '.join(tells)}"
            else:
                continue
            found.append(SecurityAnomaly(
                type=ThreatType.VENDOR_ANOMALY,
                severity=severity,
                description=text,
                affected_networks=[entry.bssid],
                evidence={"vendor": vendor.name, "risk": vendor.security_risk.value},
                recommended_action="Check the device against known infrastructure",
            ))
        return found

    def _detect_mass_unknown(self, entries: list[NetworkEntry]) -> list[SecurityAnomaly]:
        if not entries:
            return []
        unknown = [
            e.bssid for e in entries
            if self._registry.lookup(e.bssid).security_risk == SecurityRisk.UNKNOWN
        ]
        ratio = len(unknown) / len(entries)
        if ratio <= self._cfg.unknown_vendor_ratio or len(unknown) <= self._cfg.unknown_vendor_min:
            return []
        return [SecurityAnomaly(
            type=ThreatType.MASS_UNKNOWN_VENDOR,
            severity=Severity.MEDIUM,
            description=f"{len(unknown)} of {len(entries)} networks have an unknown vendor",
            affected_networks=unknown[:5],
            evidence={"unknown_count": len(unknown), "unknown_ratio": ratio},
            recommended_action="Update the OUI table; investigate if it persists",
        )]

    # ------------------------------------------------------------------ #
    #  SSID / radio
    # ------------------------------------------------------------------ #

    def _detect_karma(self, entries: list[NetworkEntry]) -> list[SecurityAnomaly]:
        dictionary = [s.lower() for s in self._cfg.karma_ssids if s]
        matched = [
            e for e in entries
            if e.ssid and any(word in e.ssid.lower() for word in dictionary)
        ]
        if len(matched) < self._cfg.karma_min_networks:
            return []
        return [SecurityAnomaly(
            type=ThreatType.KARMA_ATTACK,
            severity=Severity.HIGH,
            description=f"{len(matched)} networks advertise generic public SSIDs",
            affected_networks=sorted({e.bssid for e in matched}),
            evidence={"ssids": sorted({e.ssid for e in matched})},
            recommended_action=(
                "Disable auto-join for open networks and forget generic SSIDs"
            ),
        )]

    def _detect_jamming(self, entries: list[NetworkEntry]) -> list[SecurityAnomaly]:
        window = self._cfg.jamming_window
        found: list[SecurityAnomaly] = []
        for entry in entries:
            levels = entry.recent_levels(window)
            if len(levels) < window:
                continue
            variance = population_variance(levels)
            if variance <= self._cfg.jamming_variance:
                continue
            found.append(SecurityAnomaly(
                type=ThreatType.SIGNAL_JAMMING,
                severity=Severity.MEDIUM,
                description=f"Erratic signal on {entry.bssid} (variance {variance:.0f})",
                affected_networks=[entry.bssid],
                evidence={"levels": levels, "variance": variance},
                recommended_action="Monitor for interference near this access point",
            ))
        return found

    def _detect_beacon_flooding(
        self, entries: list[NetworkEntry]
    ) -> list[SecurityAnomaly]:
        cells: dict[tuple[int, int], list[str]] = defaultdict(list)
        for entry in entries:
            loc = entry.last_location
            if loc is None:
                continue
            cells[grid_cell(loc.latitude, loc.longitude, self._cfg.grid_precision)].append(entry.bssid)

        found: list[SecurityAnomaly] = []
        for cell, bssids in sorted(cells.items()):
            if len(bssids) <= self._cfg.beacon_flood_threshold:
                continue
            found.append(SecurityAnomaly(
                type=ThreatType.BEACON_FLOODING,
                severity=Severity.MEDIUM,
                description=f"{len(bssids)} networks concentrated in one location cell",
                affected_networks=sorted(bssids),
                evidence={"cell": list(cell), "network_count": len(bssids)},
                recommended_action="Possible beacon flood; verify with a second scan",
            ))
        return found

    def _detect_captive_portals(
        self, entries: list[NetworkEntry]
    ) -> list[SecurityAnomaly]:
        found: list[SecurityAnomaly] = []
        for entry in entries:
            if not entry.is_open or not entry.ssid or "guest" in entry.ssid.lower():
                continue
            vendor = self._registry.lookup(entry.bssid)
            if vendor.security_risk == SecurityRisk.LOW:
                continue
            found.append(SecurityAnomaly(
                type=ThreatType.CAPTIVE_PORTAL_ATTACK,
                severity=Severity.MEDIUM,
                description=(
                    f"Open network '{entry.ssid}' on {vendor.name} hardware may "
                    f"serve a credential-harvesting portal"
                ),
                affected_networks=[entry.bssid],
                evidence={"vendor": vendor.name, "risk": vendor.security_risk.value},
                recommended_action="Never enter credentials into its captive portal",
            ))
        return found

    def _detect_channel_concentration(
        self, entries: list[NetworkEntry]
    ) -> list[SecurityAnomaly]:
        if len(entries) <= self._cfg.channel_min_population:
            return []
        freqs = [e.last_frequency for e in entries if e.last_frequency > 0]
        frequency, share = dominant_share(freqs)
        overall = share * len(freqs) / len(entries)
        if overall <= self._cfg.channel_concentration_ratio:
            return []
        info = self._mapper.get_channel_info(frequency)
        return [SecurityAnomaly(
            type=ThreatType.CHANNEL_HOPPING,
            severity=Severity.MEDIUM,
            description=(
                f"{overall:.0%} of networks on channel {info.channel} "
                f"({frequency} MHz)"
            ),
            affected_networks=sorted(
                {e.bssid for e in entries if e.last_frequency == frequency}
            ),
            evidence={
                "frequency": frequency,
                "channel": info.channel,
                "band": info.band,
                "share": overall,
            },
            recommended_action="Check for a device forcing clients onto one channel",
        )]

    # ------------------------------------------------------------------ #
    #  Helpers
    # ------------------------------------------------------------------ #

    def _vendor_name(self, entry: NetworkEntry) -> str:
        return entry.vendor or self._registry.lookup(entry.bssid).name

    def _snapshot(self, entries: list[NetworkEntry]) -> ScanSnapshot:
        return ScanSnapshot(
            network_count=len(entries),
            bssids=sorted({e.bssid for e in entries}),
            unique_vendors=sorted({self._vendor_name(e) for e in entries}),
        )

    @staticmethod
    def _summary(anomaly_count: int, network_count: int) -> str:
        if anomaly_count == 0:
            return f"No security anomalies detected in {network_count} networks"
        noun = "anomaly" if anomaly_count == 1 else "anomalies"
        return (
            f"{anomaly_count} security {noun} detected in {network_count} networks"
        )
