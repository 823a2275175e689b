"""
AirLedger Vendor Registry
==========================

OUI (Organizationally Unique Identifier) to vendor lookup with a risk
classification per vendor, plus address-level analysis of the IEEE 802
universal/local and individual/group bits.

Two sources are consulted in order:

1. A bulk OUI table supplied at start-up, either the IEEE registry dump
   (``oui.txt``, lines like ``28-6F-B9   (hex)\t\tNokia Shanghai Bell``) or
   a JSON object mapping 6-hex-digit prefixes to vendor names.  Every
   entry is considered LOW risk.
2. A small curated override table of prefixes that belong to penetration
   testing hardware (HIGH) or hobbyist/embedded boards often used to build
   rogue access points (MEDIUM).

After loading the registry is read-only and safe to share between threads.

References:
    - IEEE Registration Authority. MA-L Public Listing.
      https://standards-oui.ieee.org/oui/oui.txt
    - IEEE. (2014). IEEE Std 802-2014. Section 8.2: Universal/local and
      individual/group address bits.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Optional

from shared.config import DetectionConfig
from shared.logger import AirLogger

from airledger.core.models import (
    MacSecurityAnalysis,
    SecurityRisk,
    VendorInfo,
    canonical_bssid,
)

logger = AirLogger("analyzers.vendor")


# ---------------------------------------------------------------------------
# Curated overrides
# ---------------------------------------------------------------------------

_OVERRIDES: dict[str, VendorInfo] = {
    "AC:9E:17": VendorInfo(name="ASUS", full_name="ASUSTeK Computer", country="TW",
                           is_common=True, security_risk=SecurityRisk.LOW),
    "DC:A6:32": VendorInfo(name="RaspberryPi", full_name="Raspberry Pi Foundation",
                           country="UK", security_risk=SecurityRisk.MEDIUM),
    "B8:27:EB": VendorInfo(name="RaspberryPi", full_name="Raspberry Pi Foundation",
                           country="UK", security_risk=SecurityRisk.MEDIUM),
    "00:0F:00": VendorInfo(name="Realtek", full_name="Realtek Semiconductor",
                           country="TW", security_risk=SecurityRisk.MEDIUM),
    "00:E0:4C": VendorInfo(name="Realtek", full_name="Realtek Semiconductor",
                           country="TW", security_risk=SecurityRisk.MEDIUM),
    "00:19:DB": VendorInfo(name="Generic", full_name="Unknown Chinese Vendor",
                           country="CN", security_risk=SecurityRisk.MEDIUM),
    "00:02:72": VendorInfo(name="Generic", full_name="Unknown Vendor",
                           security_risk=SecurityRisk.UNKNOWN),
    "00:13:37": VendorInfo(name="Hak5", full_name="Hak5 WiFi Pineapple",
                           country="US", security_risk=SecurityRisk.HIGH),
    "00:C0:CA": VendorInfo(name="Hak5", full_name="Hak5 LLC",
                           country="US", security_risk=SecurityRisk.HIGH),
    "30:AE:A4": VendorInfo(name="ESP32", full_name="Espressif Systems",
                           country="CN", security_risk=SecurityRisk.MEDIUM),
    "24:0A:C4": VendorInfo(name="ESP32", full_name="Espressif Systems",
                           country="CN", security_risk=SecurityRisk.MEDIUM),
    "5C:CF:7F": VendorInfo(name="ESP8266", full_name="Espressif Systems",
                           country="CN", security_risk=SecurityRisk.MEDIUM),
    "00:00:00": VendorInfo(name="NULL", full_name="Invalid MAC Address",
                           security_risk=SecurityRisk.HIGH),
    "FF:FF:FF": VendorInfo(name="BROADCAST", full_name="Broadcast Address",
                           security_risk=SecurityRisk.HIGH),
}

_INVALID = VendorInfo(
    name="Invalid",
    full_name="Invalid MAC Address",
    security_risk=SecurityRisk.HIGH,
)

UNKNOWN_VENDOR = "Unknown"

_OUI_LINE = re.compile(
    r"([0-9A-F]{2}-[0-9A-F]{2}-[0-9A-F]{2})\s+\(hex\)\s+(.+)", re.IGNORECASE
)
_SEPARATORS = re.compile(r"[:\-\.\s]")
_HEX6 = re.compile(r"^[0-9A-F]{6}$")


def _clean_hex(mac: str) -> str:
    return _SEPARATORS.sub("", mac or "").upper()


def _format_oui(hex6: str) -> str:
    return f"{hex6[0:2]}:{hex6[2:4]}:{hex6[4:6]}"


def _first_octet(mac: str) -> Optional[int]:
    clean = _clean_hex(mac)
    if len(clean) < 2:
        return None
    try:
        return int(clean[:2], 16)
    except ValueError:
        return None


def is_locally_administered(mac: str) -> bool:
    """Bit 1 of the first octet: address assigned locally (randomised)."""
    octet = _first_octet(mac)
    return octet is not None and bool(octet & 0x02)


def is_multicast(mac: str) -> bool:
    """Bit 0 of the first octet: group (multicast) address."""
    octet = _first_octet(mac)
    return octet is not None and bool(octet & 0x01)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class VendorRegistry:
    """OUI -> vendor lookup with risk classification.

    Usage::

        registry = VendorRegistry("data/oui.txt")
        registry.lookup("00:13:37:aa:bb:cc").security_risk   # HIGH
        registry.analyze_mac_security("da:a1:19:00:00:01").is_randomized

    Args:
        oui_path: Optional path to the bulk OUI table.  A missing or
            unreadable table is logged and the registry falls back to the
            curated overrides only.
        suspicious_ssid_patterns: Regular expressions (case-insensitive)
            that mark an SSID as suspicious for :meth:`is_suspicious_ssid`.
            Defaults to the :class:`DetectionConfig` list; pass an empty
            list to disable the check.
    """

    def __init__(
        self,
        oui_path: str | Path | None = None,
        suspicious_ssid_patterns: Optional[list[str]] = None,
    ) -> None:
        self._table: dict[str, VendorInfo] = {}
        if suspicious_ssid_patterns is None:
            suspicious_ssid_patterns = DetectionConfig().suspicious_ssid_patterns
        self._ssid_patterns = [
            re.compile(p, re.IGNORECASE) for p in suspicious_ssid_patterns
        ]
        if oui_path is not None:
            self.load(oui_path)

    # ------------------------------------------------------------------ #
    #  Loading
    # ------------------------------------------------------------------ #

    def load(self, path: str | Path) -> int:
        """Load a bulk OUI table, replacing any previously loaded one.

        ``.json`` files are read as a ``{prefix: name}`` mapping, anything
        else as the IEEE text listing.

        Returns:
            Number of prefixes loaded (0 when the table is unavailable).
        """
        table_path = Path(path)
        try:
            if table_path.suffix.lower() == ".json":
                table = self._parse_json(table_path)
            else:
                table = self._parse_ieee(table_path)
        except FileNotFoundError:
            logger.warning(f"OUI table not found: {table_path}; vendors will be UNKNOWN")
            self._table = {}
            return 0
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, AttributeError) as exc:
            logger.warning(f"OUI table unreadable ({table_path}): {exc}")
            self._table = {}
            return 0

        self._table = table
        logger.info(f"Loaded {len(table)} OUI prefixes from {table_path}")
        return len(table)

    @staticmethod
    def _parse_ieee(path: Path) -> dict[str, VendorInfo]:
        table: dict[str, VendorInfo] = {}
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            for line in fh:
                match = _OUI_LINE.search(line)
                if match is None:
                    continue
                oui = match.group(1).replace("-", ":").upper()
                name = match.group(2).strip()
                table[oui] = VendorInfo(
                    name=name, full_name=name, security_risk=SecurityRisk.LOW
                )
        return table

    @staticmethod
    def _parse_json(path: Path) -> dict[str, VendorInfo]:
        with open(path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
        table: dict[str, VendorInfo] = {}
        for prefix, name in raw.items():
            clean = _clean_hex(prefix)[:6]
            if not _HEX6.match(clean) or not isinstance(name, str):
                continue
            table[_format_oui(clean)] = VendorInfo(
                name=name, full_name=name, security_risk=SecurityRisk.LOW
            )
        return table

    # ------------------------------------------------------------------ #
    #  Lookups
    # ------------------------------------------------------------------ #

    @property
    def vendor_count(self) -> int:
        """Number of prefixes in the bulk table."""
        return len(self._table)

    def lookup(self, bssid: str) -> VendorInfo:
        """Resolve the vendor of *bssid*.

        Never raises: an address with fewer than six hex digits yields the
        ``Invalid`` HIGH-risk sentinel and an unmatched prefix yields an
        ``Unknown`` vendor whose full name embeds the OUI.
        """
        clean = _clean_hex(bssid)
        if len(clean) < 6 or not _HEX6.match(clean[:6]):
            return _INVALID

        oui = _format_oui(clean[:6])
        hit = self._table.get(oui) or _OVERRIDES.get(oui)
        if hit is not None:
            return hit

        return VendorInfo(
            name=UNKNOWN_VENDOR,
            full_name=f"Unknown Vendor (OUI: {oui})",
            security_risk=SecurityRisk.UNKNOWN,
        )

    def analyze_mac_security(self, bssid: str) -> MacSecurityAnalysis:
        """Combine vendor risk with MAC address bits into a risk class.

        Suspicious factors: randomised (locally administered) address,
        multicast address, high-risk vendor, unknown vendor, null prefix.

        Risk, first match wins:
          - 3 or more factors            : HIGH
          - vendor risk HIGH             : HIGH
          - 2 factors or vendor MEDIUM   : MEDIUM
          - otherwise                    : the vendor's own risk
        """
        vendor = self.lookup(bssid)
        randomized = is_locally_administered(bssid)
        multicast = is_multicast(bssid)

        factors: list[str] = []
        if randomized:
            factors.append("MAC randomization detected")
        if multicast:
            factors.append("Multicast address")
        if vendor.security_risk == SecurityRisk.HIGH:
            factors.append("High-risk vendor")
        if vendor.security_risk == SecurityRisk.UNKNOWN:
            factors.append("Unknown vendor")
        if _clean_hex(bssid).startswith("000000"):
            factors.append("Null MAC pattern")

        if len(factors) >= 3 or vendor.security_risk == SecurityRisk.HIGH:
            risk = SecurityRisk.HIGH
        elif len(factors) >= 2 or vendor.security_risk == SecurityRisk.MEDIUM:
            risk = SecurityRisk.MEDIUM
        else:
            risk = vendor.security_risk

        return MacSecurityAnalysis(
            bssid=canonical_bssid(bssid),
            vendor=vendor,
            is_randomized=randomized,
            is_multicast=multicast,
            suspicious_factors=factors,
            risk_level=risk,
        )

    def is_suspicious_ssid(self, ssid: str) -> bool:
        """Whether *ssid* matches one of the configured suspicious patterns."""
        if not ssid:
            return False
        return any(p.search(ssid) for p in self._ssid_patterns)
