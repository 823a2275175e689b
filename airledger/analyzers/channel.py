"""
AirLedger Channel Mapper
=========================

Pure frequency -> (channel, band, region) lookup for the 2.4 GHz, 5 GHz,
6 GHz and 60 GHz WLAN bands, with a calculated fallback for centre
frequencies that are not tabulated.

Channel numbering:
    - 2.4 GHz: ``channel = (f - 2407) / 5`` for 2412..2472 MHz; 2484 MHz is
      channel 14 (Japan only).  Channels 12 and 13 are EU/JP only.
    - 5 GHz:   ``channel = (f - 5000) / 5`` (channels 34..181 tabulated).
    - 6 GHz:   base 5925 MHz with four channel numbers per 10 MHz step,
      ``channel = (f - 5925) * 2 / 5 + 1``, i.e. 5925 -> 1, 5955 -> 13,
      6505 -> 233.  The same formula is used for the fallback so that
      tabulated and calculated results always agree.
    - 60 GHz:  ``57240 + 1080 * (channel - 1)`` for channels 1..13.

References:
    - IEEE. (2020). IEEE Std 802.11-2020. Annex E: Country information
      and operating classes.
    - IEEE. (2021). IEEE Std 802.11ax-2021. Section 27.3.23.2: 6 GHz
      channel allocation.
"""

from __future__ import annotations

from airledger.core.models import ChannelInfo

BAND_24 = "2.4GHz"
BAND_5 = "5GHz"
BAND_6 = "6GHz"
BAND_60 = "60GHz"
BAND_UNKNOWN = "Unknown"

REGION_GLOBAL = "Global"
REGION_CALC = "Calc"

_5GHZ_CHANNELS: tuple[int, ...] = (
    34, 36, 38, 40, 42, 44, 46, 48, 50, 52, 54, 56, 58, 60, 62, 64,
    100, 102, 104, 106, 108, 110, 112, 114, 116, 118, 120, 122, 124, 126,
    128, 130, 132, 134, 136, 138, 140, 142, 144, 149, 151, 153, 155, 157,
    159, 161, 165, 169, 173, 177, 181,
)


def _six_ghz_channel(freq: int) -> int:
    return (freq - 5925) * 2 // 5 + 1


def _build_table() -> dict[int, tuple[int, str, str]]:
    table: dict[int, tuple[int, str, str]] = {}

    for ch in range(1, 14):
        region = "EU/JP" if ch in (12, 13) else REGION_GLOBAL
        table[2407 + 5 * ch] = (ch, BAND_24, region)
    table[2484] = (14, BAND_24, "JP only")

    for ch in _5GHZ_CHANNELS:
        table[5000 + 5 * ch] = (ch, BAND_5, REGION_GLOBAL)

    for freq in range(5925, 6506, 10):
        table[freq] = (_six_ghz_channel(freq), BAND_6, REGION_GLOBAL)

    for ch in range(1, 14):
        table[57240 + 1080 * (ch - 1)] = (ch, BAND_60, REGION_GLOBAL)

    return table


class ChannelMapper:
    """Frequency to channel lookup.

    Usage::

        mapper = ChannelMapper()
        mapper.get_channel_info(2484)      # channel 14, 2.4GHz, JP only
        mapper.band_of(5180)               # "5GHz"
    """

    _TABLE: dict[int, tuple[int, str, str]] = _build_table()

    # Inclusive frequency windows per band used by is_in_band()
    _BAND_RANGES: dict[str, tuple[int, int]] = {
        BAND_24: (2400, 2500),
        BAND_5: (5000, 5900),
        BAND_6: (5925, 7125),
        BAND_60: (57000, 71000),
    }

    def get_channel_info(self, frequency: int) -> ChannelInfo:
        """Map a centre frequency (MHz) to its channel.

        Tabulated frequencies return their regulatory region; other
        frequencies inside a known band are computed and marked ``Calc``.
        Anything else, including non-positive input, yields channel 0 in
        band ``Unknown``.
        """
        hit = self._TABLE.get(frequency)
        if hit is not None:
            channel, band, region = hit
            return ChannelInfo(
                frequency=frequency, channel=channel, band=band, region=region
            )

        channel, band = self._calculate(frequency)
        return ChannelInfo(
            frequency=frequency,
            channel=channel,
            band=band,
            region=REGION_CALC if band != BAND_UNKNOWN else REGION_GLOBAL,
        )

    @staticmethod
    def _calculate(freq: int) -> tuple[int, str]:
        if 2400 <= freq <= 2500:
            return max(1, (freq - 2412) // 5 + 1), BAND_24
        if 5000 <= freq < 5900:
            return (freq - 5000) // 5, BAND_5
        if 5900 <= freq <= 6500:
            return max(1, _six_ghz_channel(freq)), BAND_6
        if 57000 <= freq <= 71000:
            return max(1, (freq - 57240) // 1080 + 1), BAND_60
        return 0, BAND_UNKNOWN

    def band_of(self, frequency: int) -> str:
        """Band label of *frequency* (``Unknown`` when unmapped)."""
        return self.get_channel_info(frequency).band

    def is_in_band(self, frequency: int, band: str) -> bool:
        """Whether *frequency* lies inside the frequency window of *band*."""
        window = self._BAND_RANGES.get(band)
        if window is None:
            return False
        low, high = window
        return low <= frequency <= high

    @staticmethod
    def get_supported_bands() -> list[str]:
        return [BAND_24, BAND_5, BAND_6, BAND_60]
