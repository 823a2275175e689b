"""
AirLedger Mathematical Utilities
=================================

Geodesic and statistical primitives used by the network ledger, the
per-observation anomaly checks, and the fleet-wide security analyzer.

Every estimator is backed by NumPy so that signal windows and coordinate
batches can be processed without Python-level loops.

References (master list):
    [1] Sinnott, R. W. (1984). Virtues of the Haversine.
        Sky and Telescope, 68(2), 159.
    [2] Moritz, H. (2000). Geodetic Reference System 1980.
        Journal of Geodesy, 74(1), 128-133.
    [3] Welford, B. P. (1962). Note on a Method for Calculating Corrected
        Sums of Squares and Products. Technometrics, 4(3), 419-420.
    [4] Bahl, P. & Padmanabhan, V. N. (2000). RADAR: An In-Building
        RF-based User Location and Tracking System. IEEE INFOCOM.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from numpy.typing import NDArray


# ---------------------------------------------------------------------------
#  Type aliases and constants
# ---------------------------------------------------------------------------
FloatArray = NDArray[np.floating]

#: Mean Earth radius in metres (IUGG / GRS80 mean radius, rounded).
EARTH_RADIUS_M: float = 6_371_000.0


# ========================== Geodesy ========================================


def haversine_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Great-circle distance between two WGS-84 coordinates in metres.

    .. math::

        a = \\sin^2\\!\\left(\\frac{\\Delta\\varphi}{2}\\right)
            + \\cos\\varphi_1 \\cos\\varphi_2
              \\sin^2\\!\\left(\\frac{\\Delta\\lambda}{2}\\right)

        d = 2R \\cdot \\operatorname{atan2}\\left(\\sqrt{a}, \\sqrt{1-a}\\right)

    Reference:
        Sinnott, R. W. (1984). Virtues of the Haversine.
        Sky and Telescope, 68(2), 159.

    Args:
        lat1: Latitude of the first point in decimal degrees.
        lon1: Longitude of the first point in decimal degrees.
        lat2: Latitude of the second point in decimal degrees.
        lon2: Longitude of the second point in decimal degrees.

    Returns:
        Distance in metres (``R = 6371000``).
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    # Guard against floating-point drift pushing a marginally above 1.0
    a = min(1.0, max(0.0, a))
    return 2.0 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))


def haversine_many(
    lat: float,
    lon: float,
    lats: Sequence[float] | FloatArray,
    lons: Sequence[float] | FloatArray,
) -> FloatArray:
    """Vectorised haversine from one point to many points.

    Args:
        lat:  Reference latitude (degrees).
        lon:  Reference longitude (degrees).
        lats: Target latitudes (degrees).
        lons: Target longitudes (degrees).

    Returns:
        Array of distances in metres, same length as *lats*.

    Raises:
        ValueError: If *lats* and *lons* differ in length.
    """
    lat_arr = np.radians(np.asarray(lats, dtype=np.float64))
    lon_arr = np.radians(np.asarray(lons, dtype=np.float64))
    if lat_arr.shape != lon_arr.shape:
        raise ValueError(
            f"lats and lons must have equal length, "
            f"got {lat_arr.size} and {lon_arr.size}"
        )
    if lat_arr.size == 0:
        return np.zeros(0, dtype=np.float64)

    phi1 = math.radians(lat)
    d_phi = lat_arr - phi1
    d_lambda = lon_arr - math.radians(lon)

    a = (
        np.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * np.cos(lat_arr) * np.sin(d_lambda / 2.0) ** 2
    )
    a = np.clip(a, 0.0, 1.0)
    return 2.0 * EARTH_RADIUS_M * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))


def grid_cell(lat: float, lon: float, precision: int = 1000) -> tuple[int, int]:
    """Quantise a coordinate into a square-ish grid cell.

    With the default precision of 1000 a cell spans 0.001 degrees, which is
    roughly 111 m of latitude.  Truncation (not rounding) is used so that
    the cell boundary is stable for positive and negative coordinates alike.

    Args:
        lat:       Latitude in degrees.
        lon:       Longitude in degrees.
        precision: Cells per degree.

    Returns:
        ``(lat_index, lon_index)`` integer tuple.
    """
    return int(lat * precision), int(lon * precision)


# ========================== Signal statistics ==============================


def population_variance(values: Sequence[float] | FloatArray) -> float:
    """Population variance of a sample window.

    .. math::

        \\sigma^2 = \\frac{1}{n} \\sum_{i=1}^{n} (x_i - \\bar{x})^2

    The population (``ddof=0``) estimator is used because the window is
    the complete set of recent readings rather than a sample drawn from a
    larger population.

    Reference:
        Welford, B. P. (1962). Note on a Method for Calculating Corrected
        Sums of Squares and Products. Technometrics, 4(3), 419-420.

    Args:
        values: Numeric readings (e.g. RSSI in dBm).

    Returns:
        Variance; 0.0 for an empty or single-element window.
    """
    arr = np.asarray(values, dtype=np.float64)
    if arr.size < 2:
        return 0.0
    return float(np.var(arr))


def max_swing(values: Sequence[float] | FloatArray) -> float:
    """Peak-to-peak range of a window (``max - min``).

    Args:
        values: Numeric readings.

    Returns:
        The range; 0.0 for an empty window.
    """
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return 0.0
    return float(np.ptp(arr))


def dominant_share(values: Sequence[int]) -> tuple[int, float]:
    """Most frequent value of a sequence and its share of the total.

    Args:
        values: Discrete observations (e.g. centre frequencies in MHz).

    Returns:
        ``(mode, share)`` where *share* is in ``[0, 1]``.
        ``(0, 0.0)`` for an empty sequence.
    """
    arr = np.asarray(values, dtype=np.int64)
    if arr.size == 0:
        return 0, 0.0
    uniques, counts = np.unique(arr, return_counts=True)
    idx = int(np.argmax(counts))
    return int(uniques[idx]), float(counts[idx]) / float(arr.size)
