"""
AirLedger Analyzers
====================

Modules:
    vendor    -- OUI vendor lookup and MAC address risk analysis
    channel   -- Frequency to channel / band mapping
    anomaly   -- Per-observation anomaly checks
    security  -- Population-level security sweep
"""

from airledger.analyzers.anomaly import AnomalyEngine, PriorState
from airledger.analyzers.channel import ChannelMapper
from airledger.analyzers.security import SecurityAnalyzer
from airledger.analyzers.vendor import VendorRegistry

__all__ = [
    "AnomalyEngine",
    "PriorState",
    "ChannelMapper",
    "SecurityAnalyzer",
    "VendorRegistry",
]
