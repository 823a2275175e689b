"""
AirLedger -- Wireless Network Observation Ledger
==================================================

AirLedger keeps a deduplicated, history-keeping record of every WiFi
network seen by a scanner, keyed by (SSID, BSSID).  Each observation is
merged into the ledger and checked for anomalies: weak or downgraded
security, suspected evil twins, unstable signal, relocated access points
and high-risk hardware vendors.  A population-level security analyzer
sweeps the whole ledger for coordinated attacks.

Modules:
    core.models      -- Pydantic domain models
    core.ledger      -- The network ledger
    core.storage     -- Snapshot persistence
    core.engine      -- Composition root
    analyzers        -- Vendor, channel, anomaly and security analysis
    output           -- Console and JSON report output
    cli              -- Click-based command-line interface

References:
    - IEEE. (2020). IEEE Std 802.11-2020: Wireless LAN MAC and PHY
      Specifications.
    - IEEE Registration Authority. MA-L (OUI) Public Listing.
"""

__version__ = "1.0.0"
__tool__ = "AirLedger"
__description__ = "Wireless Network Observation Ledger"
