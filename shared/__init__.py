"""
AirLedger Shared Module
========================

Configuration, structured logging, console presentation, shared
vocabularies and numeric helpers used by the ``airledger`` package.
"""

from shared.config import AirConfig

__all__ = ["AirConfig"]
