"""
AirLedger Output
=================

Output generation modules for AirLedger.

Modules:
    console  -- Rich-based console display
    report   -- JSON report generation
"""

from airledger.output.console import LedgerConsoleOutput
from airledger.output.report import LedgerReportGenerator

__all__ = [
    "LedgerConsoleOutput",
    "LedgerReportGenerator",
]
