"""
AirLedger Shared Models
========================

Severity and overall-risk vocabularies shared by the security analyzer,
the report generator and the console output.

The four-step qualitative risk scale (SAFE, CAUTION, WARNING, DANGER) is
derived from the count of findings per severity rather than from a numeric
score: a single critical finding is enough to put the whole radio
environment into DANGER.

References:
    - FIRST. (2019). Common Vulnerability Scoring System v3.1.
      https://www.first.org/cvss/v3.1/specification-document
    - NIST SP 800-30 Rev. 1 (2012). Guide for Conducting Risk Assessments.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable


# ========================== Enumerations ===================================


class Severity(str, Enum):
    """Severity of a fleet-wide security finding.

    Attributes:
        CRITICAL: Active attack in progress or highly likely.
        HIGH:     Strong indicator of a hostile device.
        MEDIUM:   Suspicious pattern worth investigating.
        LOW:      Weak indicator; frequently benign.
        INFO:     Observation only.
    """

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        """Numeric ordering, CRITICAL highest."""
        return _SEVERITY_RANK[self.value]


_SEVERITY_RANK: dict[str, int] = {
    "CRITICAL": 4,
    "HIGH": 3,
    "MEDIUM": 2,
    "LOW": 1,
    "INFO": 0,
}


class RiskLevel(str, Enum):
    """Overall threat level of one analysed snapshot.

    Attributes:
        SAFE:    No medium-or-worse findings.
        CAUTION: One or two medium findings.
        WARNING: One high finding, or three or more medium findings.
        DANGER:  Any critical finding, or two or more high findings.
    """

    SAFE = "SAFE"
    CAUTION = "CAUTION"
    WARNING = "WARNING"
    DANGER = "DANGER"

    @classmethod
    def from_severity_counts(
        cls,
        critical: int = 0,
        high: int = 0,
        medium: int = 0,
    ) -> RiskLevel:
        """Derive the overall level from per-severity finding counts.

        Rules, first match wins:
          - any CRITICAL      : DANGER
          - >= 2 HIGH         : DANGER
          - 1 HIGH            : WARNING
          - >= 3 MEDIUM       : WARNING
          - >= 1 MEDIUM       : CAUTION
          - otherwise         : SAFE
        """
        if critical > 0:
            return cls.DANGER
        if high >= 2:
            return cls.DANGER
        if high == 1:
            return cls.WARNING
        if medium >= 3:
            return cls.WARNING
        if medium >= 1:
            return cls.CAUTION
        return cls.SAFE

    @classmethod
    def from_severities(cls, severities: Iterable[Severity]) -> RiskLevel:
        """Convenience wrapper counting an iterable of severities."""
        counts = {sev: 0 for sev in Severity}
        for sev in severities:
            counts[Severity(sev)] += 1
        return cls.from_severity_counts(
            critical=counts[Severity.CRITICAL],
            high=counts[Severity.HIGH],
            medium=counts[Severity.MEDIUM],
        )

    @property
    def exit_code(self) -> int:
        """Process exit status used by the CLI for this level."""
        return {"SAFE": 0, "CAUTION": 0, "WARNING": 1, "DANGER": 2}[self.value]
