"""
Data Quality: cross-source validation of GitHub vs NEAR metric snapshots.
"""
from crossval.quality.cross_source import (
    DEFAULT_THRESHOLDS,
    CrossValidator,
    Severity,
    ValidationCode,
    ValidationIssue,
    ValidationResult,
    ValidationThresholds,
    calculate_activity_correlation,
    calculate_time_drift,
    collect_github_users,
    collect_near_users,
)

__all__ = [
    "DEFAULT_THRESHOLDS",
    "CrossValidator",
    "Severity",
    "ValidationCode",
    "ValidationIssue",
    "ValidationResult",
    "ValidationThresholds",
    "calculate_activity_correlation",
    "calculate_time_drift",
    "collect_github_users",
    "collect_near_users",
]
