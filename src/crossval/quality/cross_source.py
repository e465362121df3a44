"""
Cross-Source Data Quality.

Compare a GitHub activity snapshot with a NEAR ledger snapshot for the
same entity and period, and decide whether the pair is consistent
enough to feed a reward calculation.

Checks, in order:
1. Timestamp drift between the two collections      → error
2. Freshness of each collection against now         → error (per source)
3. Activity magnitude ratio                         → warning
4. Distinct user count discrepancy                  → warning

Only errors make a result invalid. The validator does no I/O, does not
log and never raises on typed input: every problem comes back as a
ValidationIssue in the result.

Usage:
    validator = CrossValidator({"maxTimeDrift": 3_600_000})
    result = validator.validate(github, near)
    if not result.is_valid:
        for issue in result.errors:
            print(f"  {issue.code.value}: {issue.message}")
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping

from crossval.config import ThresholdsConfig
from crossval.metrics import GitHubMetrics, NEARMetrics


# ═══════════════════════════════════════════════════════════════════
#  Codes
# ═══════════════════════════════════════════════════════════════════

class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ValidationCode(str, Enum):
    """Closed vocabulary. Downstream consumers match on these values."""
    TIMESTAMP_DRIFT = "TIMESTAMP_DRIFT"
    STALE_DATA = "STALE_DATA"
    LOW_ACTIVITY_CORRELATION = "LOW_ACTIVITY_CORRELATION"
    USER_COUNT_DISCREPANCY = "USER_COUNT_DISCREPANCY"

    @property
    def severity(self) -> Severity:
        return _SEVERITY[self]


_SEVERITY = {
    ValidationCode.TIMESTAMP_DRIFT: Severity.ERROR,
    ValidationCode.STALE_DATA: Severity.ERROR,
    ValidationCode.LOW_ACTIVITY_CORRELATION: Severity.WARNING,
    ValidationCode.USER_COUNT_DISCREPANCY: Severity.WARNING,
}


# ═══════════════════════════════════════════════════════════════════
#  Thresholds
# ═══════════════════════════════════════════════════════════════════

HOUR_MS = 60 * 60 * 1000


@dataclass(frozen=True)
class ValidationThresholds:
    max_time_drift: int = 6 * HOUR_MS         # ms between the two collections
    min_activity_correlation: float = 0.3
    max_data_age: int = 24 * HOUR_MS          # ms between now and a collection
    max_user_diff_ratio: float = 0.5

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if value < 0:
                raise ValueError(f"Threshold '{f.name}' must be >= 0, got {value}")
        if self.min_activity_correlation > 1:
            raise ValueError(
                f"Threshold 'min_activity_correlation' must be <= 1, "
                f"got {self.min_activity_correlation}"
            )

    @classmethod
    def from_overrides(
        cls,
        overrides: Mapping[str, Any] | ThresholdsConfig | None = None,
    ) -> "ValidationThresholds":
        """
        Defaults with the given fields replaced.

        Accepts snake_case or camelCase keys; unknown keys and None
        values are ignored.
        """
        if overrides is None:
            return DEFAULT_THRESHOLDS
        if not isinstance(overrides, ThresholdsConfig):
            overrides = ThresholdsConfig.model_validate(dict(overrides))
        return replace(DEFAULT_THRESHOLDS, **overrides.to_overrides())

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_THRESHOLDS = ValidationThresholds()


# ═══════════════════════════════════════════════════════════════════
#  Results
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ValidationIssue:
    """One finding. Errors and warnings share this shape."""
    code: ValidationCode
    message: str
    context: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "context", MappingProxyType(dict(self.context)))

    @property
    def severity(self) -> Severity:
        return self.code.severity

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "context": dict(self.context),
        }


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating one GitHub/NEAR pair."""
    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()
    timestamp: int = 0                       # epoch ms the validation ran
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "errors", tuple(self.errors))
        object.__setattr__(self, "warnings", tuple(self.warnings))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def codes(self) -> list[ValidationCode]:
        return [issue.code for issue in self.errors + self.warnings]

    @property
    def summary(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": len(self.errors),
            "warnings": len(self.warnings),
            "codes": [code.value for code in self.codes],
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
            "timestamp": self.timestamp,
            "metadata": dict(self.metadata),
        }


# ═══════════════════════════════════════════════════════════════════
#  Derived signals
# ═══════════════════════════════════════════════════════════════════

def calculate_time_drift(github: GitHubMetrics, near: NEARMetrics) -> int:
    """Absolute distance in ms between the two collection timestamps."""
    return abs(github.collection_timestamp - near.collection_timestamp)


def github_activity(github: GitHubMetrics) -> float:
    """Mean of the raw commit, merged-PR and closed-issue counts."""
    return (
        (github.commits.count or 0)
        + (github.pull_requests.merged or 0)
        + (github.issues.closed or 0)
    ) / 3


def near_activity(near: NEARMetrics) -> float:
    """Mean of the raw transaction and contract-call counts."""
    return ((near.transactions.count or 0) + (near.contract.calls or 0)) / 2


def calculate_activity_correlation(github: GitHubMetrics, near: NEARMetrics) -> float:
    """
    min/max ratio of the two activity levels, in [0, 1].

    Despite the name this is a magnitude ratio, not a statistical
    correlation: 1 means equal activity, 0 means one side idle while
    the other is active. Both sides idle counts as 1.
    """
    activity_a = github_activity(github)
    activity_b = near_activity(near)
    max_activity = max(activity_a, activity_b)
    if max_activity == 0:
        return 1.0
    return min(activity_a, activity_b) / max_activity


def collect_github_users(github: GitHubMetrics) -> set[str]:
    return (
        set(github.commits.authors or ())
        | set(github.pull_requests.authors or ())
        | set(github.issues.participants or ())
    )


def collect_near_users(near: NEARMetrics) -> set[str]:
    return set(near.transactions.unique_users or ()) | set(near.contract.unique_callers or ())


def _now_ms() -> int:
    return int(time.time() * 1000)


# ═══════════════════════════════════════════════════════════════════
#  Validator
# ═══════════════════════════════════════════════════════════════════

class CrossValidator:
    """
    Validates a GitHub/NEAR metrics pair.

    Thresholds are resolved once at construction and never change, so
    one instance can be shared between threads.
    """

    METADATA = {
        "source_a": "github",
        "source_b": "near",
        "validation_type": "cross_source",
    }

    def __init__(
        self,
        thresholds: ValidationThresholds | ThresholdsConfig | Mapping[str, Any] | None = None,
        clock: Callable[[], int] | None = None,
    ):
        if isinstance(thresholds, ValidationThresholds):
            self._thresholds = thresholds
        else:
            self._thresholds = ValidationThresholds.from_overrides(thresholds)
        self._clock = clock or _now_ms

    @property
    def thresholds(self) -> ValidationThresholds:
        return self._thresholds

    def validate(self, github: GitHubMetrics, near: NEARMetrics) -> ValidationResult:
        now = self._clock()
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        self._check_timestamp_drift(github, near, errors)
        self._check_freshness(github, near, now, errors)
        self._check_activity_correlation(github, near, warnings)
        self._check_user_engagement(github, near, warnings)

        return ValidationResult(
            errors=tuple(errors),
            warnings=tuple(warnings),
            timestamp=now,
            metadata=dict(self.METADATA),
        )

    # ── Checks ────────────────────────────────────────────────────

    def _check_timestamp_drift(
        self,
        github: GitHubMetrics,
        near: NEARMetrics,
        errors: list[ValidationIssue],
    ) -> None:
        drift = calculate_time_drift(github, near)
        if drift > self._thresholds.max_time_drift:
            errors.append(ValidationIssue(
                ValidationCode.TIMESTAMP_DRIFT,
                "Significant time drift between metrics",
                {"drift": drift},
            ))

    def _check_freshness(
        self,
        github: GitHubMetrics,
        near: NEARMetrics,
        now: int,
        errors: list[ValidationIssue],
    ) -> None:
        max_age = self._thresholds.max_data_age
        for label, record in (("GitHub", github), ("NEAR", near)):
            timestamp = record.collection_timestamp
            if now - timestamp > max_age:
                errors.append(ValidationIssue(
                    ValidationCode.STALE_DATA,
                    f"{label} data is too old",
                    {"timestamp": timestamp, "max_age": max_age, "source": record.source_name},
                ))

    def _check_activity_correlation(
        self,
        github: GitHubMetrics,
        near: NEARMetrics,
        warnings: list[ValidationIssue],
    ) -> None:
        correlation = calculate_activity_correlation(github, near)
        threshold = self._thresholds.min_activity_correlation
        if correlation < threshold:
            warnings.append(ValidationIssue(
                ValidationCode.LOW_ACTIVITY_CORRELATION,
                "Low correlation between GitHub and NEAR activity",
                {"correlation": correlation, "threshold": threshold},
            ))

    def _check_user_engagement(
        self,
        github: GitHubMetrics,
        near: NEARMetrics,
        warnings: list[ValidationIssue],
    ) -> None:
        count_a = len(collect_github_users(github))
        count_b = len(collect_near_users(near))
        difference = abs(count_a - count_b)
        allowed = max(count_a, count_b) * self._thresholds.max_user_diff_ratio
        if difference > allowed:
            warnings.append(ValidationIssue(
                ValidationCode.USER_COUNT_DISCREPANCY,
                "Large discrepancy between GitHub and NEAR user counts",
                {
                    "count_a": count_a,
                    "count_b": count_b,
                    "difference": difference,
                    "threshold": allowed,
                },
            ))
