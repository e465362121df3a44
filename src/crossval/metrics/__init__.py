"""
Metric snapshots consumed by the cross-source validator.

Two record kinds, one per source:
  - GitHubMetrics: code activity (commits, merged PRs, closed issues)
  - NEARMetrics:   ledger activity (transactions, contract calls)

Payloads arrive from the collector components with camelCase paths
(metadata.collectionTimestamp, pullRequests.merged, ...). Both camelCase
and snake_case keys are accepted.

Records are frozen. A counter that is absent or null contributes zero
activity; the validator never fails on it. Structurally unusable input
(no collection timestamp, negative or non-integer counters) is rejected
by from_dict() with InvalidMetricsError, before any check runs.

Usage:
    github = GitHubMetrics.from_dict(github_payload)
    near = NEARMetrics.from_dict(near_payload)
"""

from __future__ import annotations

from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel


class InvalidMetricsError(ValueError):
    """A metric payload is unusable: the data cannot be checked at all."""

    def __init__(self, source: str, problems: list[str]):
        self.source = source
        self.problems = problems
        super().__init__(f"Invalid {source} metrics: {'; '.join(problems)}")


class _Section(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


# ═══════════════════════════════════════════════════════════════════
#  Shared
# ═══════════════════════════════════════════════════════════════════

class CollectionMetadata(_Section):
    collection_timestamp: int = Field(ge=0)  # epoch ms


# ═══════════════════════════════════════════════════════════════════
#  Source A: GitHub
# ═══════════════════════════════════════════════════════════════════

class CommitStats(_Section):
    count: Optional[int] = Field(0, ge=0)
    authors: list[str] = Field(default_factory=list)


class PullRequestStats(_Section):
    merged: Optional[int] = Field(0, ge=0)
    authors: list[str] = Field(default_factory=list)


class IssueStats(_Section):
    closed: Optional[int] = Field(0, ge=0)
    participants: list[str] = Field(default_factory=list)


class GitHubMetrics(_Section):
    """Code-activity snapshot for one repository over one period."""

    source_name: ClassVar[str] = "github"

    metadata: CollectionMetadata
    commits: CommitStats = Field(default_factory=CommitStats)
    pull_requests: PullRequestStats = Field(default_factory=PullRequestStats)
    issues: IssueStats = Field(default_factory=IssueStats)

    @property
    def collection_timestamp(self) -> int:
        return self.metadata.collection_timestamp

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GitHubMetrics":
        return _parse(cls, data)


# ═══════════════════════════════════════════════════════════════════
#  Source B: NEAR
# ═══════════════════════════════════════════════════════════════════

class TransactionStats(_Section):
    count: Optional[int] = Field(0, ge=0)
    unique_users: list[str] = Field(default_factory=list)


class ContractStats(_Section):
    calls: Optional[int] = Field(0, ge=0)
    unique_callers: list[str] = Field(default_factory=list)


class NEARMetrics(_Section):
    """Ledger-activity snapshot for one contract over one period."""

    source_name: ClassVar[str] = "near"

    metadata: CollectionMetadata
    transactions: TransactionStats = Field(default_factory=TransactionStats)
    contract: ContractStats = Field(default_factory=ContractStats)

    @property
    def collection_timestamp(self) -> int:
        return self.metadata.collection_timestamp

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NEARMetrics":
        return _parse(cls, data)


RECORD_TYPES: dict[str, type[GitHubMetrics] | type[NEARMetrics]] = {
    "github": GitHubMetrics,
    "near": NEARMetrics,
}


def parse_metrics(kind: str, data: dict[str, Any]) -> GitHubMetrics | NEARMetrics:
    """Parse a payload for the named source kind ('github' or 'near')."""
    try:
        record_type = RECORD_TYPES[kind]
    except KeyError:
        raise ValueError(
            f"Unknown metrics kind '{kind}'. Valid kinds: {', '.join(RECORD_TYPES)}"
        )
    return record_type.from_dict(data)


def _parse(cls, data: Any):
    if not isinstance(data, dict):
        raise InvalidMetricsError(cls.source_name, [f"expected an object, got {type(data).__name__}"])
    try:
        return cls.model_validate(data)
    except ValidationError as exc:
        problems = [
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        ]
        raise InvalidMetricsError(cls.source_name, problems) from exc
