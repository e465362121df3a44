"""
crossval runner.

Entry point: `crossval validate github.json near.json`

Pipeline:
1. Load config (YAML → CrossValConfig), set up the logger
2. Parse both payloads (strict guard: InvalidMetricsError on unusable input)
3. Validate the pair
4. Log every finding and a PASS/FAIL summary
5. Apply caller policy: proceed or reject

The validator itself is pure; everything with a side effect lives here.
"""

from __future__ import annotations

import argparse
import json
import sys
import uuid
from pathlib import Path
from typing import Any, Callable

import yaml

from crossval.config import CrossValConfig
from crossval.logger.core import CrossValLogger
from crossval.metrics import GitHubMetrics, InvalidMetricsError, NEARMetrics
from crossval.quality.cross_source import CrossValidator, ValidationResult


class CrossValRunner:
    """
    Orchestrates a validation run around the pure CrossValidator.

    Usage:
        runner = CrossValRunner(CrossValConfig.from_yaml("crossval.yaml"))
        result = runner.run(github_payload, near_payload)
        if runner.should_proceed(result):
            compute_rewards(...)
    """

    TAGS = {"cross_source", "data_quality"}

    def __init__(
        self,
        config: CrossValConfig | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self._config = config or CrossValConfig()
        self._log = CrossValLogger.instance()
        if self._config.logger is not None:
            self._log.configure(self._config.logger.to_logger_dict())
        self._validator = CrossValidator(self._config.thresholds, clock=clock)

    @classmethod
    def from_yaml(cls, path: str | Path, clock: Callable[[], int] | None = None) -> "CrossValRunner":
        return cls(CrossValConfig.from_yaml(path), clock=clock)

    @property
    def config(self) -> CrossValConfig:
        return self._config

    @property
    def validator(self) -> CrossValidator:
        return self._validator

    def run(self, github_payload: dict[str, Any], near_payload: dict[str, Any]) -> ValidationResult:
        """
        Parse and validate two raw payloads.

        Raises:
            InvalidMetricsError: a payload cannot be checked at all.
        """
        with self._log.check(_new_check_id()):
            try:
                github = GitHubMetrics.from_dict(github_payload)
                near = NEARMetrics.from_dict(near_payload)
            except InvalidMetricsError as exc:
                self._log.error(
                    f"Rejected {exc.source} payload: unusable input",
                    tags=self.TAGS,
                    source=exc.source,
                    problems=exc.problems,
                )
                raise
            return self._validate(github, near)

    def run_records(self, github: GitHubMetrics, near: NEARMetrics) -> ValidationResult:
        """Validate two parsed records and log the findings."""
        with self._log.check(_new_check_id()):
            return self._validate(github, near)

    def _validate(self, github: GitHubMetrics, near: NEARMetrics) -> ValidationResult:
        result = self._validator.validate(github, near)

        for issue in result.errors:
            self._log.error(issue.message, tags=self.TAGS, code=issue.code.value, **issue.context)
        for issue in result.warnings:
            self._log.warning(issue.message, tags=self.TAGS, code=issue.code.value, **issue.context)

        sources = self._config.sources
        self._log.info(
            f"Cross-source check: {sources.source_a} vs {sources.source_b}, "
            f"{len(result.errors)} errors, {len(result.warnings)} warnings, "
            f"{'PASS' if result.is_valid else 'FAIL'}",
            tags=self.TAGS,
        )
        return result

    def run_files(self, github_path: str | Path, near_path: str | Path) -> ValidationResult:
        """Validate two JSON payload files."""
        self._log.debug(f"Loading payloads: {github_path}, {near_path}", tags=self.TAGS)
        return self.run(_load_json(github_path), _load_json(near_path))

    def should_proceed(self, result: ValidationResult) -> bool:
        """Caller policy: block on errors, and on warnings when configured to."""
        if not result.is_valid:
            return False
        return not (self._config.fail_on_warnings and result.warnings)


def _new_check_id() -> str:
    return uuid.uuid4().hex[:12]


def _load_json(path: str | Path) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crossval",
        description="Cross-source consistency check for GitHub and NEAR metric snapshots",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="Validate a GitHub/NEAR metrics pair")
    validate.add_argument("github", type=Path, help="GitHub metrics JSON file")
    validate.add_argument("near", type=Path, help="NEAR metrics JSON file")
    validate.add_argument("--config", type=Path, default=None, help="crossval YAML config")
    validate.add_argument("--json", action="store_true", help="Print the result as JSON")
    validate.add_argument(
        "--fail-on-warnings",
        action="store_true",
        help="Exit non-zero when warnings are present",
    )
    return parser


def run_cli(args: list[str] | None = None) -> int:
    """
    CLI entry point for `crossval validate <github.json> <near.json>`.

    Returns exit code: 0 = proceed, 1 = rejected, 2 = unusable input.
    """
    opts = _build_parser().parse_args(sys.argv[1:] if args is None else args)

    for path in (opts.config, opts.github, opts.near):
        if path is not None and not path.exists():
            print(f"Error: File not found: {path}")
            return 2

    try:
        config = CrossValConfig.from_yaml(opts.config) if opts.config else CrossValConfig()
        if opts.fail_on_warnings:
            config = config.model_copy(update={"fail_on_warnings": True})
        runner = CrossValRunner(config)
    except (yaml.YAMLError, ValueError) as exc:
        # pydantic ValidationError is a ValueError
        print(f"Error: Invalid config {opts.config}: {exc}")
        return 2

    log = CrossValLogger.instance()
    if opts.json:
        # stdout carries only the JSON document
        log.redirect_terminal(sys.stderr)
    elif not log.has_adapters:
        log.configure_defaults()

    try:
        result = runner.run_files(opts.github, opts.near)
    except json.JSONDecodeError as exc:
        print(f"Error: Malformed JSON: {exc}")
        return 2
    except InvalidMetricsError as exc:
        print(f"Error: {exc}")
        return 2

    proceed = runner.should_proceed(result)

    if opts.json:
        print(json.dumps({**result.to_dict(), "proceed": proceed}, indent=2, default=str))
    else:
        mark = "✓" if proceed else "✗"
        print(f"{mark} {'proceed' if proceed else 'rejected'}: "
              f"{len(result.errors)} errors, {len(result.warnings)} warnings")
        for issue in result.errors + result.warnings:
            evidence = ", ".join(f"{k}={v}" for k, v in issue.context.items())
            print(f"  [{issue.severity.value}] {issue.code.value}: {issue.message} ({evidence})")

    return 0 if proceed else 1


def main() -> None:
    sys.exit(run_cli())
