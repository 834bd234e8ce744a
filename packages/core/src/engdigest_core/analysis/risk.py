"""Deterministic formula risk scoring.

The formula is a cheap admission filter for the analysis provider: it only
looks at size, test presence and merge latency, so it can score every PR in a
digest without any network call.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

from engdigest_core.models import ChangeRecord, FormulaAssessment

# Caps beyond which a bigger PR is not considered riskier.
LINES_CAP = 2000
FILES_CAP = 20

LINES_WEIGHT = 0.4
FILES_WEIGHT = 0.3
NO_TESTS_PENALTY = 0.2
SLOW_MERGE_PENALTY = 0.1

SLOW_MERGE_AFTER = timedelta(hours=72)

# Substring match also covers the ".test." / ".spec." infix conventions.
_TEST_MARKERS = ("test", "spec")


def is_test_path(path: str) -> bool:
    lowered = path.lower()
    return any(marker in lowered for marker in _TEST_MARKERS)


def has_tests(record: ChangeRecord) -> bool:
    return any(is_test_path(p) for p in record.files_changed)


def is_slow_merge(record: ChangeRecord) -> bool:
    return record.merged_at - record.created_at > SLOW_MERGE_AFTER


def formula_score(record: ChangeRecord) -> float:
    """Return the weighted formula risk score for a merged PR, in [0, 1].

    The weights sum to exactly 1.0, so a PR that maxes out every term scores
    1.0. Rounding strips float noise so that boundary stays exact.
    """
    lines_term = min(record.additions + record.deletions, LINES_CAP) / LINES_CAP
    files_term = min(record.changed_files, FILES_CAP) / FILES_CAP
    no_tests_term = 0.0 if has_tests(record) else NO_TESTS_PENALTY
    slow_merge_term = SLOW_MERGE_PENALTY if is_slow_merge(record) else 0.0

    score = lines_term * LINES_WEIGHT + files_term * FILES_WEIGHT + no_tests_term + slow_merge_term
    return round(min(score, 1.0), 10)


def score_records(records: list[ChangeRecord]) -> list[ChangeRecord]:
    """Return copies of records carrying a FormulaAssessment, in input order."""
    return [replace(r, assessment=FormulaAssessment(score=formula_score(r))) for r in records]


def risky_records(records: list[ChangeRecord], threshold: float = 0.5) -> list[ChangeRecord]:
    """Select records whose current risk score is at or above threshold."""
    return [r for r in records if r.risk_score is not None and r.risk_score >= threshold]


def risk_factors(record: ChangeRecord) -> list[str]:
    """Human-readable reasons behind a formula score, used in prompts and reports."""
    factors = [f"{record.changed_files} files", f"{record.total_lines} lines"]
    if not has_tests(record):
        factors.append("no tests added")
    if is_slow_merge(record):
        factors.append(f"took {round(record.time_to_merge_hours)}h to merge")
    return factors
