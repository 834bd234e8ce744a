"""Hybrid risk scoring: formula for every PR, provider analysis for the risky ones."""

from __future__ import annotations

import logging
from dataclasses import replace

from engdigest_core.analysis.escalator import (
    DEFAULT_CONCURRENCY,
    DEFAULT_DELAY_MS,
    ProgressCallback,
    escalate,
)
from engdigest_core.analysis.risk import risky_records, score_records
from engdigest_core.models import ChangeRecord, FormulaAssessment, QualitativeAnalysis, QualitativeAssessment
from engdigest_core.providers.base import BaseAnalyzer

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.5


def merge_analyses(
    records: list[ChangeRecord],
    analyses: dict[int, QualitativeAnalysis],
) -> list[ChangeRecord]:
    """Attach analyses to formula-scored records, keeping length and order.

    A record with an analysis takes the analysis score outright. Records
    without one keep their formula assessment untouched.
    """
    merged = []
    for record in records:
        analysis = analyses.get(record.number)
        if analysis is None or not isinstance(record.assessment, FormulaAssessment):
            merged.append(record)
            continue
        assessment = QualitativeAssessment(analysis=analysis, formula_score=record.assessment.score)
        merged.append(replace(record, assessment=assessment))
    return merged


async def run_hybrid(
    records: list[ChangeRecord],
    analyzer: BaseAnalyzer,
    threshold: float = DEFAULT_THRESHOLD,
    concurrency: int = DEFAULT_CONCURRENCY,
    delay_ms: int = DEFAULT_DELAY_MS,
    on_progress: ProgressCallback | None = None,
    timeout: float | None = None,
) -> list[ChangeRecord]:
    """Score every record, escalate those at or above threshold, and merge results.

    Always returns one record per input record, in input order.
    """
    if not 0 <= threshold <= 1:
        raise ValueError(f"threshold must be within [0, 1], got {threshold!r}")

    scored = score_records(records)
    candidates = risky_records(scored, threshold)
    if not candidates:
        logger.debug("No PRs at or above risk threshold %.2f; skipping analysis", threshold)
        return scored

    logger.info("Escalating %d of %d PR(s) for analysis", len(candidates), len(scored))
    analyses = await escalate(
        candidates,
        analyzer,
        concurrency=concurrency,
        delay_ms=delay_ms,
        on_progress=on_progress,
        timeout=timeout,
    )
    return merge_analyses(scored, analyses)
