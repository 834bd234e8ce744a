"""Bounded-concurrency escalation of PRs to the analysis provider.

PRs are sent in fixed-size groups. Every call in a group starts together and
the group finishes only when all of them have settled; a fixed pause follows
before the next group starts. This keeps the number of in-flight requests under
the provider's rate ceiling without a general-purpose limiter.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from engdigest_core.models import ChangeRecord, QualitativeAnalysis
from engdigest_core.providers.base import BaseAnalyzer

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3
DEFAULT_DELAY_MS = 500

ProgressCallback = Callable[[int, int], None]


def partition(records: list[ChangeRecord], size: int) -> list[list[ChangeRecord]]:
    """Split records into consecutive groups of at most size, preserving order."""
    return [records[i : i + size] for i in range(0, len(records), size)]


async def _analyze_one(
    analyzer: BaseAnalyzer,
    record: ChangeRecord,
    timeout: float | None,
) -> tuple[int, QualitativeAnalysis | None]:
    try:
        if timeout is None:
            analysis = await analyzer.analyze(record)
        else:
            analysis = await asyncio.wait_for(analyzer.analyze(record), timeout)
    except asyncio.TimeoutError as e:
        # Only our own deadline gets the timeout message; a provider may raise TimeoutError itself.
        if timeout is None:
            logger.warning("Error analyzing PR #%s: %s", record.number, str(e) or "timed out")
        else:
            logger.warning("Analysis of PR #%s timed out after %ss", record.number, timeout)
        return record.number, None
    except Exception as e:
        logger.warning("Error analyzing PR #%s: %s", record.number, e)
        return record.number, None
    return record.number, analysis


async def escalate(
    records: list[ChangeRecord],
    analyzer: BaseAnalyzer,
    concurrency: int = DEFAULT_CONCURRENCY,
    delay_ms: int = DEFAULT_DELAY_MS,
    on_progress: ProgressCallback | None = None,
    timeout: float | None = None,
) -> dict[int, QualitativeAnalysis]:
    """Analyze records in paced groups and return successful analyses by PR number.

    A failed call is logged and left out of the result; it never aborts the
    batch. ``timeout`` (seconds) bounds each call when set; by default a call
    may take as long as the provider needs.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be a positive integer, got {concurrency!r}")
    if delay_ms < 0:
        raise ValueError(f"delay_ms must be non-negative, got {delay_ms!r}")

    results: dict[int, QualitativeAnalysis] = {}
    groups = partition(records, concurrency)
    total = len(records)
    done = 0

    for idx, group in enumerate(groups):
        settled = await asyncio.gather(*(_analyze_one(analyzer, r, timeout) for r in group))

        # Keys are PR numbers, so folding the group in any order is equivalent.
        for number, analysis in settled:
            if analysis is not None:
                results[number] = analysis

        done += len(group)
        if on_progress is not None:
            on_progress(done, total)

        if idx < len(groups) - 1 and delay_ms:
            await asyncio.sleep(delay_ms / 1000)

    failed = total - len(results)
    if failed:
        logger.info("Escalation finished: %d/%d analyzed, %d failed", len(results), total, failed)
    return results
