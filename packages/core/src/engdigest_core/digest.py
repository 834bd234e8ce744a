"""Digest orchestration: fetch activity, score risk, group, and hand off to reporting."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from rich.console import Console
from rich.markup import escape

from engdigest_core.analysis.grouping import group_by_label
from engdigest_core.analysis.pipeline import run_hybrid
from engdigest_core.analysis.risk import risky_records, score_records
from engdigest_core.gh.fetchers import fetch_ci_status, fetch_deployments, fetch_merged_prs, fetch_recent_commits
from engdigest_core.models import DigestData
from engdigest_core.providers.base import BaseAnalyzer
from engdigest_core.providers.openai import OpenAIAnalyzer

console = Console()
logger = logging.getLogger(__name__)


def get_analyzer(config: dict) -> OpenAIAnalyzer:
    return OpenAIAnalyzer(api_key=config["openai_api_key"], model=config.get("model"))


def _print_progress(done: int, total: int) -> None:
    console.print(f"  {escape(f'[{done}/{total}]')} PR(s) analyzed")


async def build_digest(
    repo_obj,
    owner: str,
    repo: str,
    config: dict,
    analyzer: BaseAnalyzer | None = None,
    now: datetime | None = None,
) -> DigestData:
    """Fetch the window's activity and return a scored, grouped DigestData.

    When ``config["ai_risk"]`` is set, PRs whose formula score reaches the
    threshold are escalated to ``analyzer``; everything else keeps its formula
    score. GitHub errors for PRs, workflow runs and commits propagate.
    """
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(hours=config["since_hours"])
    threshold = config["ai_risk_threshold"]

    console.print(f"[cyan]Fetching activity for {owner}/{repo} since {since:%Y-%m-%d %H:%M} UTC...[/cyan]")
    prs = fetch_merged_prs(repo_obj, since, max_prs=config.get("max_prs", 100))
    workflows = fetch_ci_status(repo_obj, since, branch=config.get("ci_branch", "main"))
    deployments = fetch_deployments(repo_obj, since)
    commits = fetch_recent_commits(repo_obj, since)
    console.print(
        f"[dim]{len(prs)} merged PR(s), {len(workflows)} workflow run(s), "
        f"{len(deployments)} deployment(s), {len(commits)} commit(s).[/dim]"
    )

    ai_risk_used = False
    if config.get("ai_risk") and analyzer is not None:
        console.print(f"[cyan]Analyzing PRs at or above risk {threshold:.2f}...[/cyan]")
        scored = await run_hybrid(
            prs,
            analyzer,
            threshold=threshold,
            concurrency=config["ai_risk_concurrency"],
            delay_ms=config["ai_risk_delay_ms"],
            on_progress=_print_progress,
            timeout=config.get("ai_risk_timeout"),
        )
        ai_risk_used = True
    else:
        if config.get("ai_risk"):
            logger.warning("AI risk analysis requested but no analyzer is configured; using formula scores")
        scored = score_records(prs)

    return DigestData(
        owner=owner,
        repo=repo,
        since=since,
        prs=scored,
        grouped_prs=group_by_label(scored),
        risky_prs=risky_records(scored, threshold),
        workflows=workflows,
        deployments=deployments,
        commits=commits,
        ai_risk_used=ai_risk_used,
    )
