"""LLM-written narrative summary of a digest."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from engdigest_core.analysis.grouping import top_labels
from engdigest_core.analysis.risk import risk_factors
from engdigest_core.models import DigestData
from engdigest_core.providers.base import BaseAnalyzer

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are an engineering summary assistant. "
    "Generate a concise, human-readable digest of repository activity."
)


def hours_covered(data: DigestData, now: datetime | None = None) -> int:
    now = now or datetime.now(timezone.utc)
    return round((now - data.since).total_seconds() / 3600)


def build_summary_prompt(data: DigestData, now: datetime | None = None) -> str:
    lines = [
        f"Repository: {data.owner}/{data.repo}",
        f"Time Period: Last {hours_covered(data, now)} hours",
        "",
        f"## Merged Pull Requests ({len(data.prs)} total)",
        "",
    ]

    for label in top_labels(data.grouped_prs):
        label_prs = data.grouped_prs[label]
        lines.append(f"### {label} ({len(label_prs)} PRs)")
        for pr in label_prs[:3]:
            lines.append(f"- #{pr.number}: {pr.title}")
            lines.append(f"  Files: {pr.changed_files}, Lines: +{pr.additions}/-{pr.deletions}")
            lines.append(f"  Risk: {(pr.risk_score or 0) * 100:.0f}%")
        lines.append("")

    if data.risky_prs:
        lines.append(f"## Risky Changes ({len(data.risky_prs)} flagged)")
        lines.append("")
        for pr in data.risky_prs:
            lines.append(f"- #{pr.number}: {pr.title}")
            lines.append(f"  Risk factors: {', '.join(risk_factors(pr))}")
            analysis = pr.qualitative_analysis
            if analysis is not None:
                lines.append(f"  Reviewer assessment: {analysis.reasoning}")
        lines.append("")

    failed = data.failed_workflows
    if failed:
        lines.append(f"## CI Failures ({len(failed)})")
        lines.append("")
        for workflow in failed[:3]:
            lines.append(f"- {workflow.name} failed on {workflow.branch}")
            if workflow.failed_jobs:
                lines.append(f"  Failed job: {workflow.failed_jobs[0].name}")
        lines.append("")

    if data.deployments:
        lines.append(f"## Deployments ({len(data.deployments)})")
        lines.append("")
        for deployment in data.deployments[:3]:
            entry = f"- {deployment.environment} @ {deployment.created_at:%H:%M}"
            if deployment.pr_numbers:
                entry += f" (PRs: {', '.join(f'#{n}' for n in deployment.pr_numbers)})"
            lines.append(entry)
        lines.append("")

    lines.append(
        """Generate a digest summary with these sections:

1. **Highlights**: 2-3 bullet points of the most important changes/issues
2. **Key Merged PRs**: List 3-5 most impactful PRs with brief impact descriptions
3. **Risks**: Mention any risky changes that need attention
4. **CI Status**: Summarize build health
5. **Deployments**: List recent deployments if any

Keep it concise and actionable. Focus on what matters to the team."""
    )
    return "\n".join(lines)


async def generate_digest_summary(data: DigestData, analyzer: BaseAnalyzer) -> str:
    """Ask the analyzer's model for a narrative summary. Errors propagate to the caller."""
    prompt = build_summary_prompt(data)
    logger.debug("Summary prompt is %d characters", len(prompt))
    text = await analyzer.complete(_SYSTEM_PROMPT, prompt)
    return text.strip()
