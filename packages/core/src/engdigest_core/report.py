"""Terminal and markdown rendering of a DigestData."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from engdigest_core.analysis.grouping import top_labels
from engdigest_core.models import ChangeRecord, DigestData, QualitativeAssessment
from engdigest_core.summary import hours_covered

console = Console()

_MAX_LABELS = 5
_PRS_PER_LABEL = 3
_MAX_WORKFLOWS = 5
_MAX_DEPLOYMENTS = 5


def risk_color(score: float) -> str:
    if score >= 0.7:
        return "red"
    if score >= 0.5:
        return "yellow"
    return "green"


def _risk_badge(pr: ChangeRecord) -> str:
    if pr.risk_score is None:
        return ""
    source = "AI" if isinstance(pr.assessment, QualitativeAssessment) else "formula"
    return f"Risk: {pr.risk_score * 100:.0f}% ({source})"


# ---------------------------------------------------------------------- #
# Terminal                                                                #
# ---------------------------------------------------------------------- #


def _print_pr(pr: ChangeRecord, detailed: bool = False) -> None:
    badge = _risk_badge(pr)
    badge_markup = ""
    if badge:
        color = risk_color(pr.risk_score)
        badge_markup = f"  [{color}]{escape(f'[{badge}]')}[/{color}]"
    console.print(f"  [cyan]#{pr.number}[/cyan] {escape(pr.title)}{badge_markup}")
    meta = f"{pr.changed_files} files, +{pr.additions}/-{pr.deletions} lines"
    if pr.labels:
        meta += f" • {', '.join(pr.labels)}"
    console.print(f"    [dim]{escape(meta)}[/dim]")
    if pr.url:
        console.print(f"    [dim]{pr.url}[/dim]")

    analysis = pr.qualitative_analysis
    if detailed and analysis is not None:
        console.print(f"    {escape(analysis.reasoning)}")
        for concern in analysis.concerns:
            console.print(f"    [yellow]! {escape(concern)}[/yellow]")
        for rec in analysis.recommendations:
            console.print(f"    [green]→ {escape(rec)}[/green]")
    console.print()


def print_digest(data: DigestData, ai_summary: str = "", now: datetime | None = None) -> None:
    """Print the digest to the terminal."""
    now = now or datetime.now(timezone.utc)
    failed = data.failed_workflows

    console.rule(f"[bold magenta]Engineering Digest — {now:%a %b %d %Y}[/bold magenta]")
    console.print(f"[dim]Repository: {data.owner}/{data.repo} • Last {hours_covered(data, now)}h[/dim]\n")

    if ai_summary:
        console.print("[bold yellow]AI Summary[/bold yellow]\n")
        console.print(escape(ai_summary))
        console.print()

    console.print("[bold yellow]Overview[/bold yellow]\n")
    console.print(f"  • [cyan]{len(data.prs)}[/cyan] PRs merged")
    risky_color = "yellow" if data.risky_prs else "green"
    console.print(f"  • [{risky_color}]{len(data.risky_prs)}[/{risky_color}] risky changes flagged")
    failed_color = "red" if failed else "green"
    console.print(f"  • [{failed_color}]{len(failed)}[/{failed_color}] CI failures")
    console.print(f"  • [green]{len(data.deployments)}[/green] deployments\n")

    labels = top_labels(data.grouped_prs, _MAX_LABELS)
    if labels:
        console.print("[bold yellow]Merged PRs by Label[/bold yellow]\n")
        for label in labels:
            label_prs = data.grouped_prs[label]
            console.print(f" [bold blue]{escape(label)} ({len(label_prs)})[/bold blue]")
            for pr in label_prs[:_PRS_PER_LABEL]:
                _print_pr(pr)

    if data.risky_prs:
        console.print("[bold yellow]Risky Changes[/bold yellow]\n")
        for pr in data.risky_prs:
            _print_pr(pr, detailed=True)

    if data.workflows:
        console.print("[bold yellow]CI Status[/bold yellow]\n")
        if failed:
            for workflow in failed[:_MAX_WORKFLOWS]:
                console.print(f"  [red]●[/red] {escape(workflow.name)} [dim]({workflow.conclusion or workflow.status})[/dim]")
                if workflow.failed_jobs:
                    jobs = ", ".join(j.name for j in workflow.failed_jobs)
                    console.print(f"      [red]Failed: {escape(jobs)}[/red]")
                console.print(f"      [dim]{workflow.url}[/dim]")
        else:
            console.print("  [green]✓ All workflows passing[/green]")
        console.print()

    if data.deployments:
        console.print("[bold yellow]Deployments[/bold yellow]\n")
        for deployment in data.deployments[:_MAX_DEPLOYMENTS]:
            console.print(
                f"  [green]→[/green] {escape(deployment.environment)} "
                f"[dim]@ {deployment.created_at:%Y-%m-%d %H:%M}[/dim]"
            )
            if deployment.pr_numbers:
                console.print(f"      [dim]PRs: {', '.join(f'#{n}' for n in deployment.pr_numbers)}[/dim]")
        console.print()

    console.rule(style="dim")
    console.print(f"[dim]Generated at {now:%H:%M:%S} UTC[/dim]")


# ---------------------------------------------------------------------- #
# Markdown                                                                #
# ---------------------------------------------------------------------- #


def _markdown_pr(pr: ChangeRecord, detailed: bool = False) -> list[str]:
    badge = _risk_badge(pr)
    title = f"[#{pr.number}]({pr.url})" if pr.url else f"#{pr.number}"
    lines = [f"- {title} {pr.title}" + (f" — **{badge}**" if badge else "")]
    meta = f"{pr.changed_files} files, +{pr.additions}/-{pr.deletions} lines"
    if pr.labels:
        meta += " · " + ", ".join(f"`{label}`" for label in pr.labels)
    lines.append(f"  - {meta}")

    analysis = pr.qualitative_analysis
    if detailed and analysis is not None:
        lines.append(f"  - _{analysis.reasoning}_")
        if analysis.factors:
            lines.append(f"  - Factors: {', '.join(analysis.factors)}")
        for concern in analysis.concerns:
            lines.append(f"  - ⚠️ {concern}")
        for rec in analysis.recommendations:
            lines.append(f"  - ✅ {rec}")
    return lines


def build_markdown(data: DigestData, ai_summary: str = "", now: datetime | None = None) -> str:
    """Render the digest as a GitHub-flavored markdown document."""
    now = now or datetime.now(timezone.utc)
    failed = data.failed_workflows

    lines = [
        f"# Engineering Digest — {data.owner}/{data.repo}\n",
        f"_{now:%Y-%m-%d} · last {hours_covered(data, now)}h_\n",
    ]

    if ai_summary:
        lines.append("## Summary\n")
        lines.append(ai_summary.strip() + "\n")

    lines.append("## Overview\n")
    lines.append("| Merged PRs | Risky changes | CI failures | Deployments |")
    lines.append("|:----------:|:-------------:|:-----------:|:-----------:|")
    lines.append(f"| {len(data.prs)} | {len(data.risky_prs)} | {len(failed)} | {len(data.deployments)} |\n")

    labels = top_labels(data.grouped_prs, _MAX_LABELS)
    if labels:
        lines.append("## Merged PRs by Label\n")
        for label in labels:
            label_prs = data.grouped_prs[label]
            lines.append(f"### {label} ({len(label_prs)})\n")
            for pr in label_prs[:_PRS_PER_LABEL]:
                lines.extend(_markdown_pr(pr))
            lines.append("")

    if data.risky_prs:
        lines.append("## Risky Changes\n")
        if data.ai_risk_used:
            lines.append("_PRs at or above the formula threshold were reviewed by AI._\n")
        for pr in data.risky_prs:
            lines.extend(_markdown_pr(pr, detailed=True))
        lines.append("")

    if data.workflows:
        lines.append("## CI Status\n")
        if failed:
            for workflow in failed[:_MAX_WORKFLOWS]:
                lines.append(f"- ❌ [{workflow.name}]({workflow.url}) ({workflow.conclusion or workflow.status})")
                if workflow.failed_jobs:
                    lines.append(f"  - Failed: {', '.join(j.name for j in workflow.failed_jobs)}")
        else:
            lines.append("✅ All workflows passing")
        lines.append("")

    if data.deployments:
        lines.append("## Deployments\n")
        for deployment in data.deployments[:_MAX_DEPLOYMENTS]:
            entry = f"- **{deployment.environment}** @ {deployment.created_at:%Y-%m-%d %H:%M}"
            if deployment.pr_numbers:
                entry += f" (PRs: {', '.join(f'#{n}' for n in deployment.pr_numbers)})"
            lines.append(entry)
        lines.append("")

    lines.append("---")
    lines.append(f"_Generated at {now:%Y-%m-%d %H:%M:%S} UTC_")
    return "\n".join(lines) + "\n"


def write_markdown(path: str, data: DigestData, ai_summary: str = "", now: datetime | None = None) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(build_markdown(data, ai_summary, now), encoding="utf-8")
    return out
