"""digest command — summarize recent activity for a repository."""

from __future__ import annotations

import asyncio
import logging

import click
from github import GithubException
from rich.console import Console
from rich.markup import escape

from engdigest_core.digest import build_digest, get_analyzer
from engdigest_core.gh.fetchers import get_repo
from engdigest_core.report import print_digest, write_markdown
from engdigest_core.summary import generate_digest_summary

console = Console()
logger = logging.getLogger(__name__)


async def _run(repo_obj, owner: str, repo: str, config: dict):
    """Build the digest and, when an OpenAI key is available, its narrative summary."""
    analyzer = get_analyzer(config) if config.get("openai_api_key") else None
    data = await build_digest(repo_obj, owner, repo, config, analyzer=analyzer)

    summary = ""
    if analyzer is not None:
        console.print("[cyan]Generating AI summary...[/cyan]")
        # The digest is already built; a summary failure only drops the summary.
        try:
            summary = await generate_digest_summary(data, analyzer)
        except Exception as e:
            logger.debug("Summary generation failed", exc_info=True)
            console.print(f"[yellow]AI summary failed, continuing without it: {escape(str(e))}[/yellow]")
    return data, summary


@click.command("digest")
@click.option("--owner", required=True, help="GitHub repository owner or organization.")
@click.option("--repo", required=True, help="GitHub repository name.")
@click.option("--since", "since_hours", type=int, default=None, help="Hours to look back. [default: 24]")
@click.option("--output", default=None, help="Also write the digest to this markdown file.")
@click.option(
    "--ai-risk",
    "ai_risk",
    is_flag=True,
    default=None,
    help="Escalate risky PRs to AI for qualitative risk analysis (slower).",
)
@click.option(
    "--ai-risk-threshold",
    "ai_risk_threshold",
    type=click.FloatRange(0, 1),
    default=None,
    help="Formula risk score at or above which a PR is escalated. [default: 0.5]",
)
@click.option(
    "--concurrency",
    "ai_risk_concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Number of PRs analyzed at once. [default: 3]",
)
@click.option("--model", default=None, help="OpenAI model used for analysis and summary.")
@click.pass_context
def digest_cmd(
    ctx,
    owner: str,
    repo: str,
    since_hours: int | None,
    output: str | None,
    ai_risk: bool | None,
    ai_risk_threshold: float | None,
    ai_risk_concurrency: int | None,
    model: str | None,
):
    """Generate an engineering digest for a repository.

    Fetches merged PRs, CI runs, deployments and commits from the last
    --since hours, scores each PR's risk, and prints the digest.

    \b
    Required environment variables:
      GITHUB_TOKEN      GitHub personal access token
      OPENAI_API_KEY    Required for the AI summary and --ai-risk
    """
    from engdigest_core.config import load_config, validate_config

    config_path = ctx.obj.get("config_path", ".engdigest.yml") if ctx.obj else ".engdigest.yml"
    config = load_config(
        config_path,
        cli_overrides={
            "since_hours": since_hours,
            "output": output,
            "ai_risk": ai_risk,
            "ai_risk_threshold": ai_risk_threshold,
            "ai_risk_concurrency": ai_risk_concurrency,
            "model": model,
        },
    )
    try:
        validate_config(config)
    except ValueError as e:
        raise click.UsageError(str(e))

    if not config.get("github_token"):
        raise click.UsageError(
            "GITHUB_TOKEN environment variable is not set.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    if config.get("ai_risk") and not config.get("openai_api_key"):
        raise click.UsageError("OPENAI_API_KEY environment variable is required for --ai-risk.")
    if not config.get("openai_api_key"):
        console.print("[yellow]OPENAI_API_KEY is not set; the AI summary will be skipped.[/yellow]")

    try:
        repo_obj = get_repo(owner, repo, token=config["github_token"])
        data, summary = asyncio.run(_run(repo_obj, owner, repo, config))
    except GithubException as e:
        raise click.ClickException(f"GitHub request failed for {owner}/{repo}: {e}")

    print_digest(data, summary)

    if config.get("output"):
        path = write_markdown(config["output"], data, summary)
        console.print(f"\n[green]Digest written to {path}[/green]")
