"""GitHub activity fetchers.

Each fetcher takes an already-resolved PyGithub Repository so callers (and
tests) control how the client is built. All fetchers only return items created
or merged at or after ``since``.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from github import Auth, Github, GithubException

from engdigest_core.models import ChangeRecord, Commit, Deployment, FailedJob, JobStep, WorkflowRun

logger = logging.getLogger(__name__)

_PR_REF_RE = re.compile(r"#(\d+)")


def get_repo(owner: str, repo: str, token: str):
    return Github(auth=Auth.Token(token)).get_repo(f"{owner}/{repo}")


def fetch_merged_prs(repo, since: datetime, max_prs: int = 100) -> list[ChangeRecord]:
    """Return PRs merged since ``since`` among the ``max_prs`` most recently updated closed PRs."""
    records: list[ChangeRecord] = []
    pulls = repo.get_pulls(state="closed", sort="updated", direction="desc")

    for i, pr in enumerate(pulls):
        if i >= max_prs:
            break
        # Closed-but-unmerged PRs have no merge time and are never scored.
        if pr.merged_at is None or pr.merged_at < since:
            continue
        records.append(
            ChangeRecord(
                number=pr.number,
                title=pr.title,
                url=pr.html_url,
                labels=[label.name for label in pr.labels],
                additions=pr.additions or 0,
                deletions=pr.deletions or 0,
                changed_files=pr.changed_files or 0,
                files_changed=[f.filename for f in pr.get_files()],
                created_at=pr.created_at,
                merged_at=pr.merged_at,
                author=pr.user.login if pr.user else "unknown",
            )
        )
    logger.debug("Fetched %d merged PR(s) since %s", len(records), since.isoformat())
    return records


def _failed_jobs(run) -> list[FailedJob]:
    jobs = []
    for job in run.jobs():
        if job.conclusion != "failure":
            continue
        jobs.append(
            FailedJob(
                name=job.name,
                conclusion=job.conclusion or "unknown",
                url=job.html_url or "",
                steps=[
                    JobStep(name=s.name, conclusion=s.conclusion or "unknown", number=s.number)
                    for s in (job.steps or [])
                ],
            )
        )
    return jobs


def fetch_ci_status(repo, since: datetime, branch: str = "main", limit: int = 50) -> list[WorkflowRun]:
    """Return workflow runs on ``branch``; failed runs carry their failed jobs."""
    workflows: list[WorkflowRun] = []
    for i, run in enumerate(repo.get_workflow_runs(branch=branch)):
        if i >= limit:
            break
        if run.created_at < since:
            continue
        workflow = WorkflowRun(
            id=run.id,
            name=run.name or "Unnamed workflow",
            status=run.status or "unknown",
            conclusion=run.conclusion,
            url=run.html_url,
            created_at=run.created_at,
            branch=run.head_branch or "unknown",
        )
        if run.conclusion == "failure":
            try:
                workflow.failed_jobs = _failed_jobs(run)
            except GithubException as e:
                logger.warning("Could not fetch jobs for workflow run %s: %s", run.id, e)
        workflows.append(workflow)
    return workflows


def fetch_deployments(repo, since: datetime, limit: int = 50) -> list[Deployment]:
    """Return recent deployments, linked to PR numbers found in the deployed commit message.

    Deployments are optional on most repositories, so a failure here yields an
    empty list instead of aborting the digest.
    """
    deployments: list[Deployment] = []
    try:
        for i, deployment in enumerate(repo.get_deployments()):
            if i >= limit:
                break
            if deployment.created_at < since:
                continue
            pr_numbers: list[int] = []
            try:
                message = repo.get_commit(deployment.sha).commit.message
                pr_numbers = [int(n) for n in _PR_REF_RE.findall(message)]
            except GithubException as e:
                logger.debug("Could not read commit %s for deployment %s: %s", deployment.sha, deployment.id, e)
            deployments.append(
                Deployment(
                    id=deployment.id,
                    environment=deployment.environment or "unknown",
                    created_at=deployment.created_at,
                    url=deployment.url,
                    ref=deployment.ref,
                    sha=deployment.sha,
                    pr_numbers=pr_numbers,
                )
            )
    except GithubException as e:
        logger.warning("Could not fetch deployments: %s", e)
    return deployments


def fetch_recent_commits(repo, since: datetime, limit: int = 50) -> list[Commit]:
    commits: list[Commit] = []
    for i, c in enumerate(repo.get_commits(since=since)):
        if i >= limit:
            break
        git_author = c.commit.author
        author = (git_author.name if git_author else None) or (c.author.login if c.author else None) or "unknown"
        commits.append(
            Commit(
                sha=c.sha,
                message=c.commit.message,
                author=author,
                url=c.html_url,
                created_at=git_author.date if git_author else datetime.now(timezone.utc),
            )
        )
    return commits
