"""Repository activity data models.

ChangeRecord is the unit the risk pipeline operates on. Its risk is carried as
a tagged assessment so a reader never has to guess whether a score came from
the formula or from the analysis provider.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union


@dataclass(frozen=True)
class QualitativeAnalysis:
    """Structured risk judgment returned by an analysis provider."""

    score: float
    factors: list[str]
    reasoning: str
    concerns: list[str]
    recommendations: list[str]


@dataclass(frozen=True)
class FormulaAssessment:
    score: float


@dataclass(frozen=True)
class QualitativeAssessment:
    analysis: QualitativeAnalysis
    formula_score: float  # kept for display only; never blended into score

    @property
    def score(self) -> float:
        return self.analysis.score


RiskAssessment = Union[FormulaAssessment, QualitativeAssessment]


@dataclass
class ChangeRecord:
    """A merged pull request with the size and timing metadata used for scoring."""

    number: int
    title: str
    author: str
    additions: int
    deletions: int
    changed_files: int
    created_at: datetime
    merged_at: datetime
    files_changed: list[str] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)
    url: str = ""
    assessment: RiskAssessment | None = None

    def __post_init__(self):
        if self.merged_at < self.created_at:
            raise ValueError(f"PR #{self.number}: merged_at precedes created_at")

    @property
    def time_to_merge_hours(self) -> float:
        return (self.merged_at - self.created_at).total_seconds() / 3600

    @property
    def total_lines(self) -> int:
        return self.additions + self.deletions

    @property
    def risk_score(self) -> float | None:
        return self.assessment.score if self.assessment is not None else None

    @property
    def qualitative_analysis(self) -> QualitativeAnalysis | None:
        if isinstance(self.assessment, QualitativeAssessment):
            return self.assessment.analysis
        return None


@dataclass
class JobStep:
    name: str
    conclusion: str
    number: int


@dataclass
class FailedJob:
    name: str
    conclusion: str
    url: str
    steps: list[JobStep] = field(default_factory=list)


@dataclass
class WorkflowRun:
    id: int
    name: str
    status: str
    conclusion: str | None
    url: str
    created_at: datetime
    branch: str
    failed_jobs: list[FailedJob] = field(default_factory=list)


@dataclass
class Deployment:
    id: int
    environment: str
    created_at: datetime
    url: str
    ref: str
    sha: str
    pr_numbers: list[int] = field(default_factory=list)


@dataclass
class Commit:
    sha: str
    message: str
    author: str
    url: str
    created_at: datetime


@dataclass
class DigestData:
    """Everything the report layer needs to render one digest.

    Built by build_digest; the renderers never talk to GitHub or the LLM.
    """

    owner: str
    repo: str
    since: datetime
    prs: list[ChangeRecord] = field(default_factory=list)
    grouped_prs: dict[str, list[ChangeRecord]] = field(default_factory=dict)
    risky_prs: list[ChangeRecord] = field(default_factory=list)
    workflows: list[WorkflowRun] = field(default_factory=list)
    deployments: list[Deployment] = field(default_factory=list)
    commits: list[Commit] = field(default_factory=list)
    ai_risk_used: bool = False

    @property
    def failed_workflows(self) -> list[WorkflowRun]:
        return [w for w in self.workflows if w.conclusion == "failure"]
