"""Base analyzer implementing the Template Method pattern.

Every backend shares the same analysis algorithm:
    analyze() → _build_system_prompt() + _build_user_prompt()
              → _call_api()   ← only this differs per backend
              → _parse()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw async API call and return the text response,
    in JSON mode for analyses and free text for summaries

No retry happens here. A failed call raises, and the batch escalator decides
what a failure means for the run.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod

from pydantic import BaseModel, Field, ValidationError, field_validator

from engdigest_core.models import ChangeRecord, QualitativeAnalysis

_MAX_TOKENS = 1024
_SUMMARY_MAX_TOKENS = 1000
# Caps the file list sent per PR so huge PRs do not blow up the prompt.
_MAX_PROMPT_FILES = 20


class AnalysisError(Exception):
    """Raised when a provider response cannot be turned into a QualitativeAnalysis."""


class _AnalysisPayload(BaseModel):
    """Strict schema for the provider's JSON response.

    Every field is required; anything missing or out of range fails the whole
    response rather than producing a partial analysis.
    """

    score: float = Field(ge=0, le=1)
    factors: list[str]
    reasoning: str = Field(min_length=1)
    concerns: list[str]
    recommendations: list[str]

    @field_validator("reasoning")
    @classmethod
    def reasoning_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reasoning must not be blank")
        return value


class BaseAnalyzer(ABC):
    MAX_TOKENS: int = _MAX_TOKENS
    SUMMARY_MAX_TOKENS: int = _SUMMARY_MAX_TOKENS
    MAX_PROMPT_FILES: int = _MAX_PROMPT_FILES

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    async def analyze(self, record: ChangeRecord) -> QualitativeAnalysis:
        """Return a qualitative risk analysis for one merged PR.

        Raises on any provider failure or invalid response.
        """
        raw = await self._call_api(self._build_system_prompt(), self._build_user_prompt(record), json_mode=True)
        return self._parse(raw)

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Free-form completion, used for the digest summary."""
        return await self._call_api(system_prompt, user_prompt, json_mode=False)

    # ------------------------------------------------------------------ #
    # Abstract — implement in each backend                                 #
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def _call_api(self, system_prompt: str, user_prompt: str, json_mode: bool = False) -> str:
        """Make a single API call and return the raw text response.

        ``json_mode`` marks a structured analysis call: the backend should
        request a JSON object and use its analysis settings. Otherwise the call
        is a free-text completion with the summary settings.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _build_system_prompt(self) -> str:
        return """You are a senior engineer assessing the risk of merged pull requests.
Judge how likely the change is to cause a production incident or regression.
Be specific: name files, areas and patterns rather than generic advice."""

    def _build_user_prompt(self, record: ChangeRecord) -> str:
        shown = record.files_changed[: self.MAX_PROMPT_FILES]
        files = "\n".join(f"- {path}" for path in shown)
        hidden = len(record.files_changed) - len(shown)
        more = f"\n... and {hidden} more files" if hidden > 0 else ""
        labels = ", ".join(record.labels) or "none"

        return f"""Analyze the risk level of this pull request:

**PR #{record.number}: {record.title}**

Metadata:
- Files changed: {record.changed_files}
- Lines added: {record.additions}
- Lines deleted: {record.deletions}
- Total changes: {record.total_lines} lines
- Time to merge: {round(record.time_to_merge_hours)} hours
- Author: {record.author}
- Labels: {labels}

Files affected:
{files}{more}

Consider:
1. **Scope**: How many files and lines are changed?
2. **Complexity**: Are critical files affected (config, auth, payments, database)?
3. **Testing**: Are test files included? Is there sufficient test coverage?
4. **Review time**: Was this rushed or carefully reviewed?
5. **File types**: Are infrastructure files (CI/CD, Docker, migrations) modified?
6. **Patterns**: Are there red flags in file names or patterns?

### Output Format:
Respond with **only** a valid JSON object:

{{
  "score": <overall risk from 0 (no risk) to 1 (high risk)>,
  "factors": ["<specific risk factor>", ...],
  "reasoning": "<brief explanation of the assessment>",
  "concerns": ["<area that needs attention>", ...],
  "recommendations": ["<how to mitigate the risk>", ...]
}}

Do not return any text outside the JSON object."""

    def _parse(self, raw: str) -> QualitativeAnalysis:
        """Validate the raw response and build a QualitativeAnalysis from it."""
        cleaned = re.sub(r"^```(?:json)?\s*", "", (raw or "").strip())
        cleaned = re.sub(r"\s*```$", "", cleaned.strip())
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise AnalysisError(f"{self.__class__.__name__}: response is not JSON: {cleaned[:200]!r}") from e
        if not isinstance(data, dict):
            raise AnalysisError(f"{self.__class__.__name__}: expected a JSON object, got {type(data).__name__}")
        try:
            payload = _AnalysisPayload(**data)
        except ValidationError as e:
            raise AnalysisError(f"{self.__class__.__name__}: invalid analysis: {e}") from e

        return QualitativeAnalysis(
            score=payload.score,
            factors=list(payload.factors),
            reasoning=payload.reasoning,
            concerns=list(payload.concerns),
            recommendations=list(payload.recommendations),
        )
