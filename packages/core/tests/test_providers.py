"""Tests for analysis providers.

Shared behaviour (_parse, prompt construction, analyze) lives in BaseAnalyzer
and is tested once via a lightweight stub. Provider-specific tests cover only
what differs: the SDK client setup and _call_api.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from engdigest_core.models import QualitativeAnalysis
from engdigest_core.providers.base import AnalysisError, BaseAnalyzer
from engdigest_core.providers.openai import OpenAIAnalyzer

VALID = {
    "score": 0.72,
    "factors": ["auth middleware rewritten"],
    "reasoning": "Touches session handling with no tests.",
    "concerns": ["token refresh"],
    "recommendations": ["add regression tests for login"],
}
VALID_JSON = json.dumps(VALID)


class _StubAnalyzer(BaseAnalyzer):
    """Minimal concrete subclass used to test BaseAnalyzer shared methods."""

    def __init__(self, response=VALID_JSON):
        self.response = response
        self.prompts = []
        self.json_modes = []

    async def _call_api(self, system_prompt: str, user_prompt: str, json_mode: bool = False) -> str:
        self.prompts.append((system_prompt, user_prompt))
        self.json_modes.append(json_mode)
        return self.response


# ---------------------------------------------------------------------------
# Shared behaviour — tested once through the stub, not per provider
# ---------------------------------------------------------------------------


class TestBaseAnalyzerParse:
    def test_parses_valid_json(self):
        result = _StubAnalyzer()._parse(VALID_JSON)
        assert isinstance(result, QualitativeAnalysis)
        assert result.score == 0.72
        assert result.concerns == ["token refresh"]

    def test_strips_markdown_code_fences(self):
        result = _StubAnalyzer()._parse(f"```json\n{VALID_JSON}\n```")
        assert result.reasoning == VALID["reasoning"]

    def test_empty_lists_are_allowed(self):
        payload = {**VALID, "factors": [], "concerns": [], "recommendations": []}
        result = _StubAnalyzer()._parse(json.dumps(payload))
        assert result.factors == []

    def test_invalid_json_raises(self):
        with pytest.raises(AnalysisError):
            _StubAnalyzer()._parse("not json at all")

    def test_non_object_raises(self):
        with pytest.raises(AnalysisError):
            _StubAnalyzer()._parse("[1, 2]")

    @pytest.mark.parametrize("score", [-0.1, 1.2])
    def test_score_out_of_range_raises(self, score):
        with pytest.raises(AnalysisError):
            _StubAnalyzer()._parse(json.dumps({**VALID, "score": score}))

    @pytest.mark.parametrize("missing", ["score", "factors", "reasoning", "concerns", "recommendations"])
    def test_missing_field_raises(self, missing):
        payload = {k: v for k, v in VALID.items() if k != missing}
        with pytest.raises(AnalysisError):
            _StubAnalyzer()._parse(json.dumps(payload))

    def test_blank_reasoning_raises(self):
        with pytest.raises(AnalysisError):
            _StubAnalyzer()._parse(json.dumps({**VALID, "reasoning": "   "}))


class TestBaseAnalyzerPrompts:
    def test_user_prompt_contains_metadata(self, make_record):
        record = make_record(number=42, title="Rewrite auth", additions=30, deletions=4, labels=["security"])
        prompt = _StubAnalyzer()._build_user_prompt(record)
        assert "PR #42: Rewrite auth" in prompt
        assert "Lines added: 30" in prompt
        assert "Total changes: 34 lines" in prompt
        assert "Labels: security" in prompt
        assert "Author: octocat" in prompt

    def test_labels_default_to_none(self, make_record):
        prompt = _StubAnalyzer()._build_user_prompt(make_record(labels=[]))
        assert "Labels: none" in prompt

    def test_file_list_capped(self, make_record):
        files = [f"src/mod_{i}.py" for i in range(25)]
        prompt = _StubAnalyzer()._build_user_prompt(make_record(files_changed=files))
        assert "- src/mod_19.py" in prompt
        assert "src/mod_20.py" not in prompt
        assert "... and 5 more files" in prompt

    def test_short_file_list_has_no_overflow_line(self, make_record):
        prompt = _StubAnalyzer()._build_user_prompt(make_record())
        assert "more files" not in prompt


class TestBaseAnalyzerAnalyze:
    @pytest.mark.asyncio
    async def test_analyze_round_trip(self, make_record):
        analyzer = _StubAnalyzer()
        result = await analyzer.analyze(make_record(number=5))
        assert result.score == 0.72
        assert "PR #5" in analyzer.prompts[0][1]

    @pytest.mark.asyncio
    async def test_analyze_propagates_api_errors(self, make_record):
        class _Failing(BaseAnalyzer):
            async def _call_api(self, system_prompt, user_prompt, json_mode=False):
                raise RuntimeError("network error")

        with pytest.raises(RuntimeError):
            await _Failing().analyze(make_record())

    @pytest.mark.asyncio
    async def test_complete_returns_raw_text(self):
        assert await _StubAnalyzer(response="## Highlights").complete("sys", "user") == "## Highlights"

    @pytest.mark.asyncio
    async def test_only_analysis_requests_json_mode(self, make_record):
        analyzer = _StubAnalyzer()
        await analyzer.analyze(make_record())
        analyzer.response = "## Highlights"
        await analyzer.complete("sys", "user")
        assert analyzer.json_modes == [True, False]


# ---------------------------------------------------------------------------
# Provider-specific
# ---------------------------------------------------------------------------


class TestOpenAIAnalyzer:
    def test_raises_import_error_without_sdk(self):
        import engdigest_core.providers.openai as openai_mod

        real_client = openai_mod._AsyncOpenAI
        openai_mod._AsyncOpenAI = None
        try:
            with pytest.raises(ImportError):
                OpenAIAnalyzer(api_key="key")
        finally:
            openai_mod._AsyncOpenAI = real_client

    def test_default_model(self):
        assert OpenAIAnalyzer(api_key="key").model == OpenAIAnalyzer.MODEL

    def test_model_override(self):
        assert OpenAIAnalyzer(api_key="key", model="gpt-4o-mini").model == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_call_api_returns_message_content(self):
        analyzer = OpenAIAnalyzer(api_key="key")
        response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=VALID_JSON))])
        create = AsyncMock(return_value=response)
        analyzer.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

        assert await analyzer._call_api("sys", "user", json_mode=True) == VALID_JSON
        kwargs = create.await_args.kwargs
        assert kwargs["temperature"] == OpenAIAnalyzer.TEMPERATURE
        assert kwargs["max_tokens"] == OpenAIAnalyzer.MAX_TOKENS
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}

    @pytest.mark.asyncio
    async def test_summary_call_is_free_text_with_own_settings(self):
        analyzer = OpenAIAnalyzer(api_key="key")
        response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="## Highlights"))])
        create = AsyncMock(return_value=response)
        analyzer.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

        assert await analyzer.complete("sys", "user") == "## Highlights"
        kwargs = create.await_args.kwargs
        assert "response_format" not in kwargs
        assert kwargs["temperature"] == OpenAIAnalyzer.SUMMARY_TEMPERATURE == 0.7
        assert kwargs["max_tokens"] == OpenAIAnalyzer.SUMMARY_MAX_TOKENS == 1000

    @pytest.mark.asyncio
    async def test_empty_content_raises(self):
        analyzer = OpenAIAnalyzer(api_key="key")
        response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=None))])
        create = AsyncMock(return_value=response)
        analyzer.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

        with pytest.raises(AnalysisError):
            await analyzer._call_api("sys", "user")
