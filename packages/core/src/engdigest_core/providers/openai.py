from __future__ import annotations

try:
    from openai import AsyncOpenAI as _AsyncOpenAI
except ImportError:
    _AsyncOpenAI = None  # type: ignore[assignment,misc]

from engdigest_core.providers.base import AnalysisError, BaseAnalyzer


class OpenAIAnalyzer(BaseAnalyzer):
    MODEL = "gpt-4o"
    # Low temperature keeps scores consistent between runs on the same PR.
    TEMPERATURE = 0.3
    SUMMARY_TEMPERATURE = 0.7

    def __init__(self, api_key: str, model: str | None = None):
        if _AsyncOpenAI is None:
            raise ImportError("The 'openai' package is required. Install it with: pip install openai")
        self.client = _AsyncOpenAI(api_key=api_key)
        self.model = model or self.MODEL

    async def _call_api(self, system_prompt: str, user_prompt: str, json_mode: bool = False) -> str:
        if json_mode:
            extra = {
                "temperature": self.TEMPERATURE,
                "max_tokens": self.MAX_TOKENS,
                "response_format": {"type": "json_object"},
            }
        else:
            extra = {"temperature": self.SUMMARY_TEMPERATURE, "max_tokens": self.SUMMARY_MAX_TOKENS}

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            **extra,
        )
        content = response.choices[0].message.content
        if content is None:
            raise AnalysisError(f"{self.model} returned an empty response")
        return content
