"""JSON completions for the query parser and combo proposer — OpenAI first, Anthropic as fallback."""

import logging

from openai import AsyncOpenAI
import anthropic

logger = logging.getLogger(__name__)

OPENAI_MODEL = "gpt-4o-mini"
ANTHROPIC_MODEL = "claude-sonnet-4-5-20250929"


class LLMClient:
    """Asks each configured provider in turn for a single JSON reply."""

    def __init__(self, openai_api_key: str = "", anthropic_api_key: str = ""):
        self._providers = []
        if openai_api_key:
            self._providers.append(("OpenAI", self._openai_json, AsyncOpenAI(api_key=openai_api_key)))
        if anthropic_api_key:
            self._providers.append(("Anthropic", self._anthropic_json, anthropic.AsyncAnthropic(api_key=anthropic_api_key)))

    @property
    def enabled(self) -> bool:
        return bool(self._providers)

    async def complete_json(self, system: str, user: str, *, max_tokens: int, temperature: float) -> str:
        """Raw reply text from the first provider that answers.

        Raises RuntimeError if none is configured or every provider fails.
        """
        if not self._providers:
            raise RuntimeError("No LLM provider configured")

        errors = []
        for name, ask, sdk in self._providers:
            try:
                return (await ask(sdk, system, user, max_tokens, temperature)).strip()
            except Exception as e:
                errors.append(f"{name}: {e}")
                logger.warning(f"{name} completion failed: {e}")
        raise RuntimeError(f"All LLM providers failed: {'; '.join(errors)}")

    @staticmethod
    async def _openai_json(sdk: AsyncOpenAI, system, user, max_tokens, temperature) -> str:
        response = await sdk.chat.completions.create(
            model=OPENAI_MODEL,
            max_tokens=max_tokens,
            temperature=temperature,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        )
        return response.choices[0].message.content or ""

    @staticmethod
    async def _anthropic_json(sdk: anthropic.AsyncAnthropic, system, user, max_tokens, temperature) -> str:
        # No JSON response mode here; the prompts themselves demand bare JSON
        response = await sdk.messages.create(
            model=ANTHROPIC_MODEL,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system,
            messages=[{"role": "user", "content": user}],
        )
        return response.content[0].text
