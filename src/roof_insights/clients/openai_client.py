"""OpenAI chat completion client."""

from typing import Any

import openai
import structlog

from roof_insights.clients.claude import CompletionResponse
from roof_insights.config import get_settings

logger = structlog.get_logger(__name__)


class OpenAIClient:
    """Client for OpenAI's chat completions API.

    Also supports OpenAI-compatible APIs via a custom base_url.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        if api_key is None and settings.openai_api_key is not None:
            api_key = settings.openai_api_key.get_secret_value()
        if not api_key:
            raise ValueError("An OpenAI API key is required")
        self._api_key = api_key
        self._base_url = base_url  # None means use OpenAI's default
        self._model = model or settings.gpt_model
        self._max_tokens = max_tokens or settings.description_max_tokens
        self._temperature = temperature if temperature is not None else settings.llm_temperature

        client_kwargs: dict[str, Any] = {
            "api_key": self._api_key,
            "timeout": timeout or settings.ai_timeout,
            "max_retries": 0,
        }
        if self._base_url:
            client_kwargs["base_url"] = self._base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        client_name = "openai_compatible" if self._base_url else "openai"
        self._logger = logger.bind(client=client_name, model=self._model)

    def _parse_response(self, response: Any) -> CompletionResponse:
        choice = response.choices[0] if response.choices else None
        content = (choice.message.content or "") if choice else ""
        return CompletionResponse(
            content=content.strip(),
            stop_reason=(choice.finish_reason if choice else None) or "stop",
            usage={
                "input_tokens": response.usage.prompt_tokens if response.usage else 0,
                "output_tokens": response.usage.completion_tokens if response.usage else 0,
            },
        )

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None = None,
    ) -> CompletionResponse:
        """Request a single chat completion.

        Raises:
            openai.APIError: On transport failures, timeouts and non-2xx replies.
        """
        self._logger.debug("generating_response", prompt_chars=len(user_prompt))

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=max_tokens or self._max_tokens,
                temperature=self._temperature,
            )
        except openai.APIError as e:
            self._logger.error("api_error", error=str(e))
            raise

        parsed = self._parse_response(response)
        self._logger.info(
            "response_generated",
            stop_reason=parsed.stop_reason,
            input_tokens=parsed.usage["input_tokens"],
            output_tokens=parsed.usage["output_tokens"],
        )
        return parsed

    async def close(self) -> None:
        await self._client.close()
