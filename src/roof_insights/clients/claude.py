"""Claude (Anthropic) completion client."""

from dataclasses import dataclass, field

import anthropic
import structlog

from roof_insights.config import get_settings

logger = structlog.get_logger(__name__)


@dataclass
class CompletionResponse:
    """Text completion returned by an LLM provider."""

    content: str
    stop_reason: str
    usage: dict[str, int] = field(default_factory=dict)


class ClaudeClient:
    """Client for Anthropic's Messages API.

    The SDK's own retries are disabled: a failed call falls through to the
    deterministic path once, inside the same request.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        if api_key is None and settings.anthropic_api_key is not None:
            api_key = settings.anthropic_api_key.get_secret_value()
        if not api_key:
            raise ValueError("An Anthropic API key is required")
        self._api_key = api_key
        self._model = model or settings.claude_model
        self._max_tokens = max_tokens or settings.ai_max_tokens
        self._timeout = timeout or settings.ai_timeout

        self._client = anthropic.AsyncAnthropic(
            api_key=self._api_key,
            timeout=self._timeout,
            max_retries=0,
        )
        self._logger = logger.bind(client="claude", model=self._model)

    @property
    def model(self) -> str:
        return self._model

    def _parse_response(self, response: anthropic.types.Message) -> CompletionResponse:
        """Join the text blocks of an Anthropic response."""
        content = "".join(block.text for block in response.content if block.type == "text")
        return CompletionResponse(
            content=content.strip(),
            stop_reason=response.stop_reason or "end_turn",
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
        )

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None = None,
    ) -> CompletionResponse:
        """Request a single completion for one user turn.

        Raises:
            anthropic.APIError: On transport failures, timeouts and non-2xx replies.
        """
        self._logger.debug("generating_response", prompt_chars=len(user_prompt))

        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens or self._max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except anthropic.APIError as e:
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
