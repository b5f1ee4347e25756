from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from google import genai
from google.genai import types

from menu_advisor.core.exceptions import APIClientError, CompletionError
from menu_advisor.schemas.conversation import TurnSender
from menu_advisor.utils.logging import get_logger
from menu_advisor.utils.text_transforms import sanitize

LOGGER = get_logger(__name__)


class CompletionClient(ABC):
    """Text-completion collaborator used by the conversation orchestrator."""

    @abstractmethod
    async def complete(self, prompt: str, prior_turns: Optional[Sequence[Any]] = None) -> str:
        """Send a prompt with prior turns as context and return the reply text.

        Args:
            prompt: Instruction text for this call
            prior_turns: History items exposing ``sender`` and ``content``,
                oldest first

        Returns:
            Completion text with NUL characters removed

        Raises:
            CompletionError: If the response is blocked or carries no text
            APIClientError: If the request itself fails
        """


class GeminiClient(CompletionClient):
    """Wrapper for Google Gemini API client.

    Makes exactly one request per call; failures surface to the caller.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-pro",
        timeout: int = 60,
    ):
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key
            model: Model name to use
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

        try:
            self.client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=self.timeout * 1000),
            )
            LOGGER.info(f"Initialized Gemini client with model {self.model}")
        except Exception as e:
            LOGGER.error(f"Failed to initialize Gemini client: {e}")
            raise APIClientError(f"Failed to initialize Gemini client: {e}", original_error=e) from e

    async def complete(self, prompt: str, prior_turns: Optional[Sequence[Any]] = None) -> str:
        contents = build_contents(prompt, prior_turns or [])

        LOGGER.info(
            "Calling Gemini",
            extra={"model": self.model, "content_parts": len(contents), "prompt_length": len(prompt or "")},
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=contents,
            )
        except Exception as e:
            LOGGER.error(f"Gemini generation failed: {e}", exc_info=True)
            raise APIClientError(f"Gemini API Error: {e}", original_error=e) from e

        text = response.text
        if not text:
            finish_reason = _finish_reason(response)
            LOGGER.error(
                "Unexpected Gemini response structure or content blocked",
                extra={"finish_reason": finish_reason},
            )
            raise CompletionError(
                f"Failed to parse Gemini response. Finish Reason: {finish_reason or 'Unknown'}",
                finish_reason=finish_reason,
            )

        LOGGER.info("Gemini response received", extra={"response_length": len(text)})
        return sanitize(text)


def build_contents(prompt: str, prior_turns: Sequence[Any]) -> List[types.Content]:
    """Map stored turns to Gemini roles and append the prompt as the last user part."""
    contents = []
    for turn in prior_turns:
        sender = getattr(turn.sender, "value", turn.sender)
        role = "model" if sender == TurnSender.AI.value else "user"
        contents.append(types.Content(role=role, parts=[types.Part(text=turn.content)]))
    contents.append(types.Content(role="user", parts=[types.Part(text=prompt)]))
    return contents


def _finish_reason(response: Any) -> Optional[str]:
    candidates = getattr(response, "candidates", None) or []
    if candidates and getattr(candidates[0], "finish_reason", None):
        reason = candidates[0].finish_reason
        return getattr(reason, "value", str(reason))
    feedback = getattr(response, "prompt_feedback", None)
    if feedback is not None and getattr(feedback, "block_reason", None):
        reason = feedback.block_reason
        return getattr(reason, "value", str(reason))
    return None
