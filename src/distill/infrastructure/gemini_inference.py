"""Gemini implementation of the InferenceService interface."""

import logging
from collections.abc import Iterator

import httpx
from google import genai
from google.genai import errors, types

from distill.domain.models import SummarizationParams
from distill.exceptions import (
    ContentPolicyError,
    ServiceRateLimitedError,
    ServiceTransportError,
)

from .interfaces import InferenceService

logger = logging.getLogger(__name__)

_BLOCKED_FINISH_REASONS = {
    "SAFETY",
    "PROHIBITED_CONTENT",
    "BLOCKLIST",
    "SPII",
    "RECITATION",
}


def _enum_name(value) -> str:
    return getattr(value, "value", None) or str(value)


class GeminiInferenceService(InferenceService):
    """Inference service implementation using Google Gemini."""

    def __init__(self, client: genai.Client, system_prompt: str | None = None):
        self._client = client
        self._system_prompt = system_prompt

    def generate(self, prompt: str, params: SummarizationParams) -> Iterator[str]:
        """
        Streams a Gemini completion for the prompt.

        Raises:
            ServiceRateLimitedError: On HTTP 429.
            ContentPolicyError: If the prompt or the response is blocked.
            ServiceTransportError: For any other API or network failure.
        """
        config = types.GenerateContentConfig(
            temperature=params.temperature,
            max_output_tokens=params.max_output_tokens,
            system_instruction=self._system_prompt,
        )
        try:
            stream = self._client.models.generate_content_stream(
                model=params.model, contents=prompt, config=config
            )
            for chunk in stream:
                self._check_blocked(chunk)
                if chunk.text:
                    yield chunk.text
        except errors.APIError as e:
            if e.code == 429:
                logger.warning("Gemini rate limit hit", extra={"model": params.model})
                raise ServiceRateLimitedError("Gemini rate limit hit", cause=e) from e
            logger.exception("Gemini API call failed", extra={"model": params.model})
            raise ServiceTransportError(f"Gemini call failed: {e}", cause=e) from e
        except httpx.HTTPError as e:
            logger.exception("Gemini is unreachable", extra={"model": params.model})
            raise ServiceTransportError(f"Gemini is unreachable: {e}", cause=e) from e

    def _check_blocked(self, chunk: types.GenerateContentResponse) -> None:
        feedback = chunk.prompt_feedback
        if feedback is not None and feedback.block_reason:
            reason = _enum_name(feedback.block_reason)
            logger.warning("Gemini blocked the prompt", extra={"reason": reason})
            raise ContentPolicyError(f"prompt blocked ({reason})")

        for candidate in chunk.candidates or []:
            if candidate.finish_reason is None:
                continue
            reason = _enum_name(candidate.finish_reason)
            if reason in _BLOCKED_FINISH_REASONS:
                logger.warning("Gemini blocked the response", extra={"reason": reason})
                raise ContentPolicyError(f"response blocked ({reason})")
            if reason == "MAX_TOKENS":
                logger.warning("Gemini response hit the output token limit")
