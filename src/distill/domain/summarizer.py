"""Builds the summary prompt and collects the generated summary."""

import logging

from distill.exceptions import (
    ContentPolicyError,
    ServiceError,
    ServiceRateLimitedError,
    SummarizeContentRejectedError,
    SummarizeRateLimitedError,
    SummarizeTransportError,
)
from distill.infrastructure.interfaces import InferenceService
from distill.runtime import CancellationToken

from .models import SummarizationParams, SummaryRequest, SummaryResult, Transcript

logger = logging.getLogger(__name__)

PLACEHOLDER = "{transcript}"

NO_SPEECH_SUMMARY = "No speech detected."

DEFAULT_TEMPLATE = (
    "You are an expert meeting summarizer. Summarize the following "
    "transcript into a concise report including:\n"
    "- Key points discussed\n"
    "- Action items, with owners where they are mentioned\n"
    "- Important dates, deadlines or follow-ups\n"
    "Use bullet points and keep the summary under 400 words.\n\n"
    "Transcript:\n" + PLACEHOLDER + "\n\nSummary:"
)


def validate_template(template: str) -> str:
    """Checks that a prompt template contains the transcript placeholder once."""
    count = template.count(PLACEHOLDER)
    if count != 1:
        raise ValueError(
            f"Prompt template must contain {PLACEHOLDER} exactly once, found {count}"
        )
    return template


def truncate_text(text: str, budget: int) -> tuple[str, bool]:
    """
    Keeps the beginning of `text` within `budget` characters.

    The cut moves back to the last line break inside the budget, if any, so
    no utterance is split mid-line.
    """
    if len(text) <= budget:
        return text, False
    head = text[:budget]
    cut = head.rfind("\n")
    if cut > 0:
        head = head[:cut]
    return head, True


class SummarizationAdapter:
    """Summarizes transcripts through an inference service."""

    def __init__(self, inference: InferenceService, cancellation: CancellationToken):
        self._inference = inference
        self._cancellation = cancellation

    def build_request(
        self, transcript: Transcript, template: str, params: SummarizationParams
    ) -> SummaryRequest:
        """
        Builds the prompt, truncating the transcript to the prompt budget.

        Over-long transcripts lose their tail; the same input always produces
        the same prompt.
        """
        budget = max(params.max_prompt_chars - (len(template) - len(PLACEHOLDER)), 0)
        text, truncated = truncate_text(transcript.text, budget)
        if truncated:
            logger.warning(
                "Transcript truncated to fit the prompt budget",
                extra={"original_chars": len(transcript.text), "kept_chars": len(text)},
            )
        return SummaryRequest(
            prompt=template.replace(PLACEHOLDER, text),
            params=params,
            truncated=truncated,
        )

    def summarize(
        self, transcript: Transcript, template: str, params: SummarizationParams
    ) -> SummaryResult:
        """
        Generates a summary of the transcript.

        An empty transcript yields a fixed "no speech" result and no remote
        call is made. Streamed responses are joined before returning.

        Raises:
            SummarizeRateLimitedError: If the inference service throttles.
            SummarizeContentRejectedError: If the content is refused.
            SummarizeTransportError: On other failures or an empty response.
            RunCancelledError: If the run is cancelled mid-call.
        """
        if transcript.is_empty:
            logger.info("Empty transcript, skipping inference")
            return SummaryResult(text=NO_SPEECH_SUMMARY, no_speech=True)

        request = self.build_request(transcript, template, params)
        self._cancellation.raise_if_cancelled("starting summarization")

        parts: list[str] = []
        try:
            for chunk in self._inference.generate(request.prompt, request.params):
                self._cancellation.raise_if_cancelled("receiving summary")
                parts.append(chunk)
        except ServiceRateLimitedError as e:
            raise SummarizeRateLimitedError(cause=e) from e
        except ContentPolicyError as e:
            raise SummarizeContentRejectedError(str(e), cause=e) from e
        except ServiceError as e:
            raise SummarizeTransportError(str(e), cause=e) from e

        text = "".join(parts).strip()
        if not text:
            raise SummarizeTransportError("inference service returned an empty response")

        logger.info(
            "Summary generated",
            extra={
                "model": params.model,
                "chunks": len(parts),
                "summary_chars": len(text),
                "truncated": request.truncated,
            },
        )
        return SummaryResult(text=text, truncated=request.truncated)
