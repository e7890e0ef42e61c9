"""Abstract interface for generative text inference."""

from abc import ABC, abstractmethod
from collections.abc import Iterator

from distill.domain.models import SummarizationParams


class InferenceService(ABC):
    """Abstract base class for text generation backends."""

    @abstractmethod
    def generate(self, prompt: str, params: SummarizationParams) -> Iterator[str]:
        """
        Generates text for a prompt.

        The response may arrive in several chunks; each call returns a fresh
        iterator over them.

        Args:
            prompt: Complete prompt text.
            params: Model and sampling parameters.

        Returns:
            Iterator over response text chunks.

        Raises:
            ServiceTransportError: If the call fails in transit.
            ServiceRateLimitedError: If the caller is throttled.
            ContentPolicyError: If the prompt or response is blocked.
        """
