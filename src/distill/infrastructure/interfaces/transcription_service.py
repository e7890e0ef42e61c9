"""Abstract interface for asynchronous transcription services."""

from abc import ABC, abstractmethod

from distill.domain.models import JobStatusReport, TranscriptionOptions


class TranscriptionService(ABC):
    """Abstract base class for job-based speech-to-text backends."""

    @abstractmethod
    def start_job(self, audio_uri: str, options: TranscriptionOptions) -> str:
        """
        Submits a transcription job.

        Args:
            audio_uri: Blob store URI of the audio to transcribe.
            options: Language and diarization options.

        Returns:
            Opaque job identifier.

        Raises:
            ServiceTransportError: If the service cannot be reached.
            ServiceRequestError: If the service rejects the job.
        """

    @abstractmethod
    def get_job_status(self, job_id: str) -> JobStatusReport:
        """
        Fetches the current status of a job.

        Raises:
            ServiceTransportError: If the service cannot be reached.
        """
