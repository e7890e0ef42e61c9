"""Custom exceptions for the distill pipeline."""

from enum import Enum


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or is invalid."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


# Collaborator errors, raised by infrastructure adapters.


class ServiceError(Exception):
    """Base class for failures reported by an external collaborator."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class ServiceTransportError(ServiceError):
    """Raised when a collaborator cannot be reached or the call fails in transit."""


class ServiceRequestError(ServiceError):
    """Raised when a collaborator rejects a request as invalid."""


class ServiceRateLimitedError(ServiceError):
    """Raised when a collaborator throttles the caller."""


class ContentPolicyError(ServiceError):
    """Raised when a collaborator refuses content on policy grounds."""


# Stage errors. Each stage maps collaborator failures into these.


class Stage(str, Enum):
    """A discrete step of a pipeline run."""

    UPLOAD = "upload"
    TRANSCRIBE = "transcribe"
    EXTRACT = "extract"
    SUMMARIZE = "summarize"
    RENDER = "render"


class StageError(Exception):
    """Base class for errors raised by a single pipeline stage."""

    retriable = False

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(message)


class RunCancelledError(StageError):
    """Raised at a suspension point once the run has been cancelled."""

    def __init__(self, where: str):
        self.where = where
        super().__init__(f"Run cancelled while {where}")


class UploadError(StageError):
    """Raised when the audio file cannot be uploaded."""


class UploadTransportError(UploadError):
    retriable = True

    def __init__(self, key: str, cause: Exception | None = None):
        self.key = key
        super().__init__(f"Failed to upload '{key}' to blob storage", cause)


class UploadLocalIOError(UploadError):
    def __init__(self, path: str, reason: str, cause: Exception | None = None):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read audio file '{path}': {reason}", cause)


class SubmitError(StageError):
    """Raised when a transcription job cannot be submitted."""


class SubmitTransportError(SubmitError):
    retriable = True

    def __init__(self, audio_uri: str, cause: Exception | None = None):
        self.audio_uri = audio_uri
        super().__init__(
            f"Failed to submit transcription job for '{audio_uri}'", cause
        )


class SubmitInvalidInputError(SubmitError):
    def __init__(self, audio_uri: str, reason: str, cause: Exception | None = None):
        self.audio_uri = audio_uri
        self.reason = reason
        super().__init__(
            f"Transcription service rejected '{audio_uri}': {reason}", cause
        )


class JobError(StageError):
    """Raised when a submitted transcription job does not complete."""

    def __init__(self, job_id: str, message: str, cause: Exception | None = None):
        self.job_id = job_id
        super().__init__(message, cause)


class JobTransportError(JobError):
    retriable = True

    def __init__(self, job_id: str, attempts: int, cause: Exception | None = None):
        self.attempts = attempts
        super().__init__(
            job_id,
            f"Lost contact with transcription job '{job_id}' "
            f"after {attempts} attempts",
            cause,
        )


class JobRemoteFailureError(JobError):
    def __init__(self, job_id: str, reason: str, cause: Exception | None = None):
        self.reason = reason
        super().__init__(job_id, f"Transcription job '{job_id}' failed: {reason}", cause)


class JobTimeoutError(JobError):
    retriable = True

    def __init__(self, job_id: str, waited_seconds: float):
        self.waited_seconds = waited_seconds
        super().__init__(
            job_id,
            f"Transcription job '{job_id}' timed out after "
            f"{waited_seconds:.0f}s; the job is still outstanding remotely",
        )


class ExtractError(StageError):
    """Raised when the transcript artifact cannot be fetched or parsed."""


class ExtractTransportError(ExtractError):
    retriable = True

    def __init__(self, location: str, cause: Exception | None = None):
        self.location = location
        super().__init__(f"Failed to fetch transcript '{location}'", cause)


class ExtractSchemaError(ExtractError):
    def __init__(self, location: str, reason: str, cause: Exception | None = None):
        self.location = location
        self.reason = reason
        super().__init__(f"Unexpected transcript format in '{location}': {reason}", cause)


class SummarizeError(StageError):
    """Raised when the inference service cannot produce a summary."""


class SummarizeTransportError(SummarizeError):
    retriable = True

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(f"Summarization failed: {message}", cause)


class SummarizeRateLimitedError(SummarizeError):
    retriable = True

    def __init__(self, cause: Exception | None = None):
        super().__init__("Summarization was rate limited by the inference service", cause)


class SummarizeContentRejectedError(SummarizeError):
    def __init__(self, reason: str, cause: Exception | None = None):
        self.reason = reason
        super().__init__(f"Inference service rejected the transcript: {reason}", cause)


class RenderError(StageError):
    """Raised when the output document cannot be produced."""


class RenderIOError(RenderError):
    def __init__(self, path: str, cause: Exception | None = None):
        self.path = path
        super().__init__(f"Failed to write output document '{path}'", cause)


class PipelineError(Exception):
    """
    Raised by a pipeline run that did not produce an artifact.

    Records exactly one failing stage and its underlying cause, together with
    the steps that had completed before the failure.
    """

    def __init__(self, stage: Stage, cause: StageError, progress: list[str]):
        self.stage = stage
        self.cause = cause
        self.progress = list(progress)
        done = f" after {', '.join(self.progress)}" if self.progress else ""
        super().__init__(f"{stage.value} stage failed{done}: {cause}")

    @property
    def retriable(self) -> bool:
        return self.cause.retriable
