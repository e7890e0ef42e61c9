"""Domain models for the distill pipeline."""

from datetime import datetime
from enum import Enum
from pathlib import Path

import filetype
from pydantic import BaseModel, Field, model_validator

from distill.exceptions import UploadLocalIOError

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class AudioSource(BaseModel, frozen=True):
    """A local audio file selected for summarization."""

    path: Path
    content_type: str
    size: int

    @property
    def name(self) -> str:
        return self.path.name

    @classmethod
    def from_path(cls, path: str | Path) -> "AudioSource":
        """
        Inspects a local file and builds an AudioSource for it.

        The content type is sniffed from the file's leading bytes rather than
        its extension.

        Args:
            path: Location of the audio file; "~" is expanded.

        Returns:
            AudioSource describing the file.

        Raises:
            UploadLocalIOError: If the file is missing, unreadable or empty.
        """
        resolved = Path(path).expanduser()
        if not resolved.is_file():
            raise UploadLocalIOError(str(resolved), "file does not exist")

        try:
            resolved = resolved.resolve()
            size = resolved.stat().st_size
            kind = filetype.guess(str(resolved)) if size else None
        except OSError as e:
            raise UploadLocalIOError(str(resolved), str(e), cause=e) from e

        if size == 0:
            raise UploadLocalIOError(str(resolved), "file is empty")

        return cls(
            path=resolved,
            content_type=kind.mime if kind else DEFAULT_CONTENT_TYPE,
            size=size,
        )


class UploadedObject(BaseModel, frozen=True):
    """An audio file stored in the blob store for the duration of a run."""

    uri: str
    bucket: str
    key: str

    @classmethod
    def from_uri(cls, uri: str) -> "UploadedObject":
        """Builds an UploadedObject from a "scheme://bucket/key" URI."""
        _, _, location = uri.partition("://")
        bucket, _, key = location.partition("/")
        return cls(uri=uri, bucket=bucket, key=key)


class JobStatus(str, Enum):
    """Lifecycle states of a transcription job."""

    QUEUED = "Queued"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    @property
    def rank(self) -> int:
        return {
            JobStatus.QUEUED: 0,
            JobStatus.IN_PROGRESS: 1,
            JobStatus.COMPLETED: 2,
            JobStatus.FAILED: 2,
        }[self]


class JobStatusReport(BaseModel, frozen=True):
    """A single status observation returned by the transcription service."""

    status: JobStatus
    output_uri: str | None = None
    failure_reason: str | None = None


class TranscriptionOptions(BaseModel, frozen=True):
    """Options passed to the transcription service on submission."""

    language_code: str = "en-US"
    speaker_labels: bool = True


class JobHandle(BaseModel, frozen=True):
    """Reference to a submitted transcription job."""

    job_id: str
    audio_uri: str
    submitted_at: datetime


class TranscriptionJob(BaseModel, frozen=True):
    """Locally tracked state of a transcription job."""

    job_id: str
    status: JobStatus = JobStatus.QUEUED
    submitted_at: datetime
    last_polled_at: datetime | None = None
    output_location: str | None = None
    failure_reason: str | None = None

    @model_validator(mode="after")
    def _check_terminal_fields(self) -> "TranscriptionJob":
        if self.status == JobStatus.COMPLETED:
            if not self.output_location or self.failure_reason is not None:
                raise ValueError("a completed job carries only an output location")
        elif self.status == JobStatus.FAILED:
            if not self.failure_reason or self.output_location is not None:
                raise ValueError("a failed job carries only a failure reason")
        elif self.output_location is not None or self.failure_reason is not None:
            raise ValueError("a pending job has neither output nor failure reason")
        return self


class PollPolicy(BaseModel, frozen=True):
    """Cadence and limits for waiting on a transcription job."""

    interval_seconds: float = Field(default=5.0, gt=0)
    backoff_factor: float = Field(default=1.0, ge=1.0)
    max_interval_seconds: float = Field(default=15.0, gt=0)
    timeout_seconds: float = Field(default=3600.0, gt=0)
    max_transport_attempts: int = Field(default=3, ge=1)

    def next_interval(self, current: float) -> float:
        return min(current * self.backoff_factor, self.max_interval_seconds)


class Utterance(BaseModel, frozen=True):
    """A single, optionally speaker-labeled, utterance from a transcript."""

    speaker: str | None = None
    text: str

    def render(self) -> str:
        if self.speaker:
            return f"Speaker {self.speaker}: {self.text}"
        return self.text


class Transcript(BaseModel, frozen=True):
    """Ordered utterances of a transcribed recording."""

    utterances: tuple[Utterance, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not any(u.text.strip() for u in self.utterances)

    @property
    def text(self) -> str:
        return "\n".join(u.render() for u in self.utterances)


class SummarizationParams(BaseModel, frozen=True):
    """Inference parameters for summary generation."""

    model: str = "gemini-2.5-flash"
    temperature: float = Field(default=0.4, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=2048, gt=0)
    max_prompt_chars: int = Field(default=400_000, gt=0)


class SummaryRequest(BaseModel, frozen=True):
    """Prompt and parameters for a single inference call."""

    prompt: str
    params: SummarizationParams
    truncated: bool = False


class SummaryResult(BaseModel, frozen=True):
    """Summary text produced for a transcript."""

    text: str
    truncated: bool = False
    no_speech: bool = False


class OutputFormat(str, Enum):
    """Container formats supported by the document renderer."""

    PLAIN = "plain"
    DOCX = "docx"

    @property
    def extension(self) -> str:
        return {OutputFormat.PLAIN: ".txt", OutputFormat.DOCX: ".docx"}[self]

    @classmethod
    def from_filename(cls, filename: str | Path) -> "OutputFormat | None":
        """Infers the format from a file extension, or None if unknown."""
        suffix = Path(filename).suffix.lower()
        if suffix in (".doc", ".docx"):
            return cls.DOCX
        if suffix == ".txt":
            return cls.PLAIN
        return None


class OutputArtifact(BaseModel, frozen=True):
    """A rendered document written to local disk."""

    format: OutputFormat
    path: Path
    content: bytes
