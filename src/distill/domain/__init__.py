"""Domain layer exports."""

from .models import (
    AudioSource,
    JobHandle,
    JobStatus,
    JobStatusReport,
    OutputArtifact,
    OutputFormat,
    PollPolicy,
    SummarizationParams,
    SummaryRequest,
    SummaryResult,
    Transcript,
    TranscriptionJob,
    TranscriptionOptions,
    UploadedObject,
    Utterance,
)
from .blob_uploader import BlobUploader
from .document_renderer import DocumentRenderer
from .job_controller import TranscriptionJobController
from .summarizer import DEFAULT_TEMPLATE, NO_SPEECH_SUMMARY, SummarizationAdapter
from .transcript_extractor import TranscriptExtractor

__all__ = [
    "AudioSource",
    "BlobUploader",
    "DEFAULT_TEMPLATE",
    "DocumentRenderer",
    "JobHandle",
    "JobStatus",
    "JobStatusReport",
    "NO_SPEECH_SUMMARY",
    "OutputArtifact",
    "OutputFormat",
    "PollPolicy",
    "SummarizationAdapter",
    "SummarizationParams",
    "SummaryRequest",
    "SummaryResult",
    "Transcript",
    "TranscriptExtractor",
    "TranscriptionJob",
    "TranscriptionJobController",
    "TranscriptionOptions",
    "UploadedObject",
    "Utterance",
]
