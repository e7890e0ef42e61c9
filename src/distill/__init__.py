"""Summarize recorded audio into a written document."""

from distill.domain.models import AudioSource, OutputArtifact, OutputFormat
from distill.exceptions import PipelineError, Stage
from distill.handlers import PipelineOrchestrator, ProgressEvent
from distill.logging import setup_logging

__all__ = [
    "AudioSource",
    "OutputArtifact",
    "OutputFormat",
    "PipelineError",
    "PipelineOrchestrator",
    "ProgressEvent",
    "Stage",
    "setup_logging",
]

__version__ = "0.1.0"
