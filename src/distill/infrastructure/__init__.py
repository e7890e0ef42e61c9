"""Infrastructure layer exports."""

from .assemblyai_transcription import AssemblyAITranscriptionService
from .gemini_inference import GeminiInferenceService
from .minio_blob_store import MinioBlobStore, build_uri, parse_uri

__all__ = [
    "AssemblyAITranscriptionService",
    "GeminiInferenceService",
    "MinioBlobStore",
    "build_uri",
    "parse_uri",
]
