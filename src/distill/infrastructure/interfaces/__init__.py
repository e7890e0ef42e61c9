"""Infrastructure interface exports."""

from .blob_store import BlobStore
from .inference_service import InferenceService
from .transcription_service import TranscriptionService

__all__ = ["BlobStore", "InferenceService", "TranscriptionService"]
