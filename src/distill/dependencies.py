"""Dependency injection configuration for the distill pipeline."""

import logging

import assemblyai as aai
from google import genai
from minio import Minio
from pydantic import BaseModel, ConfigDict

from distill.config import AppConfig
from distill.domain import (
    BlobUploader,
    DocumentRenderer,
    SummarizationAdapter,
    TranscriptExtractor,
    TranscriptionJobController,
)
from distill.exceptions import ConfigError
from distill.handlers import PipelineOrchestrator, ProgressCallback
from distill.infrastructure import (
    AssemblyAITranscriptionService,
    GeminiInferenceService,
    MinioBlobStore,
)
from distill.infrastructure.interfaces import (
    BlobStore,
    InferenceService,
    TranscriptionService,
)
from distill.runtime import CancellationToken, Clock

logger = logging.getLogger(__name__)


class ServiceContext(BaseModel):
    """Read-only set of collaborator clients shared by one or more runs."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    blob_store: BlobStore
    transcription: TranscriptionService
    inference: InferenceService


def build_services(config: AppConfig) -> ServiceContext:
    """
    Creates the MinIO, AssemblyAI and Gemini clients.

    Raises:
        ConfigError: If a required credential is missing.
        ServiceTransportError: If the storage bucket cannot be reached.
    """
    if not config.assemblyai.api_key:
        raise ConfigError("ASSEMBLYAI_API_KEY is not set")
    if not config.gemini.api_key:
        raise ConfigError("GEMINI_API_KEY is not set")

    # MinIO storage
    minio_client = Minio(
        endpoint=config.minio.endpoint,
        access_key=config.minio.user,
        secret_key=config.minio.password,
        secure=config.minio.secure,
    )
    blob_store = MinioBlobStore(minio_client, config.minio.bucket_name)
    blob_store.ensure_bucket_exists()

    # AssemblyAI transcription
    aai.settings.api_key = config.assemblyai.api_key
    transcription = AssemblyAITranscriptionService(
        aai.Transcriber(), blob_store, config.assemblyai.output_prefix
    )

    # Gemini LLM
    system_prompt = None
    if config.gemini.system_prompt_path is not None:
        try:
            system_prompt = config.gemini.system_prompt_path.expanduser().read_text(
                encoding="utf-8"
            )
        except OSError as e:
            raise ConfigError(f"Cannot read system prompt: {e}", cause=e) from e
    inference = GeminiInferenceService(
        genai.Client(api_key=config.gemini.api_key), system_prompt
    )

    logger.info(
        "Services initialized",
        extra={
            "minio_endpoint": config.minio.endpoint,
            "bucket_name": config.minio.bucket_name,
        },
    )
    return ServiceContext(
        blob_store=blob_store, transcription=transcription, inference=inference
    )


def build_orchestrator(
    config: AppConfig,
    services: ServiceContext,
    cancellation: CancellationToken | None = None,
    clock: Clock | None = None,
    progress_callback: ProgressCallback | None = None,
) -> PipelineOrchestrator:
    """Composes a PipelineOrchestrator for a single run."""
    cancellation = cancellation or CancellationToken()
    clock = clock or Clock()
    return PipelineOrchestrator(
        uploader=BlobUploader(services.blob_store, config.minio.key_prefix),
        job_controller=TranscriptionJobController(
            services.transcription, clock, cancellation
        ),
        extractor=TranscriptExtractor(services.blob_store),
        summarizer=SummarizationAdapter(services.inference, cancellation),
        renderer=DocumentRenderer(),
        blob_store=services.blob_store,
        clock=clock,
        cancellation=cancellation,
        progress_callback=progress_callback,
    )
