"""Sequences the pipeline stages for a single audio file."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, TypeVar

from pydantic import BaseModel

from distill.config import PipelineConfig
from distill.domain import (
    AudioSource,
    BlobUploader,
    DocumentRenderer,
    OutputArtifact,
    SummarizationAdapter,
    TranscriptExtractor,
    TranscriptionJobController,
    UploadedObject,
)
from distill.exceptions import PipelineError, ServiceError, Stage, StageError
from distill.infrastructure.interfaces import BlobStore
from distill.runtime import CancellationToken, Clock

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProgressEvent(BaseModel, frozen=True):
    """Progress notification for presentation layers."""

    stage: Stage
    message: str
    completed: bool = False


ProgressCallback = Callable[[ProgressEvent], None]


class PipelineOrchestrator:
    """Turns an audio file into a summary document, one stage at a time."""

    def __init__(
        self,
        uploader: BlobUploader,
        job_controller: TranscriptionJobController,
        extractor: TranscriptExtractor,
        summarizer: SummarizationAdapter,
        renderer: DocumentRenderer,
        blob_store: BlobStore,
        clock: Clock,
        cancellation: CancellationToken,
        progress_callback: ProgressCallback | None = None,
    ):
        self._uploader = uploader
        self._jobs = job_controller
        self._extractor = extractor
        self._summarizer = summarizer
        self._renderer = renderer
        self._blob_store = blob_store
        self._clock = clock
        self._cancellation = cancellation
        self._progress_callback = progress_callback

    def run_path(
        self,
        path: str | Path,
        config: PipelineConfig,
        generated_at: datetime | None = None,
    ) -> OutputArtifact:
        """Inspects a local file and runs the pipeline on it."""
        try:
            source = AudioSource.from_path(path)
        except StageError as e:
            logger.error(
                "Pipeline stage failed",
                extra={"stage": Stage.UPLOAD.value, "error": str(e)},
            )
            raise PipelineError(Stage.UPLOAD, e, []) from e
        return self.run(source, config, generated_at)

    def run(
        self,
        source: AudioSource,
        config: PipelineConfig,
        generated_at: datetime | None = None,
    ) -> OutputArtifact:
        """
        Runs upload, transcription, extraction, summarization and rendering.

        The first failing stage stops the run. The uploaded object is removed
        afterwards when the cleanup policy asks for it.

        Args:
            source: The audio file to summarize.
            config: Per-run settings.
            generated_at: Timestamp recorded in the document; defaults to now.

        Returns:
            OutputArtifact written to local disk.

        Raises:
            PipelineError: Naming the failed stage, its cause and the steps
                completed before it.
        """
        progress: list[str] = []
        uploaded: UploadedObject | None = None
        succeeded = False

        # Settled before any remote work so a bad output setting costs nothing.
        output_format, path = config.output.resolve(source)

        logger.info(
            "Pipeline started",
            extra={
                "path": str(source.path),
                "content_type": source.content_type,
                "size": source.size,
                "output_file": str(path),
            },
        )
        try:
            uploaded = self._stage(
                Stage.UPLOAD,
                progress,
                "Uploading audio",
                lambda: self._uploader.upload(source),
                lambda result: f"uploaded to {result.uri}",
            )

            location = self._stage(
                Stage.TRANSCRIBE,
                progress,
                "Submitting transcription job",
                lambda: self._transcribe(uploaded, config, progress),
                lambda result: f"transcribed to {result}",
            )

            transcript = self._stage(
                Stage.EXTRACT,
                progress,
                "Reading transcript",
                lambda: self._extractor.fetch_and_parse(location),
                lambda result: f"extracted {len(result.utterances)} utterances",
            )

            summary = self._stage(
                Stage.SUMMARIZE,
                progress,
                "Summarizing text",
                lambda: self._summarizer.summarize(
                    transcript, config.template, config.summarization
                ),
                lambda result: "summarized",
            )

            artifact = self._stage(
                Stage.RENDER,
                progress,
                f"Writing {path}",
                lambda: self._renderer.render(
                    summary,
                    transcript if config.output.include_transcript else None,
                    output_format,
                    path,
                    generated_at or self._clock.now(),
                ),
                lambda result: f"summary written to {result.path}",
            )
            succeeded = True
        finally:
            if uploaded is not None:
                self._cleanup(uploaded, config.cleanup, succeeded)

        logger.info(
            "Pipeline completed",
            extra={"path": str(artifact.path), "format": artifact.format.value},
        )
        return artifact

    def _transcribe(
        self, uploaded: UploadedObject, config: PipelineConfig, progress: list[str]
    ) -> str:
        handle = self._jobs.submit(uploaded, config.transcription_options)
        progress.append(f"submitted job {handle.job_id}")
        self._emit(Stage.TRANSCRIBE, f"Waiting for transcription job {handle.job_id}")
        return self._jobs.await_completion(handle, config.poll)

    def _stage(
        self,
        stage: Stage,
        progress: list[str],
        message: str,
        operation: Callable[[], T],
        describe: Callable[[T], str],
    ) -> T:
        """Runs one stage, recording its outcome in `progress` on success."""
        self._emit(stage, message)
        try:
            self._cancellation.raise_if_cancelled(message.lower())
            result = operation()
        except StageError as e:
            logger.error(
                "Pipeline stage failed",
                extra={
                    "stage": stage.value,
                    "error": str(e),
                    "retriable": e.retriable,
                    "progress": progress,
                },
            )
            raise PipelineError(stage, e, progress) from e

        done = describe(result)
        progress.append(done)
        self._emit(stage, done, completed=True)
        return result

    def _cleanup(self, uploaded: UploadedObject, policy: str, succeeded: bool) -> None:
        if policy == "never" or (policy == "on_success" and not succeeded):
            return
        try:
            self._blob_store.delete(uploaded.uri)
            logger.info("Uploaded audio deleted", extra={"uri": uploaded.uri})
        except ServiceError as e:
            logger.warning(
                "Could not delete uploaded audio",
                extra={"uri": uploaded.uri, "error": str(e)},
            )

    def _emit(self, stage: Stage, message: str, completed: bool = False) -> None:
        if self._progress_callback is not None:
            self._progress_callback(
                ProgressEvent(stage=stage, message=message, completed=completed)
            )
