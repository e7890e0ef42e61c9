"""AssemblyAI implementation of the TranscriptionService interface."""

import io
import json
import logging

import assemblyai as aai
import httpx

from distill.domain.models import JobStatus, JobStatusReport, TranscriptionOptions
from distill.exceptions import ServiceRequestError, ServiceTransportError

from .interfaces import TranscriptionService
from .minio_blob_store import MinioBlobStore

logger = logging.getLogger(__name__)

_STATUS_MAP = {
    aai.TranscriptStatus.queued: JobStatus.QUEUED,
    aai.TranscriptStatus.processing: JobStatus.IN_PROGRESS,
    aai.TranscriptStatus.completed: JobStatus.COMPLETED,
    aai.TranscriptStatus.error: JobStatus.FAILED,
}


def to_assemblyai_language(language_code: str) -> str:
    """Converts a BCP-47 tag such as "en-US" to AssemblyAI's "en_us" form."""
    code = language_code.strip().lower().replace("-", "_")
    # Only English carries regional variants; other languages use the base code.
    if code.startswith("en_") or "_" not in code:
        return code
    return code.split("_", 1)[0]


class AssemblyAITranscriptionService(TranscriptionService):
    """Runs asynchronous transcription jobs on AssemblyAI."""

    def __init__(
        self,
        transcriber: aai.Transcriber,
        blob_store: MinioBlobStore,
        output_prefix: str = "transcripts/",
    ):
        self._transcriber = transcriber
        self._blob_store = blob_store
        self._output_prefix = output_prefix

    def start_job(self, audio_uri: str, options: TranscriptionOptions) -> str:
        """
        Submits the audio for transcription without waiting for the result.

        AssemblyAI fetches the audio itself, so the blob is handed over as a
        presigned URL.
        """
        audio_url = self._blob_store.presigned_url(audio_uri)
        config = aai.TranscriptionConfig(
            language_code=to_assemblyai_language(options.language_code),
            speaker_labels=options.speaker_labels,
        )
        try:
            transcript = self._transcriber.submit(audio_url, config=config)
        except httpx.HTTPError as e:
            logger.exception("AssemblyAI submission failed", extra={"audio_uri": audio_uri})
            raise ServiceTransportError("AssemblyAI is unreachable", cause=e) from e
        except aai.types.TranscriptError as e:
            logger.exception("AssemblyAI rejected job", extra={"audio_uri": audio_uri})
            raise ServiceRequestError(str(e), cause=e) from e

        if transcript.status == aai.TranscriptStatus.error:
            raise ServiceRequestError(transcript.error or "submission rejected")

        logger.info(
            "Transcription job submitted",
            extra={"job_id": transcript.id, "audio_uri": audio_uri},
        )
        return transcript.id

    def get_job_status(self, job_id: str) -> JobStatusReport:
        try:
            transcript = aai.Transcript.get_by_id(job_id)
        except (httpx.HTTPError, aai.types.TranscriptError) as e:
            logger.warning(
                "AssemblyAI status request failed",
                extra={"job_id": job_id, "error": str(e)},
            )
            raise ServiceTransportError(
                f"Status request for job '{job_id}' failed", cause=e
            ) from e

        status = _STATUS_MAP.get(transcript.status, JobStatus.IN_PROGRESS)
        logger.debug("Job status polled", extra={"job_id": job_id, "status": status.value})

        if status == JobStatus.COMPLETED:
            return JobStatusReport(
                status=status,
                output_uri=self._store_output(job_id, transcript.json_response),
            )
        if status == JobStatus.FAILED:
            return JobStatusReport(status=status, failure_reason=transcript.error)
        return JobStatusReport(status=status)

    def _store_output(self, job_id: str, payload: dict) -> str:
        """Persists the transcript JSON next to the audio and returns its URI."""
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        return self._blob_store.put(
            key=f"{self._output_prefix}{job_id}.json",
            data=io.BytesIO(data),
            size=len(data),
            content_type="application/json",
        )
