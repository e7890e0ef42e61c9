"""Fetches transcript artifacts and parses them into utterances."""

import json
import logging

from pydantic import BaseModel, ValidationError

from distill.exceptions import (
    ExtractSchemaError,
    ExtractTransportError,
    ServiceError,
    ServiceRequestError,
)
from distill.infrastructure.interfaces import BlobStore

from .models import Transcript, Utterance

logger = logging.getLogger(__name__)


class _SpeakerUtterance(BaseModel):
    speaker: str | None = None
    text: str


class _UtteranceDocument(BaseModel):
    """AssemblyAI transcript JSON; word timings and confidences are ignored."""

    utterances: list[_SpeakerUtterance] | None = None
    text: str | None = None


class _AudioSegment(BaseModel):
    speaker_label: str | None = None
    transcript: str


class _TranscriptText(BaseModel):
    transcript: str


class _Results(BaseModel):
    transcripts: list[_TranscriptText] = []
    audio_segments: list[_AudioSegment] | None = None


class _ResultsDocument(BaseModel):
    """Amazon Transcribe style output with a top-level "results" object."""

    results: _Results


def parse_transcript(payload: object) -> Transcript:
    """
    Converts decoded transcript JSON into a Transcript.

    Raises:
        ValueError: If the payload matches no supported layout.
        ValidationError: If a supported layout has malformed fields.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object, got {type(payload).__name__}")

    if "results" in payload:
        results = _ResultsDocument.model_validate(payload).results
        if results.audio_segments:
            utterances = [
                Utterance(speaker=s.speaker_label, text=s.transcript.strip())
                for s in results.audio_segments
            ]
        else:
            utterances = [Utterance(text=t.transcript.strip()) for t in results.transcripts]
    elif "utterances" in payload or "text" in payload:
        document = _UtteranceDocument.model_validate(payload)
        if document.utterances:
            utterances = [
                Utterance(speaker=u.speaker, text=u.text.strip())
                for u in document.utterances
            ]
        else:
            utterances = [Utterance(text=(document.text or "").strip())]
    else:
        raise ValueError("no 'utterances', 'text' or 'results' field")

    return Transcript(utterances=tuple(u for u in utterances if u.text))


class TranscriptExtractor:
    """Reads a job's transcript output from the blob store."""

    def __init__(self, store: BlobStore):
        self._store = store

    def fetch_and_parse(self, location: str) -> Transcript:
        """
        Fetches and parses the transcript at `location`.

        Silent audio yields an empty Transcript rather than an error.

        Raises:
            ExtractTransportError: If the artifact cannot be downloaded.
            ExtractSchemaError: If the artifact is not a supported transcript.
        """
        try:
            raw = self._store.get(location)
        except ServiceRequestError as e:
            raise ExtractSchemaError(location, str(e), cause=e) from e
        except ServiceError as e:
            raise ExtractTransportError(location, cause=e) from e

        try:
            transcript = parse_transcript(json.loads(raw))
        except (UnicodeDecodeError, ValueError, ValidationError) as e:
            logger.warning(
                "Transcript artifact rejected",
                extra={"location": location, "error": str(e)},
            )
            raise ExtractSchemaError(location, str(e), cause=e) from e

        logger.info(
            "Transcript extracted",
            extra={"location": location, "utterance_count": len(transcript.utterances)},
        )
        return transcript
