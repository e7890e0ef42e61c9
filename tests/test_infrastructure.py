import io
import json
from types import SimpleNamespace
from unittest.mock import Mock

import assemblyai as aai
import httpx
import pytest
from google.genai import errors

from distill.domain.models import (
    JobStatus,
    SummarizationParams,
    TranscriptionOptions,
)
from distill.exceptions import (
    ContentPolicyError,
    ServiceRateLimitedError,
    ServiceRequestError,
    ServiceTransportError,
)
from distill.infrastructure import (
    AssemblyAITranscriptionService,
    GeminiInferenceService,
    MinioBlobStore,
    parse_uri,
)
from distill.infrastructure.assemblyai_transcription import to_assemblyai_language


@pytest.fixture
def minio_client():
    client = Mock()
    client.presigned_get_object.return_value = "https://minio.local/audio/a.wav?sig=1"
    return client


@pytest.fixture
def minio_store(minio_client):
    return MinioBlobStore(minio_client, "distill")


# MinIO


def test_parse_uri_splits_bucket_and_key():
    assert parse_uri("s3://distill/audio/a.wav") == ("distill", "audio/a.wav")


@pytest.mark.parametrize("uri", ["https://distill/a.wav", "s3://distill", "s3:///a.wav"])
def test_parse_uri_rejects_malformed(uri):
    with pytest.raises(ServiceRequestError):
        parse_uri(uri)


def test_put_returns_s3_uri(minio_store, minio_client):
    uri = minio_store.put("audio/a.wav", io.BytesIO(b"abc"), 3, "audio/x-wav")

    assert uri == "s3://distill/audio/a.wav"
    kwargs = minio_client.put_object.call_args.kwargs
    assert kwargs["object_name"] == "audio/a.wav"
    assert kwargs["length"] == 3
    assert kwargs["content_type"] == "audio/x-wav"


def test_put_failure_is_transport_error(minio_store, minio_client):
    minio_client.put_object.side_effect = Exception("connection reset")
    with pytest.raises(ServiceTransportError):
        minio_store.put("audio/a.wav", io.BytesIO(b"abc"), 3, "audio/x-wav")


def test_get_reads_and_releases_response(minio_store, minio_client):
    response = Mock()
    response.read.return_value = b"payload"
    minio_client.get_object.return_value = response

    assert minio_store.get("s3://other/t.json") == b"payload"
    minio_client.get_object.assert_called_once_with("other", "t.json")
    response.close.assert_called_once()
    response.release_conn.assert_called_once()


def test_delete_failure_is_transport_error(minio_store, minio_client):
    minio_client.remove_object.side_effect = Exception("denied")
    with pytest.raises(ServiceTransportError):
        minio_store.delete("s3://distill/audio/a.wav")


def test_ensure_bucket_creates_missing_bucket(minio_store, minio_client):
    minio_client.bucket_exists.return_value = False
    minio_store.ensure_bucket_exists()
    minio_client.make_bucket.assert_called_once_with("distill")


# AssemblyAI


@pytest.mark.parametrize(
    "code, expected",
    [("en-US", "en_us"), ("en-AU", "en_au"), ("de-DE", "de"), ("fr", "fr")],
)
def test_language_codes_are_converted(code, expected):
    assert to_assemblyai_language(code) == expected


@pytest.fixture
def transcriber():
    transcriber = Mock()
    transcriber.submit.return_value = SimpleNamespace(
        id="t-1", status=aai.TranscriptStatus.queued, error=None
    )
    return transcriber


@pytest.fixture
def assemblyai_service(transcriber, minio_store):
    return AssemblyAITranscriptionService(transcriber, minio_store)


def test_start_job_submits_presigned_url(assemblyai_service, transcriber):
    job_id = assemblyai_service.start_job(
        "s3://distill/audio/a.wav", TranscriptionOptions(language_code="de-DE")
    )

    assert job_id == "t-1"
    args, kwargs = transcriber.submit.call_args
    assert args[0] == "https://minio.local/audio/a.wav?sig=1"
    assert kwargs["config"].language_code == "de"
    assert kwargs["config"].speaker_labels is True


def test_start_job_network_failure_is_transport_error(assemblyai_service, transcriber):
    transcriber.submit.side_effect = httpx.ConnectError("refused")
    with pytest.raises(ServiceTransportError):
        assemblyai_service.start_job("s3://distill/audio/a.wav", TranscriptionOptions())


def test_start_job_rejection_is_request_error(assemblyai_service, transcriber):
    transcriber.submit.side_effect = aai.types.TranscriptError("unsupported audio")
    with pytest.raises(ServiceRequestError):
        assemblyai_service.start_job("s3://distill/audio/a.wav", TranscriptionOptions())


def _patch_transcript(monkeypatch, status, error=None, json_response=None):
    transcript = SimpleNamespace(
        status=status, error=error, json_response=json_response
    )
    monkeypatch.setattr(
        aai.Transcript, "get_by_id", staticmethod(lambda job_id: transcript)
    )


def test_processing_job_reports_in_progress(assemblyai_service, monkeypatch):
    _patch_transcript(monkeypatch, status=aai.TranscriptStatus.processing)
    assert assemblyai_service.get_job_status("t-1").status == JobStatus.IN_PROGRESS


def test_completed_job_output_is_stored(assemblyai_service, minio_client, monkeypatch):
    payload = {"id": "t-1", "utterances": [{"speaker": "A", "text": "Hi"}]}
    _patch_transcript(
        monkeypatch, status=aai.TranscriptStatus.completed, json_response=payload
    )

    report = assemblyai_service.get_job_status("t-1")

    assert report.status == JobStatus.COMPLETED
    assert report.output_uri == "s3://distill/transcripts/t-1.json"
    stored = minio_client.put_object.call_args.kwargs["data"].read()
    assert json.loads(stored) == payload


def test_failed_job_carries_reason(assemblyai_service, monkeypatch):
    _patch_transcript(
        monkeypatch, status=aai.TranscriptStatus.error, error="audio too short"
    )
    report = assemblyai_service.get_job_status("t-1")
    assert report.status == JobStatus.FAILED
    assert report.failure_reason == "audio too short"


def test_status_network_failure_is_transport_error(assemblyai_service, monkeypatch):
    def fail(job_id):
        raise httpx.ReadTimeout("timed out")

    monkeypatch.setattr(aai.Transcript, "get_by_id", staticmethod(fail))
    with pytest.raises(ServiceTransportError):
        assemblyai_service.get_job_status("t-1")


# Gemini


def _chunk(text, finish_reason=None, block_reason=None):
    feedback = SimpleNamespace(block_reason=block_reason) if block_reason else None
    return SimpleNamespace(
        text=text,
        prompt_feedback=feedback,
        candidates=[SimpleNamespace(finish_reason=finish_reason)],
    )


@pytest.fixture
def genai_client():
    return Mock()


def test_generate_streams_text(genai_client):
    genai_client.models.generate_content_stream.return_value = iter(
        [_chunk("Team "), _chunk(None), _chunk("agreed.", finish_reason="STOP")]
    )
    service = GeminiInferenceService(genai_client, system_prompt="Be brief.")
    params = SummarizationParams(model="gemini-test", temperature=0.1)

    assert "".join(service.generate("prompt", params)) == "Team agreed."
    kwargs = genai_client.models.generate_content_stream.call_args.kwargs
    assert kwargs["model"] == "gemini-test"
    assert kwargs["contents"] == "prompt"
    assert kwargs["config"].system_instruction == "Be brief."
    assert kwargs["config"].temperature == 0.1


def test_blocked_prompt_is_content_policy_error(genai_client):
    genai_client.models.generate_content_stream.return_value = iter(
        [_chunk(None, block_reason="SAFETY")]
    )
    service = GeminiInferenceService(genai_client)
    with pytest.raises(ContentPolicyError):
        list(service.generate("prompt", SummarizationParams()))


def test_blocked_response_is_content_policy_error(genai_client):
    genai_client.models.generate_content_stream.return_value = iter(
        [_chunk("partial", finish_reason="SAFETY")]
    )
    service = GeminiInferenceService(genai_client)
    with pytest.raises(ContentPolicyError):
        list(service.generate("prompt", SummarizationParams()))


def test_quota_error_is_rate_limited(genai_client):
    genai_client.models.generate_content_stream.side_effect = errors.APIError(
        429, {"error": {"code": 429, "message": "quota", "status": "RESOURCE_EXHAUSTED"}}
    )
    service = GeminiInferenceService(genai_client)
    with pytest.raises(ServiceRateLimitedError):
        list(service.generate("prompt", SummarizationParams()))


def test_server_error_is_transport_error(genai_client):
    genai_client.models.generate_content_stream.side_effect = errors.APIError(
        503, {"error": {"code": 503, "message": "unavailable", "status": "UNAVAILABLE"}}
    )
    service = GeminiInferenceService(genai_client)
    with pytest.raises(ServiceTransportError):
        list(service.generate("prompt", SummarizationParams()))
