import json
from datetime import datetime, timedelta, timezone

import pytest

from distill.config import AppConfig, OutputConfig, PipelineConfig
from distill.dependencies import ServiceContext, build_orchestrator
from distill.domain.models import JobStatus, JobStatusReport, PollPolicy
from distill.exceptions import RunCancelledError, ServiceTransportError
from distill.infrastructure.interfaces import (
    BlobStore,
    InferenceService,
    TranscriptionService,
)
from distill.runtime import CancellationToken, Clock

WAV_HEADER = b"RIFF\x24\x00\x00\x00WAVEfmt \x10\x00\x00\x00\x01\x00\x01\x00"


class FakeBlobStore(BlobStore):
    def __init__(self, bucket="bucket"):
        self.bucket = bucket
        self.objects = {}
        self.deleted = []
        self.uri_overrides = {}
        self.put_error = None
        self.get_error = None
        self.delete_error = None

    def put(self, key, data, size, content_type):
        if self.put_error:
            raise self.put_error
        uri = self.uri_overrides.get(key, f"s3://{self.bucket}/{key}")
        self.objects[uri] = data.read()
        return uri

    def get(self, uri):
        if self.get_error:
            raise self.get_error
        if uri not in self.objects:
            raise ServiceTransportError(f"No such object '{uri}'")
        return self.objects[uri]

    def delete(self, uri):
        if self.delete_error:
            raise self.delete_error
        self.deleted.append(uri)
        self.objects.pop(uri, None)


class FakeTranscriptionService(TranscriptionService):
    """Replays a scripted list of status reports (or exceptions) per poll."""

    def __init__(self, script=None, job_id="job-1"):
        self.script = list(script or [])
        self.job_id = job_id
        self.start_error = None
        self.started = []
        self.polls = 0

    def start_job(self, audio_uri, options):
        if self.start_error:
            raise self.start_error
        self.started.append((audio_uri, options))
        return self.job_id

    def get_job_status(self, job_id):
        self.polls += 1
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, Exception):
            raise step
        return step


class FakeInferenceService(InferenceService):
    def __init__(self, chunks=("A summary.",), error=None):
        self.chunks = list(chunks)
        self.error = error
        self.prompts = []

    def generate(self, prompt, params):
        self.prompts.append(prompt)
        return self._stream()

    def _stream(self):
        for chunk in self.chunks:
            yield chunk
        if self.error:
            raise self.error


class FakeClock(Clock):
    def __init__(self, start=datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)):
        self.start = start
        self.elapsed = 0.0
        self.sleeps = []

    def monotonic(self):
        return self.elapsed

    def now(self):
        return self.start + timedelta(seconds=self.elapsed)

    def sleep(self, seconds, cancellation, where):
        if cancellation.cancelled:
            raise RunCancelledError(where)
        self.sleeps.append(seconds)
        self.elapsed += seconds


def status(name, output_uri=None, failure_reason=None):
    return JobStatusReport(
        status=JobStatus(name), output_uri=output_uri, failure_reason=failure_reason
    )


def transcript_json(*utterances):
    return json.dumps(
        {
            "id": "job-1",
            "status": "completed",
            "text": " ".join(text for _, text in utterances),
            "utterances": [
                {"speaker": speaker, "text": text, "start": 0, "end": 1, "confidence": 0.9}
                for speaker, text in utterances
            ],
        }
    ).encode("utf-8")


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cancellation():
    return CancellationToken()


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "meeting.wav"
    path.write_bytes(WAV_HEADER + b"\x00" * 64)
    return path


@pytest.fixture
def pipeline_config(tmp_path):
    return PipelineConfig(
        poll=PollPolicy(interval_seconds=5, timeout_seconds=60, max_transport_attempts=3),
        output=OutputConfig(directory=tmp_path),
    )


@pytest.fixture
def make_orchestrator(blob_store, clock, cancellation):
    def factory(transcription, inference, events=None):
        services = ServiceContext(
            blob_store=blob_store, transcription=transcription, inference=inference
        )
        return build_orchestrator(
            AppConfig(),
            services,
            cancellation=cancellation,
            clock=clock,
            progress_callback=events.append if events is not None else None,
        )

    return factory
