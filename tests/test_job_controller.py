import pytest

from conftest import FakeTranscriptionService, status
from distill.domain.job_controller import TranscriptionJobController
from distill.domain.models import PollPolicy, TranscriptionOptions, UploadedObject
from distill.exceptions import (
    JobRemoteFailureError,
    JobTimeoutError,
    JobTransportError,
    RunCancelledError,
    ServiceRequestError,
    ServiceTransportError,
    SubmitInvalidInputError,
    SubmitTransportError,
)

OUTPUT = "s3://bucket/abc123.json"
POLICY = PollPolicy(interval_seconds=5, timeout_seconds=60, max_transport_attempts=3)
UPLOADED = UploadedObject.from_uri("s3://bucket/abc123")


@pytest.fixture
def run_script(clock, cancellation):
    def run(script, policy=POLICY):
        service = FakeTranscriptionService(script)
        controller = TranscriptionJobController(service, clock, cancellation)
        handle = controller.submit(UPLOADED, TranscriptionOptions())
        return controller.await_completion(handle, policy), service

    return run


def test_full_progression_completes(run_script, clock):
    location, service = run_script(
        [
            status("Queued"),
            status("InProgress"),
            status("InProgress"),
            status("Completed", output_uri=OUTPUT),
        ]
    )
    assert location == OUTPUT
    assert service.polls == 4
    assert clock.sleeps == [5, 5, 5]


def test_skipped_intermediate_state_completes(run_script):
    location, service = run_script([status("Queued"), status("Completed", output_uri=OUTPUT)])
    assert location == OUTPUT
    assert service.polls == 2


def test_remote_failure_surfaces_reason(run_script):
    with pytest.raises(JobRemoteFailureError) as exc_info:
        run_script(
            [status("Queued"), status("InProgress"), status("Failed", failure_reason="Unsupported codec")]
        )
    assert exc_info.value.reason == "Unsupported codec"
    assert exc_info.value.job_id == "job-1"
    assert not exc_info.value.retriable


def test_never_terminal_times_out(run_script, clock):
    with pytest.raises(JobTimeoutError) as exc_info:
        run_script([status("InProgress")])
    assert clock.elapsed == 60
    assert exc_info.value.waited_seconds == 60


def test_transient_transport_errors_are_retried(run_script):
    location, service = run_script(
        [
            status("InProgress"),
            ServiceTransportError("blip"),
            ServiceTransportError("blip"),
            status("Completed", output_uri=OUTPUT),
        ]
    )
    assert location == OUTPUT
    assert service.polls == 4


def test_persistent_transport_errors_escalate(run_script):
    with pytest.raises(JobTransportError) as exc_info:
        run_script([status("InProgress"), ServiceTransportError("down")])
    assert exc_info.value.attempts == 3
    assert isinstance(exc_info.value.cause, ServiceTransportError)


def test_backoff_is_capped(run_script, clock):
    policy = PollPolicy(
        interval_seconds=2, backoff_factor=2, max_interval_seconds=5, timeout_seconds=600
    )
    run_script(
        [status("InProgress")] * 4 + [status("Completed", output_uri=OUTPUT)],
        policy=policy,
    )
    assert clock.sleeps == [2, 4, 5, 5]


def test_cancellation_stops_waiting(clock, cancellation):
    service = FakeTranscriptionService([status("InProgress")])
    controller = TranscriptionJobController(service, clock, cancellation)
    handle = controller.submit(UPLOADED, TranscriptionOptions())
    cancellation.cancel()
    with pytest.raises(RunCancelledError):
        controller.await_completion(handle, POLICY)
    assert service.polls == 0


def test_submit_maps_rejection_and_transport(clock, cancellation):
    service = FakeTranscriptionService([status("Queued")])
    controller = TranscriptionJobController(service, clock, cancellation)

    service.start_error = ServiceRequestError("unsupported language")
    with pytest.raises(SubmitInvalidInputError):
        controller.submit(UPLOADED, TranscriptionOptions())

    service.start_error = ServiceTransportError("timeout")
    with pytest.raises(SubmitTransportError) as exc_info:
        controller.submit(UPLOADED, TranscriptionOptions())
    assert exc_info.value.retriable


def test_submit_records_handle(clock, cancellation):
    service = FakeTranscriptionService([status("Queued")])
    controller = TranscriptionJobController(service, clock, cancellation)
    handle = controller.submit(UPLOADED, TranscriptionOptions(language_code="de-DE"))
    assert handle.job_id == "job-1"
    assert handle.audio_uri == UPLOADED.uri
    assert handle.submitted_at == clock.now()
    assert service.started[0][1].language_code == "de-DE"


def test_transport_retry_waits_stop_at_the_deadline(run_script, clock):
    policy = PollPolicy(interval_seconds=5, timeout_seconds=7, max_transport_attempts=3)
    with pytest.raises(JobTimeoutError):
        run_script(
            [
                ServiceTransportError("blip"),
                ServiceTransportError("blip"),
                status("InProgress"),
            ],
            policy=policy,
        )
    assert clock.sleeps == [5, 2]
    assert clock.elapsed == 7
