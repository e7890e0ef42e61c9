"""Submits transcription jobs and waits for them to reach a terminal state."""

import logging

from distill.exceptions import (
    JobRemoteFailureError,
    JobTimeoutError,
    JobTransportError,
    ServiceError,
    ServiceRequestError,
    ServiceTransportError,
    SubmitInvalidInputError,
    SubmitTransportError,
)
from distill.infrastructure.interfaces import TranscriptionService
from distill.retry import with_retry
from distill.runtime import CancellationToken, Clock

from .job_state import advance
from .models import (
    JobHandle,
    JobStatus,
    JobStatusReport,
    PollPolicy,
    TranscriptionJob,
    TranscriptionOptions,
    UploadedObject,
)

logger = logging.getLogger(__name__)


def _is_transport_error(error: BaseException) -> bool:
    return isinstance(error, ServiceTransportError)


class TranscriptionJobController:
    """Drives a transcription job from submission to a terminal state."""

    def __init__(
        self,
        service: TranscriptionService,
        clock: Clock,
        cancellation: CancellationToken,
    ):
        self._service = service
        self._clock = clock
        self._cancellation = cancellation

    def submit(
        self, uploaded: UploadedObject, options: TranscriptionOptions
    ) -> JobHandle:
        """
        Starts a transcription job for an uploaded audio object.

        Raises:
            SubmitInvalidInputError: If the service rejects the job.
            SubmitTransportError: If the service cannot be reached.
            RunCancelledError: If the run was cancelled beforehand.
        """
        self._cancellation.raise_if_cancelled("submitting transcription job")
        try:
            job_id = self._service.start_job(uploaded.uri, options)
        except ServiceRequestError as e:
            raise SubmitInvalidInputError(uploaded.uri, str(e), cause=e) from e
        except ServiceError as e:
            raise SubmitTransportError(uploaded.uri, cause=e) from e

        logger.info(
            "Transcription job queued",
            extra={"job_id": job_id, "audio_uri": uploaded.uri},
        )
        return JobHandle(
            job_id=job_id, audio_uri=uploaded.uri, submitted_at=self._clock.now()
        )

    def await_completion(self, handle: JobHandle, policy: PollPolicy) -> str:
        """
        Polls the job until it completes, fails or the wait times out.

        A job left waiting past the timeout is not cancelled remotely.

        Args:
            handle: The submitted job.
            policy: Poll cadence, timeout and transport retry budget.

        Returns:
            Location of the transcript produced by the job.

        Raises:
            JobRemoteFailureError: If the service reports the job failed.
            JobTimeoutError: If no terminal state is seen within the timeout.
            JobTransportError: If polling keeps failing in transit.
            RunCancelledError: If the run is cancelled while waiting.
        """
        job = TranscriptionJob(job_id=handle.job_id, submitted_at=handle.submitted_at)
        started = self._clock.monotonic()
        deadline = started + policy.timeout_seconds
        interval = policy.interval_seconds
        where = f"waiting for transcription job '{handle.job_id}'"

        while True:
            self._cancellation.raise_if_cancelled(where)
            report = self._poll(handle.job_id, policy, deadline, where)
            previous = job.status
            job = advance(job, report, self._clock.now())

            if job.status != previous:
                logger.info(
                    "Transcription job status changed",
                    extra={
                        "job_id": job.job_id,
                        "from": previous.value,
                        "to": job.status.value,
                    },
                )

            if job.status == JobStatus.COMPLETED:
                return job.output_location
            if job.status == JobStatus.FAILED:
                raise JobRemoteFailureError(job.job_id, job.failure_reason)

            remaining = deadline - self._clock.monotonic()
            if remaining <= 0:
                waited = self._clock.monotonic() - started
                logger.warning(
                    "Transcription job timed out",
                    extra={"job_id": job.job_id, "waited_seconds": waited},
                )
                raise JobTimeoutError(job.job_id, waited)

            self._clock.sleep(min(interval, remaining), self._cancellation, where)
            interval = policy.next_interval(interval)

    def _poll(
        self, job_id: str, policy: PollPolicy, deadline: float, where: str
    ) -> JobStatusReport:
        def wait(seconds: float) -> None:
            remaining = max(deadline - self._clock.monotonic(), 0.0)
            self._clock.sleep(min(seconds, remaining), self._cancellation, where)

        try:
            return with_retry(
                policy.max_transport_attempts,
                _is_transport_error,
                lambda: self._service.get_job_status(job_id),
                wait_seconds=policy.interval_seconds,
                sleep=wait,
            )
        except ServiceTransportError as e:
            raise JobTransportError(
                job_id, policy.max_transport_attempts, cause=e
            ) from e
        except ServiceError as e:
            raise JobRemoteFailureError(job_id, str(e), cause=e) from e
