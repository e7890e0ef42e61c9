"""Pure state transitions for transcription jobs."""

from datetime import datetime

from .models import JobStatus, JobStatusReport, TranscriptionJob

MISSING_OUTPUT_REASON = "Job reported completion without an output location"
MISSING_FAILURE_REASON = "Job failed without a reported reason"


def advance(
    job: TranscriptionJob, report: JobStatusReport, polled_at: datetime
) -> TranscriptionJob:
    """
    Applies one status observation to a job.

    Terminal reports are taken immediately, whatever state was observed
    before. Non-terminal reports never move a job backwards; a stale
    "Queued" seen after "InProgress" leaves the job where it is. A terminal
    job is returned unchanged.

    Args:
        job: The current job state.
        report: Status returned by the latest poll.
        polled_at: Time of the poll.

    Returns:
        The next job state.
    """
    if job.status.is_terminal:
        return job

    if report.status == JobStatus.COMPLETED:
        if report.output_uri:
            return job.model_copy(
                update={
                    "status": JobStatus.COMPLETED,
                    "last_polled_at": polled_at,
                    "output_location": report.output_uri,
                }
            )
        return job.model_copy(
            update={
                "status": JobStatus.FAILED,
                "last_polled_at": polled_at,
                "failure_reason": MISSING_OUTPUT_REASON,
            }
        )

    if report.status == JobStatus.FAILED:
        return job.model_copy(
            update={
                "status": JobStatus.FAILED,
                "last_polled_at": polled_at,
                "failure_reason": report.failure_reason or MISSING_FAILURE_REASON,
            }
        )

    status = report.status if report.status.rank > job.status.rank else job.status
    return job.model_copy(update={"status": status, "last_polled_at": polled_at})
