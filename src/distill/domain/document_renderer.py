"""Renders summaries into output documents."""

import io
import logging
import re
import zipfile
from datetime import datetime, timezone
from pathlib import Path

import docx

from distill.exceptions import RenderIOError

from .models import OutputArtifact, OutputFormat, SummaryResult, Transcript

logger = logging.getLogger(__name__)

SUMMARY_HEADING = "Summary"
TRANSCRIPT_HEADING = "Transcript"
TRUNCATION_NOTE = "Note: the transcript was shortened to fit the model input before summarizing."

# Used when the caller injects no timestamp, so output stays reproducible.
DEFAULT_TIMESTAMP = datetime(2000, 1, 1, tzinfo=timezone.utc)

# Range of dates a zip entry header can store.
_ZIP_EARLIEST = (1980, 1, 1, 0, 0, 0)
_ZIP_LATEST = (2107, 12, 31, 23, 59, 58)

_XML_INVALID = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def _clean(text: str) -> str:
    return _XML_INVALID.sub("", text)


def _normalize_archive(raw: bytes, timestamp: datetime) -> bytes:
    """Rewrites a zip archive with fixed entry dates."""
    date_time = min(max(timestamp.timetuple()[:6], _ZIP_EARLIEST), _ZIP_LATEST)
    out = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(raw)) as src, zipfile.ZipFile(
        out, "w", zipfile.ZIP_DEFLATED
    ) as dst:
        for info in src.infolist():
            entry = zipfile.ZipInfo(info.filename, date_time=date_time)
            entry.compress_type = zipfile.ZIP_DEFLATED
            entry.external_attr = info.external_attr
            dst.writestr(entry, src.read(info.filename))
    return out.getvalue()


class DocumentRenderer:
    """Formats a summary, and optionally its transcript, as a document."""

    def render(
        self,
        summary: SummaryResult,
        transcript: Transcript | None,
        output_format: OutputFormat,
        path: Path,
        generated_at: datetime | None = None,
    ) -> OutputArtifact:
        """
        Renders and writes the document.

        Identical inputs, including `generated_at`, give byte-identical
        content.

        Args:
            summary: The generated summary.
            transcript: Transcript to append, or None to omit the section.
            output_format: Target container format.
            path: Destination file.
            generated_at: Timestamp recorded in document metadata.

        Returns:
            OutputArtifact holding the written content.

        Raises:
            RenderIOError: If the file cannot be written.
        """
        timestamp = generated_at or DEFAULT_TIMESTAMP
        if output_format == OutputFormat.DOCX:
            content = self.render_docx(summary, transcript, timestamp)
        else:
            content = self.render_plain(summary, transcript, generated_at)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            logger.exception("Writing output document failed", extra={"path": str(path)})
            raise RenderIOError(str(path), cause=e) from e

        logger.info(
            "Document written",
            extra={"path": str(path), "format": output_format.value, "bytes": len(content)},
        )
        return OutputArtifact(format=output_format, path=path, content=content)

    def render_plain(
        self,
        summary: SummaryResult,
        transcript: Transcript | None,
        generated_at: datetime | None = None,
    ) -> bytes:
        lines = [SUMMARY_HEADING, "=" * len(SUMMARY_HEADING), "", summary.text]
        if summary.truncated:
            lines += ["", TRUNCATION_NOTE]
        if transcript is not None:
            lines += ["", TRANSCRIPT_HEADING, "=" * len(TRANSCRIPT_HEADING), ""]
            lines += [u.render() for u in transcript.utterances]
        if generated_at is not None:
            lines += ["", f"Generated at {generated_at.isoformat()}"]
        return ("\n".join(lines) + "\n").encode("utf-8")

    def render_docx(
        self,
        summary: SummaryResult,
        transcript: Transcript | None,
        timestamp: datetime,
    ) -> bytes:
        document = docx.Document()

        properties = document.core_properties
        properties.title = SUMMARY_HEADING
        properties.author = "distill"
        properties.last_modified_by = "distill"
        properties.revision = 1
        properties.created = timestamp
        properties.modified = timestamp

        document.add_heading(SUMMARY_HEADING, level=1)
        for line in summary.text.splitlines():
            if line.strip():
                document.add_paragraph(_clean(line))
        if summary.truncated:
            document.add_paragraph().add_run(TRUNCATION_NOTE).italic = True

        if transcript is not None:
            document.add_heading(TRANSCRIPT_HEADING, level=1)
            for utterance in transcript.utterances:
                document.add_paragraph(_clean(utterance.render()))

        buffer = io.BytesIO()
        document.save(buffer)
        return _normalize_archive(buffer.getvalue(), timestamp)
