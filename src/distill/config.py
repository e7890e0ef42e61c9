"""Application configuration loaded from environment variables and config.toml."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ValidationError, field_validator

from distill.domain.models import (
    AudioSource,
    OutputFormat,
    PollPolicy,
    SummarizationParams,
    TranscriptionOptions,
)
from distill.domain.summarizer import DEFAULT_TEMPLATE, validate_template
from distill.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.toml")

CleanupPolicy = Literal["never", "on_success", "always"]


class MinioConfig(BaseModel, frozen=True, extra="forbid"):
    """MinIO connection configuration."""

    endpoint: str = "localhost:9000"
    user: str = ""
    password: str = ""
    bucket_name: str = "distill"
    secure: bool = False
    key_prefix: str = "audio/"


class AssemblyAIConfig(BaseModel, frozen=True, extra="forbid"):
    """AssemblyAI API configuration."""

    api_key: str = ""
    output_prefix: str = "transcripts/"


class GeminiConfig(BaseModel, frozen=True, extra="forbid"):
    """Gemini LLM configuration."""

    api_key: str = ""
    system_prompt_path: Path | None = None


class OutputConfig(BaseModel, frozen=True, extra="forbid"):
    """Where and how the summary document is written."""

    format: OutputFormat | None = None
    filename: Path | None = None
    directory: Path = Path(".")
    include_transcript: bool = True

    def resolve(self, source: AudioSource) -> tuple[OutputFormat, Path]:
        """
        Decides the output format and path for a run.

        An explicit format wins over the filename extension; a mismatch is
        logged. Without a filename the document is named after the audio
        file, e.g. "meeting-summary.docx".
        """
        if self.filename is None:
            output_format = self.format or OutputFormat.DOCX
            name = f"{source.path.stem}-summary{output_format.extension}"
            return output_format, self.directory / name

        path = self.filename.expanduser()
        if not path.is_absolute():
            path = self.directory / path

        inferred = OutputFormat.from_filename(path)
        if self.format is None:
            if inferred is None:
                logger.warning(
                    "Cannot infer output type from filename, defaulting to plain",
                    extra={"output_file": str(path)},
                )
            return inferred or OutputFormat.PLAIN, path

        if inferred is not None and inferred != self.format:
            logger.warning(
                "Output filename extension disagrees with the output type",
                extra={
                    "output_file": str(path),
                    "inferred": inferred.value,
                    "explicit": self.format.value,
                },
            )
        return self.format, path


class PipelineConfig(BaseModel, frozen=True, extra="forbid"):
    """Per-run settings passed to the orchestrator."""

    language_code: str = "en-US"
    speaker_labels: bool = True
    cleanup: CleanupPolicy = "never"
    template: str = DEFAULT_TEMPLATE
    poll: PollPolicy = PollPolicy()
    summarization: SummarizationParams = SummarizationParams()
    output: OutputConfig = OutputConfig()

    @field_validator("template")
    @classmethod
    def _check_template(cls, value: str) -> str:
        return validate_template(value)

    @property
    def transcription_options(self) -> TranscriptionOptions:
        return TranscriptionOptions(
            language_code=self.language_code, speaker_labels=self.speaker_labels
        )


class AppConfig(BaseModel, frozen=True, extra="forbid"):
    """Root application configuration."""

    minio: MinioConfig = MinioConfig()
    assemblyai: AssemblyAIConfig = AssemblyAIConfig()
    gemini: GeminiConfig = GeminiConfig()
    pipeline: PipelineConfig = PipelineConfig()
    log_level: str = "INFO"


_ENV_KEYS = {
    "MINIO_ENDPOINT": ("minio", "endpoint"),
    "MINIO_USER": ("minio", "user"),
    "MINIO_PASSWORD": ("minio", "password"),
    "MINIO_BUCKET": ("minio", "bucket_name"),
    "MINIO_SECURE": ("minio", "secure"),
    "ASSEMBLYAI_API_KEY": ("assemblyai", "api_key"),
    "GEMINI_API_KEY": ("gemini", "api_key"),
    "GEMINI_MODEL": ("pipeline", "summarization", "model"),
    "DISTILL_LOG_LEVEL": ("log_level",),
}


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read config file '{path}': {e}", cause=e) from e

    pipeline = dict(data.get("pipeline", {}))
    template_path = pipeline.pop("template_path", None)
    if template_path:
        template_file = (path.parent / Path(template_path).expanduser()).resolve()
        try:
            pipeline["template"] = template_file.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(
                f"Cannot read prompt template '{template_file}': {e}", cause=e
            ) from e
    for section in ("poll", "summarization", "output"):
        if section in data:
            pipeline[section] = data[section]

    result: dict[str, Any] = {"pipeline": pipeline}
    for section in ("minio", "assemblyai", "gemini"):
        if section in data:
            result[section] = dict(data[section])

    # Speaker labelling is a per-run option; [pipeline] wins over [assemblyai].
    assemblyai = result.get("assemblyai", {})
    if "speaker_labels" in assemblyai:
        pipeline.setdefault("speaker_labels", assemblyai.pop("speaker_labels"))
    if "log_level" in data.get("app", {}):
        result["log_level"] = data["app"]["log_level"]
    return result


def _apply_env(data: dict[str, Any], environ: dict[str, str]) -> None:
    for name, keys in _ENV_KEYS.items():
        value = environ.get(name)
        if not value:
            continue
        target = data
        for key in keys[:-1]:
            target = target.setdefault(key, {})
        target[keys[-1]] = value


def load_config(
    path: Path | None = None, environ: dict[str, str] | None = None
) -> AppConfig:
    """
    Loads configuration from an optional TOML file and environment variables.

    Environment variables take precedence over the file. When no path is
    given, ./config.toml is used if it exists.

    Raises:
        ConfigError: If the file is unreadable or a value is invalid.
    """
    environ = dict(os.environ if environ is None else environ)

    if path is None and DEFAULT_CONFIG_PATH.is_file():
        path = DEFAULT_CONFIG_PATH
    data = _read_toml(path.expanduser()) if path is not None else {}
    _apply_env(data, environ)

    try:
        config = AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}", cause=e) from e

    logger.debug("Configuration loaded", extra={"path": str(path) if path else None})
    return config
