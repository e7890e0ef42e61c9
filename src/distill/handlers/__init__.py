"""Handler layer exports."""

from .pipeline_orchestrator import PipelineOrchestrator, ProgressCallback, ProgressEvent

__all__ = ["PipelineOrchestrator", "ProgressCallback", "ProgressEvent"]
