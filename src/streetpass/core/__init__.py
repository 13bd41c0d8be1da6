"""Core streetpass components for upload orchestration."""

from streetpass.core.aggregator import ContactAggregator, MergePolicy
from streetpass.core.audit import AuditLogger, UploadLog
from streetpass.core.pipeline import UploadPipeline
from streetpass.core.result import PipelineResult, PipelineStatus, PipelineStep, UploadStatus
from streetpass.core.router import RouteAction, UploadRouter

__all__ = [
    "UploadPipeline",
    "PipelineResult",
    "PipelineStatus",
    "PipelineStep",
    "UploadStatus",
    "UploadRouter",
    "RouteAction",
    "AuditLogger",
    "UploadLog",
    "ContactAggregator",
    "MergePolicy",
]
