"""Pipeline status types and result structures."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class PipelineStatus(str, Enum):
    """Outcome returned to whoever triggered the pipeline."""

    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    NONE = "NONE"  # File does not apply to this pipeline


class UploadStatus(str, Enum):
    """Status recorded in an upload's audit log."""

    STARTED = "STARTED"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class PipelineStep(str, Enum):
    """Ordered steps of an upload run. Values are the labels written to the audit log."""

    MOVE_FILE = "move-file"
    LOAD_FILE = "load-file"
    VALIDATE_TOKEN = "validate-token"
    VALIDATE_RECORDS = "validate-records"
    FORWARD_DATA = "forward-data"
    DONE = "done"

    @property
    def next(self) -> PipelineStep:
        """The step that follows this one. DONE is terminal."""
        steps = list(PipelineStep)
        index = steps.index(self)
        return steps[min(index + 1, len(steps) - 1)]


class PipelineResult(BaseModel):
    """Result handed back to the trigger. Never carries an exception."""

    status: PipelineStatus = Field(..., description="Terminal status of the run")
    message: str | None = Field(None, description="Error message when status is ERROR")
    file_path: str | None = Field(
        None, alias="filePath", description="Archived path of the processed file"
    )

    model_config = {"populate_by_name": True}

    @property
    def succeeded(self) -> bool:
        return self.status == PipelineStatus.SUCCESS

    @property
    def failed(self) -> bool:
        return self.status == PipelineStatus.ERROR

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire shape, omitting unset fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def __str__(self) -> str:
        detail = self.message or self.file_path
        detail_str = f" - {detail}" if detail else ""
        return f"PipelineResult[{self.status.value}]{detail_str}"


def success(file_path: str) -> PipelineResult:
    return PipelineResult(status=PipelineStatus.SUCCESS, file_path=file_path)


def error(message: str) -> PipelineResult:
    return PipelineResult(status=PipelineStatus.ERROR, message=message)


def not_applicable() -> PipelineResult:
    return PipelineResult(status=PipelineStatus.NONE)
