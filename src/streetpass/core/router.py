"""Decides which uploaded objects the pipeline handles and where they are archived."""

from __future__ import annotations

import posixpath
import time
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, Field

from streetpass.timefmt import format_date_folder


class RouteAction(str, Enum):
    """What to do with a newly detected object."""

    PROCESS = "process"
    IGNORE = "ignore"


class RoutingDecision(BaseModel):
    """The result of routing one object name."""

    action: RouteAction = Field(..., description="Whether the pipeline handles the object")
    object_name: str = Field(..., description="Object name as detected")
    file_name: str | None = Field(None, description="Audit log key: base name without extension")
    archive_path: str | None = Field(None, description="Key of the object in the archive bucket")
    reason: str = Field(..., description="Why this action was selected")


class RouterConfig(BaseModel):
    """Configuration for the upload router."""

    records_dir: str = Field("records", description="Root folder for uploaded record files")
    extension: str = Field(".json", description="Extension of record files")
    utc_offset: float = Field(0.0, description="UTC offset in hours for date folders")


class UploadRouter:
    """Routes uploaded objects by path and extension.

    Objects under ``records_dir`` with the configured extension are processed;
    everything else is ignored. Record files not already in a dated folder
    (``records/20...``) are archived under ``records/<YYYYMMDD>/``.

    Example:
        >>> router = UploadRouter()
        >>> decision = router.route("records/abc.json")
        >>> decision.action, decision.archive_path
        (<RouteAction.PROCESS: 'process'>, 'records/20240115/abc.json')
    """

    def __init__(
        self,
        config: RouterConfig | dict[str, Any] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        if config is None:
            self.config = RouterConfig()
        elif isinstance(config, dict):
            self.config = RouterConfig(**config)
        else:
            self.config = config
        self.clock = clock

    def matches(self, object_name: str | None) -> bool:
        """Check if an object is a record file."""
        if not object_name:
            return False
        return object_name.startswith(f"{self.config.records_dir}/") and object_name.endswith(
            self.config.extension
        )

    def file_name(self, path: str) -> str:
        """Base name without the record extension, used as the audit log key."""
        base = posixpath.basename(path)
        if base.endswith(self.config.extension):
            base = base[: -len(self.config.extension)]
        return base

    def archive_path(self, object_name: str) -> str:
        """Key under which the object is archived."""
        records_dir = self.config.records_dir
        if object_name.startswith(f"{records_dir}/20"):
            return object_name
        date_folder = format_date_folder(self.clock(), self.config.utc_offset)
        return f"{records_dir}/{date_folder}" + object_name[len(records_dir) :]

    def route(self, object_name: str | None) -> RoutingDecision:
        """Determine whether and where an object is processed."""
        if not self.matches(object_name):
            return RoutingDecision(
                action=RouteAction.IGNORE,
                object_name=object_name or "",
                reason="File is not streetPassRecords",
            )

        return RoutingDecision(
            action=RouteAction.PROCESS,
            object_name=object_name,
            file_name=self.file_name(object_name),
            archive_path=self.archive_path(object_name),
            reason="File is streetPassRecords",
        )

    def __repr__(self) -> str:
        return f"UploadRouter(config={self.config})"
