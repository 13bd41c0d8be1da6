"""Per-file audit log of upload processing."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterator

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from streetpass.core.errors import LoggingError, StepError
from streetpass.core.records import ContactSummary
from streetpass.core.result import UploadStatus
from streetpass.storage.base import DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "uploadLogs"


class UploadLog(BaseModel):
    """Audit state of one uploaded file, keyed by file name."""

    file_name: str = Field(..., description="Upload file name without extension")
    id: str | None = Field(None, description="Uploader identity, once resolved")
    status: UploadStatus = Field(..., description="Processing status")
    step: str | None = Field(None, description="Label of the failing step")
    upload_code: str | None = Field(None, description="Upload code from the token")
    records_received: int | None = Field(None, description="Records in the upload")
    validated_records: list[dict[str, Any]] | None = Field(
        None, description="Summaries that were forwarded"
    )
    records_sent: int | None = Field(None, description="Number of summaries forwarded")
    error_message: str | None = Field(None, description="Error message")
    error_stack_trace: str | None = Field(None, description="Error stack trace")
    logged_time: float = Field(default_factory=time.time, description="Epoch seconds")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AuditLogger:
    """Keeps one UploadLog document per uploaded file, replaced at each stage.

    Writes are best-effort: a failing store is reported through the
    ``logging`` module and never interrupts the pipeline.

    Example:
        >>> audit = AuditLogger(store)
        >>> audit.started("upload-123")
        >>> audit.succeeded("upload-123", uid, upload_code, received=10, summaries=summaries)
        >>> audit.get("upload-123").status
        <UploadStatus.SUCCESS: 'SUCCESS'>
    """

    def __init__(
        self,
        store: DocumentStore,
        collection: str = DEFAULT_COLLECTION,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.collection = collection
        self.clock = clock

    def record(self, file_name: str, entry: UploadLog) -> UploadLog | None:
        """Create or replace the log for ``file_name``. Returns None if the write failed."""
        try:
            self._write(file_name, entry)
        except LoggingError as e:
            logger.error("Failed to store upload log for %s: %s", file_name, e)
            return None
        return entry

    def _write(self, file_name: str, entry: UploadLog) -> None:
        try:
            self.store.set(self.collection, file_name, entry.to_dict())
        except Exception as e:
            raise LoggingError(str(e)) from e

    def started(self, file_name: str) -> UploadLog | None:
        return self.record(
            file_name,
            UploadLog(file_name=file_name, status=UploadStatus.STARTED, logged_time=self.clock()),
        )

    def succeeded(
        self,
        file_name: str,
        uid: str,
        upload_code: str,
        received: int,
        summaries: list[ContactSummary],
    ) -> UploadLog | None:
        return self.record(
            file_name,
            UploadLog(
                file_name=file_name,
                id=uid,
                status=UploadStatus.SUCCESS,
                upload_code=upload_code,
                records_received=received,
                validated_records=[summary.to_dict() for summary in summaries],
                records_sent=len(summaries),
                logged_time=self.clock(),
            ),
        )

    def failed(
        self,
        file_name: str,
        failure: StepError,
        uid: str = "",
        upload_code: str = "",
    ) -> UploadLog | None:
        return self.record(
            file_name,
            UploadLog(
                file_name=file_name,
                id=uid,
                status=UploadStatus.ERROR,
                upload_code=upload_code,
                step=failure.step.value,
                error_message=failure.message,
                error_stack_trace=failure.stack_trace,
                logged_time=self.clock(),
            ),
        )

    def get(self, file_name: str) -> UploadLog | None:
        """Current log for a file, or None if none was stored."""
        document = self.store.get(self.collection, file_name)
        return UploadLog.model_validate(document) if document else None

    def query(
        self,
        status: UploadStatus | None = None,
        since: float | None = None,
        limit: int | None = None,
    ) -> Iterator[UploadLog]:
        """Iterate logs, most recent first.

        Args:
            status: Filter by status
            since: Only logs written at or after this epoch time
            limit: Maximum number of entries to return
        """
        entries = [UploadLog.model_validate(doc) for _, doc in self.store.list(self.collection)]
        entries.sort(key=lambda entry: entry.logged_time, reverse=True)

        count = 0
        for entry in entries:
            if status is not None and entry.status != status:
                continue
            if since is not None and entry.logged_time < since:
                continue

            yield entry
            count += 1

            if limit is not None and count >= limit:
                return

    def stats(self) -> dict[str, Any]:
        """Counts by status, plus failures grouped by step."""
        stats: dict[str, Any] = {
            "total": 0,
            "by_status": {status.value: 0 for status in UploadStatus},
            "errors_by_step": {},
            "records_received": 0,
            "records_sent": 0,
        }

        for entry in self.query():
            stats["total"] += 1
            stats["by_status"][entry.status.value] += 1
            stats["records_received"] += entry.records_received or 0
            stats["records_sent"] += entry.records_sent or 0
            if entry.status == UploadStatus.ERROR and entry.step:
                stats["errors_by_step"][entry.step] = stats["errors_by_step"].get(entry.step, 0) + 1

        return stats

    def __repr__(self) -> str:
        return f"AuditLogger(collection={self.collection!r}, store={self.store!r})"
