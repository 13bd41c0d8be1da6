"""Forwarder that appends summaries to a JSON Lines file."""

from __future__ import annotations

import gzip
import threading
from pathlib import Path
from typing import Any

import orjson

from streetpass.core.errors import ForwardError
from streetpass.core.records import ContactSummary
from streetpass.forwarders.base import DataForwarder


class JSONLinesForwarder(DataForwarder):
    """Append-only export, one line per contact summary.

    Each line holds the summary plus ``uid``, ``uploadCode`` and ``filePath``.
    Useful for handing uploads to an offline analysis job.
    """

    name = "jsonl"

    def __init__(self, path: str | Path, compress: bool = False):
        self.path = Path(path)
        self.compress = compress
        self._lock = threading.Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _get_file_path(self) -> Path:
        if self.compress:
            return self.path.with_suffix(".jsonl.gz")
        return self.path

    def forward(
        self,
        file_path: str,
        uid: str,
        upload_code: str,
        records: list[ContactSummary],
        events: list[dict[str, Any]],
    ) -> None:
        data = b"".join(
            orjson.dumps({**record.to_dict(), "uid": uid, "uploadCode": upload_code, "filePath": file_path})
            + b"\n"
            for record in records
        )
        if not data:
            return

        opener = gzip.open if self.compress else open
        try:
            with self._lock, opener(self._get_file_path(), "ab") as f:  # type: ignore[operator]
                f.write(data)
        except OSError as e:
            raise ForwardError(f"Cannot append to {self.path}: {e}") from e

    def __repr__(self) -> str:
        return f"JSONLinesForwarder(path={self.path})"
