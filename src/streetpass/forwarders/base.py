"""Data forwarder interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from streetpass.core.records import ContactSummary


class DataForwarder(ABC):
    """Sink for a processed upload's contact summaries.

    Implementations are selected by name in the settings (see
    ``streetpass.forwarders.create_forwarder``) and handed to the pipeline.

    Example:
        >>> class PrintForwarder(DataForwarder):
        ...     name = "print"
        ...
        ...     def forward(self, file_path, uid, upload_code, records, events):
        ...         for record in records:
        ...             print(uid, record.contact_id, record.contact_time)
    """

    name: str = "base_forwarder"

    @abstractmethod
    def forward(
        self,
        file_path: str,
        uid: str,
        upload_code: str,
        records: list[ContactSummary],
        events: list[dict[str, Any]],
    ) -> None:
        """Persist the summaries produced from one upload.

        Args:
            file_path: Archived path of the upload
            uid: Identity of the uploader
            upload_code: Upload code from the token
            records: Contact summaries for this upload
            events: Heartbeat events, passed through as uploaded

        Raises:
            ForwardError: If the sink rejects the write
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
