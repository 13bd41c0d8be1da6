"""streetpass: processing pipeline for uploaded proximity-beacon records.

Client devices upload batches of street-pass records. streetpass:
- Archives: moves each upload into a dated archive folder
- Authenticates: resolves the upload token to the uploader's identity
- Validates: decrypts rotating contact IDs with every known key, checks timing
- Aggregates: one summary per contact with accumulated exposure time
- Forwards: hands summaries to a pluggable sink (contact documents by default)
- Tracks: a per-file audit log attributing failures to the step that raised

Example:
    >>> from streetpass import Settings, clients
    >>> state = clients.initialize(Settings.from_file("settings.json"))
    >>> result = state.pipeline.handle("records/device-123.json")
    >>> print(result.status)
    PipelineStatus.SUCCESS
"""

__version__ = "0.1.0"

from streetpass.config import Settings
from streetpass.core.aggregator import ContactAggregator, MergePolicy
from streetpass.core.audit import AuditLogger, UploadLog
from streetpass.core.pipeline import UploadPipeline
from streetpass.core.records import ContactSummary, InvalidReason, RawRecord, ValidatedRecord
from streetpass.core.result import PipelineResult, PipelineStatus, PipelineStep, UploadStatus
from streetpass.core.router import UploadRouter
from streetpass.forwarders import ContactStoreForwarder, DataForwarder, JSONLinesForwarder
from streetpass.validators.record import RecordValidator
from streetpass.validators.token import EncryptedTokenValidator, TokenValidator

__all__ = [
    # Core
    "UploadPipeline",
    "PipelineResult",
    "PipelineStatus",
    "PipelineStep",
    "UploadStatus",
    "UploadRouter",
    "AuditLogger",
    "UploadLog",
    "ContactAggregator",
    "MergePolicy",
    "Settings",
    # Records
    "RawRecord",
    "ValidatedRecord",
    "ContactSummary",
    "InvalidReason",
    # Validators
    "RecordValidator",
    "TokenValidator",
    "EncryptedTokenValidator",
    # Forwarders
    "DataForwarder",
    "ContactStoreForwarder",
    "JSONLinesForwarder",
]
