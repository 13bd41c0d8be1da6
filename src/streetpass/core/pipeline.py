"""Upload processing pipeline orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, Field

from streetpass.core.aggregator import ContactAggregator
from streetpass.core.audit import AuditLogger
from streetpass.core.errors import StepError
from streetpass.core.records import ContactSummary, RawRecord
from streetpass.core.result import PipelineResult, PipelineStep, error, not_applicable, success
from streetpass.core.router import RouteAction, UploadRouter
from streetpass.crypto import KeyRing
from streetpass.forwarders.base import DataForwarder
from streetpass.processors.upload import UploadProcessor
from streetpass.storage.base import ObjectStore
from streetpass.validators.record import RecordValidator
from streetpass.validators.token import TokenValidator

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PipelineConfig(BaseModel):
    """Configuration for the upload pipeline."""

    upload_bucket: str = Field("uploads", description="Bucket that receives uploads")
    archive_bucket: str = Field("archive", description="Bucket holding archived uploads")
    validate_token_timestamp: bool = Field(True, description="Reject expired upload tokens")

    model_config = {"extra": "allow"}


@dataclass
class UploadRun:
    """State of one file's run through the pipeline."""

    path: str
    file_name: str
    step: PipelineStep
    uid: str = ""
    upload_code: str = ""


class UploadPipeline:
    """Turns an uploaded records file into stored contact summaries.

    Steps run strictly in order::

        move-file -> load-file -> validate-token -> validate-records -> forward-data -> done

    Any exception inside a step is attributed to that step, written to the
    audit log and returned as an ERROR result. Nothing is raised to the caller,
    so an at-least-once trigger never redelivers a file because of a
    processing failure.

    Example:
        >>> pipeline = UploadPipeline(
        ...     objects=LocalObjectStore("./data"),
        ...     token_validator=EncryptedTokenValidator(keys),
        ...     keys=keys,
        ...     forwarder=ContactStoreForwarder(documents),
        ...     audit=AuditLogger(documents),
        ... )
        >>> result = pipeline.handle("records/device-123.json")
        >>> print(result.status)
        PipelineStatus.SUCCESS

    Attributes:
        router: Decides which objects to process and where to archive them
        processor: Loads and parses archived uploads
        record_validator: Decrypts and checks individual records
        aggregator: Summarizes validated records per contact
        forwarder: Persists the summaries
        audit: Per-file audit log
    """

    def __init__(
        self,
        objects: ObjectStore,
        token_validator: TokenValidator,
        keys: KeyRing,
        forwarder: DataForwarder,
        audit: AuditLogger,
        record_validator: RecordValidator | None = None,
        aggregator: ContactAggregator | None = None,
        router: UploadRouter | None = None,
        processor: UploadProcessor | None = None,
        config: PipelineConfig | dict[str, Any] | None = None,
    ):
        """Initialize the upload pipeline.

        Args:
            objects: Object store holding uploaded and archived files
            token_validator: Resolves upload tokens to identities
            keys: Decryption keys for temp IDs, current key first
            forwarder: Sink for the aggregated summaries
            audit: Audit logger
            record_validator: Record validator (default configuration if omitted)
            aggregator: Contact aggregator (default configuration if omitted)
            router: Upload router (default configuration if omitted)
            processor: Upload processor reading from ``objects``
            config: Pipeline configuration
        """
        self.objects = objects
        self.token_validator = token_validator
        self.keys = keys
        self.forwarder = forwarder
        self.audit = audit
        self.record_validator = record_validator or RecordValidator()
        self.aggregator = aggregator or ContactAggregator()
        self.router = router or UploadRouter()
        self.processor = processor or UploadProcessor(objects)

        if config is None:
            self.config = PipelineConfig()
        elif isinstance(config, dict):
            self.config = PipelineConfig(**config)
        else:
            self.config = config

    def handle(self, object_name: str | None) -> PipelineResult:
        """Entry point for a newly uploaded object.

        Non-record files are ignored with a NONE result and no audit entry.
        Record files are logged as STARTED, moved into the archive and processed.
        """
        logger.info("Detected new file: %s", object_name)

        decision = self.router.route(object_name)
        if decision.action == RouteAction.IGNORE:
            logger.info("%s, ignore.", decision.reason)
            return not_applicable()

        self.audit.started(decision.file_name)

        run = UploadRun(
            path=decision.archive_path,
            file_name=decision.file_name,
            step=PipelineStep.MOVE_FILE,
        )
        try:
            self._run_step(
                run,
                PipelineStep.MOVE_FILE,
                self.objects.move,
                self.config.upload_bucket,
                decision.object_name,
                self.config.archive_bucket,
                decision.archive_path,
            )
        except StepError as failure:
            return self._fail(run, failure)
        logger.info("Uploaded file has been moved to archive folder: %s", run.path)

        return self._process(run, self.config.validate_token_timestamp)

    def process(self, path: str, validate_token_timestamp: bool | None = None) -> PipelineResult:
        """Process a file that is already in the archive bucket.

        Args:
            path: Key of the file in the archive bucket
            validate_token_timestamp: Override the token expiry check, e.g. False for backfills
        """
        if validate_token_timestamp is None:
            validate_token_timestamp = self.config.validate_token_timestamp

        run = UploadRun(path=path, file_name=self.router.file_name(path), step=PipelineStep.LOAD_FILE)
        return self._process(run, validate_token_timestamp)

    def _process(self, run: UploadRun, validate_token_timestamp: bool) -> PipelineResult:
        try:
            upload = self._run_step(
                run, PipelineStep.LOAD_FILE, self.processor.load, self.config.archive_bucket, run.path
            )
            payload = upload.payload
            logger.info("File is loaded, record count: %d", len(payload.records))

            token = self._run_step(
                run,
                PipelineStep.VALIDATE_TOKEN,
                self.token_validator.validate,
                payload.token,
                validate_token_timestamp,
            )
            run.uid, run.upload_code = token.uid, token.upload_code
            logger.info("Upload token is valid, id: %s", run.uid)

            summaries = self._run_step(
                run, PipelineStep.VALIDATE_RECORDS, self.validate_records, payload.records
            )

            self._run_step(
                run,
                PipelineStep.FORWARD_DATA,
                self.forwarder.forward,
                run.path,
                run.uid,
                run.upload_code,
                summaries,
                payload.events,
            )
        except StepError as failure:
            return self._fail(run, failure)

        self.audit.succeeded(
            run.file_name,
            uid=run.uid,
            upload_code=run.upload_code,
            received=len(payload.records),
            summaries=summaries,
        )
        return success(run.path)

    def validate_records(self, records: list[RawRecord]) -> list[ContactSummary]:
        """Validate every record and reduce them to one summary per contact."""
        validated = self.record_validator.validate_batch(records, self.keys)
        summaries = self.aggregator.summarize(validated)
        logger.info(
            "Complete validation of records, original count: %d, valid: %d, after aggregation: %d",
            len(records),
            sum(1 for record in validated if record.is_valid),
            len(summaries),
        )
        return summaries

    def _run_step(
        self, run: UploadRun, step: PipelineStep, func: Callable[..., T], *args: Any
    ) -> T:
        """Run one step, advancing the run on success and tagging any failure with the step."""
        if run.step != step:
            raise RuntimeError(f"Step {step.value} cannot run while at {run.step.value}")

        logger.debug("step %s", step.value)
        try:
            value = func(*args)
        except Exception as e:
            raise StepError(step, e) from e

        run.step = step.next
        return value

    def _fail(self, run: UploadRun, failure: StepError) -> PipelineResult:
        logger.error(
            'step "%s" Error encountered, message: %s. Stack trace:\n%s',
            failure.step.value,
            failure.message,
            failure.stack_trace,
        )
        self.audit.failed(run.file_name, failure, uid=run.uid, upload_code=run.upload_code)
        return error(failure.message)

    def __repr__(self) -> str:
        return (
            f"UploadPipeline(forwarder={self.forwarder!r}, keys={len(self.keys)}, "
            f"router={self.router!r})"
        )
