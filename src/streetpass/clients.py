"""Process-wide clients, initialized once at startup.

Call ``initialize`` when the process starts and ``shutdown`` when it stops;
tests call ``shutdown`` in teardown and pass fakes to ``initialize``.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from streetpass.config import Settings
from streetpass.core.aggregator import AggregatorConfig, ContactAggregator
from streetpass.core.audit import AuditLogger
from streetpass.core.pipeline import PipelineConfig, UploadPipeline
from streetpass.core.router import RouterConfig, UploadRouter
from streetpass.crypto import KeyRing
from streetpass.forwarders import create_forwarder
from streetpass.processors.upload import UploadProcessor, UploadProcessorConfig
from streetpass.storage.base import DocumentStore, ObjectStore
from streetpass.storage.local import JSONDocumentStore, LocalObjectStore
from streetpass.validators.record import RecordValidator, RecordValidatorConfig
from streetpass.validators.token import EncryptedTokenValidator, TokenValidator

logger = logging.getLogger(__name__)


@dataclass
class Clients:
    """Everything a running process shares between uploads."""

    settings: Settings
    objects: ObjectStore
    documents: DocumentStore
    keys: KeyRing
    pipeline: UploadPipeline


_clients: Clients | None = None
_lock = threading.Lock()


def build_pipeline(
    settings: Settings,
    objects: ObjectStore,
    documents: DocumentStore,
    keys: KeyRing,
    token_validator: TokenValidator | None = None,
) -> UploadPipeline:
    """Wire a pipeline from settings and storage clients."""
    aggregator = ContactAggregator(
        AggregatorConfig(
            contact_gap_seconds=settings.contact_gap_seconds,
            merge_policy=settings.merge_policy,
        )
    )

    forwarder_options = dict(settings.forwarder_options)
    if settings.forwarder == "contacts":
        forwarder_options.setdefault("store", documents)
        forwarder_options.setdefault("collection", settings.contacts_collection)
        forwarder_options.setdefault("merge_policy", settings.merge_policy)
        forwarder_options.setdefault("aggregator", aggregator)
    forwarder = create_forwarder(settings.forwarder, **forwarder_options)

    return UploadPipeline(
        objects=objects,
        token_validator=token_validator or EncryptedTokenValidator(keys),
        keys=keys,
        forwarder=forwarder,
        audit=AuditLogger(documents, collection=settings.upload_log_collection),
        record_validator=RecordValidator(
            config=RecordValidatorConfig(
                enforce_valid_to=settings.enforce_valid_to,
                utc_offset=settings.utc_offset,
            )
        ),
        aggregator=aggregator,
        router=UploadRouter(
            RouterConfig(
                records_dir=settings.records_dir,
                extension=settings.upload_extension,
                utc_offset=settings.utc_offset,
            )
        ),
        processor=UploadProcessor(
            objects, UploadProcessorConfig(max_size_bytes=settings.max_upload_bytes)
        ),
        config=PipelineConfig(
            upload_bucket=settings.upload_bucket,
            archive_bucket=settings.archive_bucket,
            validate_token_timestamp=settings.validate_token_timestamp,
        ),
    )


def initialize(
    settings: Settings,
    objects: ObjectStore | None = None,
    documents: DocumentStore | None = None,
    token_validator: TokenValidator | None = None,
) -> Clients:
    """Create the process-wide clients.

    Local filesystem stores under ``settings.storage_root`` are used unless
    stores are passed in.

    Raises:
        RuntimeError: If already initialized
    """
    global _clients
    with _lock:
        if _clients is not None:
            raise RuntimeError("streetpass clients are already initialized")

        objects = objects or LocalObjectStore(settings.storage_root / "objects")
        documents = documents or JSONDocumentStore(settings.storage_root / "documents")
        keys = KeyRing.from_base64(settings.encryption_keys)

        _clients = Clients(
            settings=settings,
            objects=objects,
            documents=documents,
            keys=keys,
            pipeline=build_pipeline(settings, objects, documents, keys, token_validator),
        )
        logger.debug("Initialized clients: %r", _clients.pipeline)
        return _clients


def get_clients() -> Clients:
    """The process-wide clients.

    Raises:
        RuntimeError: If ``initialize`` has not been called
    """
    if _clients is None:
        raise RuntimeError("streetpass clients are not initialized, call initialize() first")
    return _clients


def shutdown() -> None:
    """Drop the process-wide clients. Safe to call when not initialized."""
    global _clients
    with _lock:
        _clients = None
