"""Processors for reading uploaded files."""

from streetpass.processors.upload import LoadedUpload, UploadProcessor

__all__ = [
    "UploadProcessor",
    "LoadedUpload",
]
