"""Exception types raised while processing uploads."""

from __future__ import annotations

import traceback
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from streetpass.core.result import PipelineStep


class StreetPassError(Exception):
    """Base class for all streetpass errors."""


class FileRelocationError(StreetPassError):
    """The uploaded file could not be moved into the archive."""


class LoadError(StreetPassError):
    """The archived file could not be read or is not a valid upload payload."""


class TokenError(StreetPassError):
    """The upload token is malformed or expired."""


class DecryptionError(StreetPassError):
    """A blob could not be decrypted with the given key.

    Handled per record by the record validator; never fails a pipeline run.
    """


class ForwardError(StreetPassError):
    """The data forwarder rejected the write."""


class StorageError(StreetPassError):
    """An object or document store operation failed."""


class LoggingError(StreetPassError):
    """An audit log write failed. Never propagated out of the audit logger."""


class StepError(StreetPassError):
    """An exception raised inside a pipeline step, tagged with that step."""

    def __init__(self, step: PipelineStep, cause: BaseException):
        super().__init__(str(cause))
        self.step = step
        self.cause = cause

    @property
    def message(self) -> str:
        return str(self.cause)

    @property
    def stack_trace(self) -> str:
        return "".join(
            traceback.format_exception(type(self.cause), self.cause, self.cause.__traceback__)
        )
