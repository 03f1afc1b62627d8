from __future__ import annotations

from typing import Optional


class PatchError(ValueError):
    """Base class for every failure of a patch operation or batch."""


class InvalidPatchFormat(PatchError):
    pass


class MissingPath(InvalidPatchFormat):
    pass


class MissingValue(PatchError):
    pass


class MissingFrom(PatchError):
    pass


class UnknownOperation(PatchError):
    pass


class MalformedPointer(PatchError):
    pass


class PathNotFound(PatchError):
    pass


class InvalidArrayIndex(PatchError):
    pass


class InvalidMove(PatchError):
    pass


class TestFailed(PatchError):
    # keep pytest from collecting this as a test class
    __test__ = False


class RollbackFailed(RuntimeError):
    """The revert patch could not be applied while undoing a failed batch.

    The document is left partially reverted. `original` is the error that
    started the rollback; the rollback error itself is chained as __cause__.
    Not a PatchError, so callers handling ordinary patch failures do not
    swallow it by accident.
    """

    def __init__(self, original: BaseException, message: Optional[str] = None):
        super().__init__(message or f"rollback failed after: {original!r}")
        self.original = original
