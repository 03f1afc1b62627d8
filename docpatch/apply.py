from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from docpatch import operations
from docpatch.errors import (
    InvalidPatchFormat,
    MissingFrom,
    MissingPath,
    MissingValue,
    RollbackFailed,
    UnknownOperation,
)
from docpatch.operations import Outcome, Step
from docpatch.pointer import decode
from docpatch.revert import build_revert_patch


@dataclass
class PatchResult:
    document: Any
    revert: Optional[List[Dict[str, Any]]] = None


def _apply_one(document: Any, operation: Any, copy_values: bool) -> Step:
    if not isinstance(operation, Mapping):
        raise InvalidPatchFormat(f"patch operation must be an object, got {type(operation).__name__}")
    op = operation.get("op")
    if op not in operations.KINDS:
        raise UnknownOperation(f"{op!r} isn't a valid operation")
    if not isinstance(operation.get("path"), str):
        raise MissingPath(f"'{op}' requires a string 'path': {operation}")
    path = decode(operation["path"])
    from_path = None
    if op in ("move", "copy") and "from" in operation:
        from_path = decode(operation["from"])

    if op in ("add", "replace", "test"):
        if "value" not in operation:
            raise MissingValue(f"'{op}' requires 'value': {operation}")
        value = operation["value"]
        if copy_values and op != "test":
            value = deepcopy(value)
    elif op in ("move", "copy") and from_path is None:
        raise MissingFrom(f"'{op}' requires 'from': {operation}")

    outcome: Outcome
    if op == "add":
        outcome = operations.add(document, path, value)
    elif op == "remove":
        outcome = operations.remove(document, path)
    elif op == "replace":
        outcome = operations.replace(document, path, value)
    elif op == "move":
        outcome = operations.move(document, from_path, path)
    elif op == "copy":
        outcome = operations.copy(document, from_path, path)
    else:
        outcome = operations.test(document, path, value)
    return Step(op, path, from_path, outcome)


def _run(document: Any, patch: List[Any], steps: List[Step], copy_values: bool = True) -> Any:
    """Apply `patch` left to right, appending a Step per applied operation.

    Stops at the first failure without undoing anything. The current root
    is always the document of the last recorded step.
    """
    for operation in patch:
        step = _apply_one(document, operation, copy_values)
        steps.append(step)
        document = step.outcome.document
    return document


def _rollback(document: Any, steps: List[Step], error: BaseException) -> Any:
    revert_patch = build_revert_patch(steps)
    try:
        # revert values are the displaced subtrees themselves; reinsert them
        # as-is so the caller's original objects come back
        return _run(document, revert_patch, [], copy_values=False)
    except Exception as e:
        raise RollbackFailed(error) from e


def apply(document: Any, patch: List[Dict[str, Any]], reversible: bool = False) -> PatchResult:
    """Apply an RFC 6902 JSON Patch to `document`, all or nothing.

    The document is edited in place; always use the returned root, which
    differs from the input when an operation targets the root. If any
    operation fails, the operations already applied are undone and the
    original error is raised unchanged. RollbackFailed means the undo
    itself failed and the document is in an unknown state.

    With reversible=True the result also carries the revert patch: applying
    it to the returned document restores the original one.
    """
    if not isinstance(patch, list):
        raise InvalidPatchFormat(f"patch must be an array, got {type(patch).__name__}")

    steps: List[Step] = []
    try:
        document = _run(document, patch, steps)
    except Exception as err:
        current = steps[-1].outcome.document if steps else document
        _rollback(current, steps, err)
        raise

    result = PatchResult(document)
    if reversible:
        # detached from the live document so later edits cannot change it
        result.revert = deepcopy(build_revert_patch(steps))
    return result


def revert(document: Any, revert_patch: List[Dict[str, Any]]) -> Any:
    """Apply a revert patch produced by apply(..., reversible=True)."""
    return apply(document, revert_patch).document
