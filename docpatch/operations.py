from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from docpatch.equal import equal
from docpatch.errors import InvalidMove, PatchError, PathNotFound, TestFailed
from docpatch.pointer import encode, is_prefix, lookup, parse_index, resolve


@dataclass
class Outcome:
    """Result of one mutator call.

    `document` is the root to use for the next step. `previous` is only
    meaningful when `has_previous` is set, so a displaced null is not
    confused with nothing displaced. `index` is the concrete array index
    written or removed at the target; `source_index` the index a move took
    its value from. `value` is what a move placed at its destination.
    """

    document: Any
    previous: Any = None
    has_previous: bool = False
    index: Optional[int] = None
    source_index: Optional[int] = None
    value: Any = None


@dataclass
class Step:
    """One successfully applied operation, recorded for rollback."""

    op: str
    path: List[str]
    from_path: Optional[List[str]]
    outcome: Outcome


def _container_error(parent: Any, tokens: Sequence[str]) -> PathNotFound:
    return PathNotFound(f"cannot address into {type(parent).__name__} at {encode(tokens)}")


def add(document: Any, path: List[str], value: Any) -> Outcome:
    if not path:
        return Outcome(value, previous=document, has_previous=True)
    parent, key = resolve(document, path)
    if isinstance(parent, dict):
        if key in parent:
            prev = parent[key]
            parent[key] = value
            return Outcome(document, previous=prev, has_previous=True)
        parent[key] = value
        return Outcome(document)
    if isinstance(parent, list):
        idx = parse_index(key, len(parent), append=True)
        # RFC 6902 inserts before the element at idx
        parent.insert(idx, value)
        return Outcome(document, index=idx)
    raise _container_error(parent, path)


def remove(document: Any, path: List[str]) -> Outcome:
    if not path:
        return Outcome(None, previous=document, has_previous=True)
    parent, key = resolve(document, path)
    if isinstance(parent, dict):
        if key not in parent:
            raise PathNotFound(f"key {key!r} not found at {encode(path)}")
        return Outcome(document, previous=parent.pop(key), has_previous=True)
    if isinstance(parent, list):
        idx = parse_index(key, len(parent))
        return Outcome(document, previous=parent.pop(idx), has_previous=True, index=idx)
    raise _container_error(parent, path)


def replace(document: Any, path: List[str], value: Any) -> Outcome:
    if not path:
        return Outcome(value, previous=document, has_previous=True)
    parent, key = resolve(document, path)
    if isinstance(parent, dict):
        if key not in parent:
            raise PathNotFound(f"key {key!r} not found at {encode(path)}")
        prev = parent[key]
        parent[key] = value
        return Outcome(document, previous=prev, has_previous=True)
    if isinstance(parent, list):
        idx = parse_index(key, len(parent))
        prev = parent[idx]
        parent[idx] = value
        return Outcome(document, previous=prev, has_previous=True, index=idx)
    raise _container_error(parent, path)


def move(document: Any, from_path: List[str], path: List[str]) -> Outcome:
    """Remove the value at `from_path` and add it at `path`.

    The destination is resolved after the removal, so array indices in
    `path` refer to the array with the moved element already taken out.
    """
    if is_prefix(from_path, path):
        raise InvalidMove(f"cannot move {encode(from_path)} into its own child {encode(path)}")
    removed = remove(document, from_path)
    try:
        added = add(removed.document, path, removed.previous)
    except PatchError:
        # put the value back where it came from before reporting the failure
        add(removed.document, from_path, removed.previous)
        raise
    return Outcome(
        added.document,
        previous=added.previous,
        has_previous=added.has_previous,
        index=added.index,
        source_index=removed.index,
        value=removed.previous,
    )


def copy(document: Any, from_path: List[str], path: List[str]) -> Outcome:
    value = deepcopy(lookup(document, from_path))
    return add(document, path, value)


def test(document: Any, path: List[str], value: Any) -> Outcome:
    actual = lookup(document, path)
    if not equal(actual, value):
        raise TestFailed(f"value at {encode(path)} is {actual!r}, expected {value!r}")
    return Outcome(document)


# keep pytest from collecting the mutator as a test function
test.__test__ = False  # type: ignore[attr-defined]


KINDS = ("add", "remove", "replace", "move", "copy", "test")
