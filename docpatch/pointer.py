from __future__ import annotations

import re
from typing import Any, List, Sequence, Tuple

from jsonpointer import JsonPointer, JsonPointerException

from docpatch.errors import InvalidArrayIndex, MalformedPointer, PathNotFound


# RFC 6901: "0" or a non-zero digit followed by digits, no sign, no leading zero
_RE_INDEX = re.compile(r"^(0|[1-9][0-9]*)$")


def decode(pointer: str) -> List[str]:
    """Decode a JSON pointer into its unescaped tokens.

    "" addresses the root and decodes to []. Anything else must start with
    "/". "~1" becomes "/" and "~0" becomes "~"; any other escape is rejected.
    """
    if not isinstance(pointer, str):
        raise MalformedPointer(f"pointer must be a string, got {type(pointer).__name__}")
    try:
        return list(JsonPointer(pointer).parts)
    except JsonPointerException as e:
        raise MalformedPointer(f"{e}: {pointer!r}") from e


def encode(tokens: Sequence[Any]) -> str:
    return JsonPointer.from_parts([str(t) for t in tokens]).path


def is_prefix(ancestor: Sequence[str], tokens: Sequence[str]) -> bool:
    """True if `ancestor` addresses a strict ancestor of `tokens`."""
    if len(ancestor) >= len(tokens):
        return False
    return list(tokens[: len(ancestor)]) == list(ancestor)


def parse_index(token: str, length: int, *, append: bool = False) -> int:
    """Turn an array token into an index valid for an array of `length`.

    With append=True ("add" targets) "-" means `length` and `length` itself
    is a valid insertion point. Otherwise the index must address an existing
    element; a well-formed index past the end raises PathNotFound.
    """
    if token == "-":
        if append:
            return length
        raise InvalidArrayIndex("'-' is only valid as the target of an add")
    if not _RE_INDEX.match(token):
        raise InvalidArrayIndex(f"invalid array index: {token!r}")
    idx = int(token)
    if append:
        if idx > length:
            raise InvalidArrayIndex(f"index {idx} out of range for insertion into array of length {length}")
    elif idx >= length:
        raise PathNotFound(f"index {idx} out of range for array of length {length}")
    return idx


def resolve(document: Any, tokens: Sequence[str]) -> Tuple[Any, str]:
    """Walk all tokens but the last and return (parent, last_token).

    Raises PathNotFound when an intermediate location does not exist. The
    caller interprets the last token against the parent; tokens must not be
    empty.
    """
    if not tokens:
        raise ValueError("cannot resolve the parent of the root")
    cur = document
    for i, token in enumerate(tokens[:-1]):
        if isinstance(cur, dict):
            if token not in cur:
                raise PathNotFound(f"key {token!r} not found at {encode(tokens[:i + 1])}")
            cur = cur[token]
        elif isinstance(cur, list):
            if token == "-":
                raise InvalidArrayIndex(f"'-' cannot be traversed at {encode(tokens[:i + 1])}")
            if not _RE_INDEX.match(token) or int(token) >= len(cur):
                raise PathNotFound(f"no array element {token!r} at {encode(tokens[:i + 1])}")
            cur = cur[int(token)]
        else:
            raise PathNotFound(f"cannot walk into {type(cur).__name__} at {encode(tokens[:i + 1])}")
    return cur, tokens[-1]


def lookup(document: Any, tokens: Sequence[str]) -> Any:
    """Return the value at an existing location or raise PathNotFound."""
    if not tokens:
        return document
    parent, token = resolve(document, tokens)
    if isinstance(parent, dict):
        if token not in parent:
            raise PathNotFound(f"key {token!r} not found at {encode(tokens)}")
        return parent[token]
    if isinstance(parent, list):
        return parent[parse_index(token, len(parent))]
    raise PathNotFound(f"cannot address into {type(parent).__name__} at {encode(tokens)}")


def get(document: Any, pointer: str) -> Any:
    return lookup(document, decode(pointer))


def has(document: Any, pointer: str) -> bool:
    """True if `pointer` addresses an existing location in `document`.

    A malformed pointer is still an error, not a miss.
    """
    tokens = decode(pointer)
    try:
        lookup(document, tokens)
    except (PathNotFound, InvalidArrayIndex):
        return False
    return True
