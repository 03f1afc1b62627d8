"""Compact array form of a JSON Patch.

Each operation becomes a short list led by a one-character op code:

    add      ["+", path, value]
    remove   ["-", path]
    replace  ["=", path, value]
    move     [">", path, from]
    copy     ["~", path, from]
    test     ["?", path, value]
"""

from __future__ import annotations

from typing import Any, Dict, List

from docpatch.errors import InvalidPatchFormat, UnknownOperation


CODES: Dict[str, str] = {
    "add": "+",
    "remove": "-",
    "replace": "=",
    "move": ">",
    "copy": "~",
    "test": "?",
}
OPS: Dict[str, str] = {code: op for op, code in CODES.items()}


def pack(patch: List[Dict[str, Any]]) -> List[List[Any]]:
    if not isinstance(patch, list):
        raise InvalidPatchFormat("patch must be an array")
    packed: List[List[Any]] = []
    for i, entry in enumerate(patch):
        if not isinstance(entry, dict):
            raise InvalidPatchFormat(f"op[{i}]: must be object")
        op = entry.get("op")
        if op not in CODES:
            raise UnknownOperation(f"op[{i}]: {op!r} isn't a valid operation")
        try:
            if op in ("add", "replace", "test"):
                packed.append([CODES[op], entry["path"], entry["value"]])
            elif op in ("move", "copy"):
                packed.append([CODES[op], entry["path"], entry["from"]])
            else:
                packed.append([CODES[op], entry["path"]])
        except KeyError as e:
            raise InvalidPatchFormat(f"op[{i}]: '{op}' is missing {e}") from e
    return packed


def unpack(packed: List[List[Any]]) -> List[Dict[str, Any]]:
    if not isinstance(packed, list):
        raise InvalidPatchFormat("packed patch must be an array")
    patch: List[Dict[str, Any]] = []
    for i, item in enumerate(packed):
        if not isinstance(item, list) or not item:
            raise InvalidPatchFormat(f"op[{i}]: must be a non-empty array")
        op = OPS.get(item[0]) if isinstance(item[0], str) else None
        if op is None:
            raise UnknownOperation(f"op[{i}]: unknown op code {item[0]!r}")
        want = 2 if op == "remove" else 3
        if len(item) != want:
            raise InvalidPatchFormat(f"op[{i}]: '{op}' takes {want} fields, got {len(item)}")
        entry: Dict[str, Any] = {"op": op, "path": item[1]}
        if op in ("add", "replace", "test"):
            entry["value"] = item[2]
        elif op in ("move", "copy"):
            entry["from"] = item[2]
        patch.append(entry)
    return patch
