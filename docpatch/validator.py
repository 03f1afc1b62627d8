from __future__ import annotations

import argparse
import json
import sys
from typing import Any, List

from docpatch.errors import MalformedPointer
from docpatch.operations import KINDS
from docpatch.pointer import decode, is_prefix


def _err(errors: List[str], path: str, msg: str) -> None:
    errors.append(f"{path}: {msg}")


def _check_pointer(errors: List[str], path: str, pointer: Any) -> None:
    if not isinstance(pointer, str):
        _err(errors, path, "required JSON pointer string")
        return
    try:
        decode(pointer)
    except MalformedPointer as e:
        _err(errors, path, str(e))


def validate_patch(patch: Any) -> List[str]:
    """Check the shape of a JSON Patch without applying it.

    Returns a list of human-readable errors located by pointer-like paths
    into the patch array (e.g. "/2/from: required for move"). Only checks
    what can be known without a document.
    """
    errors: List[str] = []
    if not isinstance(patch, list):
        _err(errors, "", "patch must be an array")
        return errors

    for i, entry in enumerate(patch):
        epath = f"/{i}"
        if not isinstance(entry, dict):
            _err(errors, epath, "must be object")
            continue
        before = len(errors)
        op = entry.get("op")
        if op not in KINDS:
            _err(errors, f"{epath}/op", f"must be one of {'|'.join(KINDS)}")
            continue
        _check_pointer(errors, f"{epath}/path", entry.get("path"))
        if op in ("add", "replace", "test") and "value" not in entry:
            _err(errors, f"{epath}/value", f"required for {op}")
        if op in ("move", "copy"):
            if "from" not in entry:
                _err(errors, f"{epath}/from", f"required for {op}")
            else:
                _check_pointer(errors, f"{epath}/from", entry["from"])
        if op == "move" and len(errors) == before:
            if is_prefix(decode(entry["from"]), decode(entry["path"])):
                _err(errors, epath, "cannot move a value into one of its children")
    return errors


def valid(patch: Any) -> bool:
    return not validate_patch(patch)


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Validate the shape of a JSON Patch file")
    ap.add_argument("path", help="Path to patch JSON file")
    args = ap.parse_args(argv)

    try:
        with open(args.path, "r", encoding="utf-8") as f:
            patch = json.load(f)
    except Exception as e:
        print(f"error: failed to read {args.path}: {e}", file=sys.stderr)
        return 2

    errors = validate_patch(patch)
    if errors:
        print("invalid patch:")
        for e in errors:
            print(f" - {e}")
        return 1

    print(f"ok: {len(patch)} operation(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
