from __future__ import annotations

import argparse
import json
import sys
from typing import List

from docpatch.apply import apply
from docpatch.errors import PatchError, RollbackFailed
from docpatch.jsonio import atomic_write_json, load_json, sha256_canonical


def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Apply a JSON Patch (RFC 6902) to a JSON document, all or nothing")
    ap.add_argument("doc", help="Path to the JSON document")
    ap.add_argument("patch", help="Path to the JSON Patch array")
    ap.add_argument("--write", "-w", action="store_true", help="Rewrite the document file instead of printing the result")
    ap.add_argument("--revert-out", help="Write the patch that undoes this change to this file")
    ap.add_argument("--print-hash", action="store_true", help="Print SHA-256 of the canonical result")
    args = ap.parse_args(argv)

    try:
        doc = load_json(args.doc)
        patch = load_json(args.patch)
    except Exception as e:
        print(f"error: failed to read input: {e}", file=sys.stderr)
        return 2

    try:
        result = apply(doc, patch, reversible=bool(args.revert_out))
    except RollbackFailed as e:
        print(f"fatal: rollback failed after {type(e.original).__name__}: {e.original}; cause: {e.__cause__}", file=sys.stderr)
        return 3
    except PatchError as e:
        print(f"error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    try:
        if args.revert_out:
            atomic_write_json(args.revert_out, result.revert)
            print(f"[cli] wrote revert patch to {args.revert_out}", file=sys.stderr)
        if args.write:
            atomic_write_json(args.doc, result.document)
            print(f"[cli] wrote {args.doc}", file=sys.stderr)
    except OSError as e:
        print(f"error: failed to write output: {e}", file=sys.stderr)
        return 2

    if args.print_hash:
        print(sha256_canonical(result.document))
    elif not args.write:
        print(json.dumps(result.document, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
