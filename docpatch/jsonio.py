from __future__ import annotations

import hashlib
import json
import os
import tempfile
from typing import Any


def load_json(path: str) -> Any:
    if not os.path.exists(path):
        raise FileNotFoundError(f"document not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def atomic_write_json(path: str, obj: Any) -> None:
    data = json.dumps(obj, ensure_ascii=False, indent=2) + "\n"
    d = os.path.dirname(os.path.abspath(path)) or "."
    fd, tmp = tempfile.mkstemp(prefix=".tmp_doc_", dir=d, text=True)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp, path)
    finally:
        # gone after a successful replace
        try:
            os.unlink(tmp)
        except OSError:
            pass


def canonical_json(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def sha256_canonical(obj: Any) -> str:
    """SHA-256 of the canonical JSON form (sorted keys, compact)."""
    return hashlib.sha256(canonical_json(obj).encode("utf-8")).hexdigest()
