from __future__ import annotations

from typing import Any, Dict, List, Sequence

from docpatch.operations import Step
from docpatch.pointer import decode, encode, is_prefix


def _concrete(tokens: Sequence[str], index: Any) -> str:
    """Pointer for `tokens` with the last token pinned to the index used."""
    if index is None:
        return encode(tokens)
    return encode(list(tokens[:-1]) + [str(index)])


def _undo_write(step: Step) -> Dict[str, Any]:
    # add and copy: drop what was created, or put back what was overwritten
    out = step.outcome
    if out.has_previous:
        return {"op": "replace", "path": encode(step.path), "value": out.previous}
    return {"op": "remove", "path": _concrete(step.path, out.index)}


def _undo_move(step: Step) -> List[Dict[str, Any]]:
    out = step.outcome
    src = encode(step.from_path or [])
    if out.has_previous:
        # the destination was overwritten (always so for the root, and when
        # moving into an ancestor of the source): put the displaced value
        # back first, then re-add the moved value at its source
        return [
            {"op": "replace", "path": encode(step.path), "value": out.previous},
            {"op": "add", "path": src, "value": out.value},
        ]
    dest = _concrete(step.path, out.index)
    if is_prefix(decode(dest), step.from_path or []):
        # an insertion shifted the source: the destination pointer now reads
        # as an ancestor of it, which a move refuses
        return [{"op": "remove", "path": dest}, {"op": "add", "path": src, "value": out.value}]
    return [{"op": "move", "from": dest, "path": src}]


def build_revert_patch(steps: Sequence[Step]) -> List[Dict[str, Any]]:
    """Build the patch that undoes `steps`, given in application order.

    The result lists the inverse operations most recent first, so applying
    it in order to the patched document restores the original one.
    """
    patch: List[Dict[str, Any]] = []
    for step in reversed(steps):
        out = step.outcome
        if step.op in ("add", "copy"):
            patch.append(_undo_write(step))
        elif step.op == "remove":
            patch.append({"op": "add", "path": _concrete(step.path, out.index), "value": out.previous})
        elif step.op == "replace":
            patch.append({"op": "replace", "path": encode(step.path), "value": out.previous})
        elif step.op == "move":
            patch.extend(_undo_move(step))
        elif step.op == "test":
            continue
        else:
            raise ValueError(f"cannot invert unknown operation {step.op!r}")
    return patch
