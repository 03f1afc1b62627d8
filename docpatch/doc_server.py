"""Websocket document server.

Holds one JSON document on disk and applies client JSON Patches to it,
all or nothing, with a version counter for optimistic concurrency and an
undo stack built from revert patches. The document file holds the plain
document; the version counter starts at 0 each time the server loads it.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import signal
import threading
import time
import traceback
from collections import deque
from typing import Any, Deque, Dict, List, Set

import websockets

from docpatch.apply import apply, revert
from docpatch.errors import PatchError, RollbackFailed
from docpatch.jsonio import atomic_write_json, load_json, sha256_canonical


PROTOCOL = 1


class DocServer:
    def __init__(self, doc_path: str, undo_depth: int = 50):
        self.doc_path = doc_path
        self.doc: Any = load_json(doc_path)
        self.doc_version = 0
        self._undo: Deque[List[Dict[str, Any]]] = deque(maxlen=max(0, undo_depth))
        # Reentrant: the WS handler holds the lock around calls that take it too
        self._lock = threading.RLock()

    def get_doc(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "docVersion": self.doc_version,
                "json": self.doc,
                "sha256": sha256_canonical(self.doc),
                "path": os.path.abspath(self.doc_path),
                "undoDepth": len(self._undo),
            }

    def _persist(self, new_doc: Any, revert_patch: List[Dict[str, Any]]) -> Dict[str, Any]:
        try:
            atomic_write_json(self.doc_path, new_doc)
        except OSError as e:
            print(f"[ws] failed to save {self.doc_path}: {e}", flush=True)
            # disk still holds the old version; take the in-memory change back too
            try:
                self.doc = revert(new_doc, revert_patch)
            except RollbackFailed as fatal:
                return self._reload(fatal)
            return {"ok": False, "error": "persist", "details": str(e)}
        self.doc = new_doc
        self.doc_version += 1
        print(f"[ws] saved {self.doc_path} (docVersion={self.doc_version})", flush=True)
        return {"ok": True, "docVersion": self.doc_version}

    def _reload(self, e: RollbackFailed) -> Dict[str, Any]:
        """Recover from a failed rollback: the in-memory document is unusable."""
        traceback.print_exc()
        self.doc = load_json(self.doc_path)
        self._undo.clear()
        return {"ok": False, "error": "fatal", "kind": type(e.original).__name__, "details": str(e.original)}

    def _apply(self, ops: Any) -> Dict[str, Any]:
        try:
            result = apply(self.doc, ops, reversible=True)
        except RollbackFailed as e:
            return self._reload(e)
        except PatchError as e:
            print(f"[ws] patch_apply error: {type(e).__name__}: {e}", flush=True)
            return {"ok": False, "error": "patch_apply", "kind": type(e).__name__, "details": str(e)}
        res = self._persist(result.document, result.revert or [])
        if res["ok"]:
            res["revert"] = result.revert
        return res

    def apply_patch(self, base_version: int, ops: Any) -> Dict[str, Any]:
        with self._lock:
            if base_version != self.doc_version:
                print(f"[ws] stale patch: client={base_version} server={self.doc_version}", flush=True)
                return {"ok": False, "error": "stale", "expected": self.doc_version}
            res = self._apply(ops)
            if res["ok"] and self._undo.maxlen:
                self._undo.append(res["revert"])
            return res

    def undo(self, base_version: int) -> Dict[str, Any]:
        with self._lock:
            if base_version != self.doc_version:
                return {"ok": False, "error": "stale", "expected": self.doc_version}
            if not self._undo:
                return {"ok": False, "error": "nothing_to_undo"}
            res = self._apply(self._undo[-1])
            if res["ok"]:
                self._undo.pop()
            # the revert of an undo is a redo; not kept
            res.pop("revert", None)
            return res


def _base_version(payload: Dict[str, Any]) -> int:
    try:
        return int(payload.get("baseVersion", -1))
    except (TypeError, ValueError):
        return -1


def _msg(type_: str, payload: Any = None, req_id: Any = None) -> str:
    obj: Dict[str, Any] = {"type": type_, "ts": time.time()}
    if req_id is not None:
        obj["id"] = req_id
    if payload is not None:
        obj["payload"] = payload
    return json.dumps(obj)


async def serve_ws(server: DocServer, host: str, port: int):
    clients: Set[Any] = set()

    async def broadcast(message: str):
        if not clients:
            return
        await asyncio.gather(*[c.send(message) for c in list(clients)], return_exceptions=True)

    async def reply(ws, req_id: Any, res: Dict[str, Any]):
        if res.get("ok"):
            await broadcast(_msg("doc", server.get_doc()))
            res = {k: v for k, v in res.items() if k != "revert"}
            await ws.send(_msg("ack", res, req_id))
        else:
            await ws.send(_msg("error", res, req_id))

    async def handler(ws, *maybe_path):
        print(f"[ws] client connected: {getattr(ws, 'remote_address', None)}", flush=True)
        clients.add(ws)
        await ws.send(_msg("hello", {"protocol": PROTOCOL, "docVersion": server.doc_version}))
        await ws.send(_msg("doc", server.get_doc()))
        try:
            async for message in ws:
                try:
                    obj = json.loads(message)
                except ValueError:
                    await ws.send(_msg("error", {"ok": False, "error": "invalid_json"}))
                    continue
                if not isinstance(obj, dict):
                    await ws.send(_msg("error", {"ok": False, "error": "invalid_message"}))
                    continue
                t = obj.get("type")
                req_id = obj.get("id")
                payload = obj.get("payload")
                if not isinstance(payload, dict):
                    payload = {}
                print(f"[ws] recv type={t}", flush=True)
                if t == "ping":
                    await ws.send(_msg("pong", req_id=req_id))
                elif t == "getDoc":
                    await ws.send(_msg("doc", server.get_doc(), req_id))
                elif t == "applyPatch":
                    ops = payload.get("ops")
                    if not isinstance(ops, list):
                        await ws.send(_msg("error", {"ok": False, "error": "invalid_ops"}, req_id))
                        continue
                    await reply(ws, req_id, server.apply_patch(_base_version(payload), ops))
                elif t == "undo":
                    await reply(ws, req_id, server.undo(_base_version(payload)))
                else:
                    await ws.send(_msg("error", {"ok": False, "error": "unknown_type", "type": t}, req_id))
        finally:
            clients.discard(ws)
            print("[ws] client disconnected", flush=True)

    async with websockets.serve(handler, host, port):
        print(f"[ws] docpatch listening on ws://{host}:{port}", flush=True)
        await asyncio.Future()


def main():
    ap = argparse.ArgumentParser(description="Serve a JSON document over websockets and apply JSON Patches to it")
    ap.add_argument("--doc", default="doc.json")
    ap.add_argument("--ws-host", default="127.0.0.1")
    ap.add_argument("--ws-port", type=int, default=8765)
    ap.add_argument("--undo-depth", type=int, default=50)
    args = ap.parse_args()

    server = DocServer(args.doc, undo_depth=args.undo_depth)

    def shutdown(*_):
        print("[ws] shutting down", flush=True)
        os._exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        asyncio.run(serve_ws(server, args.ws_host, args.ws_port))
    except KeyboardInterrupt:
        shutdown()


if __name__ == "__main__":
    main()
