from __future__ import annotations

import argparse
import asyncio
import json

import websockets


async def run(url: str, cmd: str, args: argparse.Namespace):
    async with websockets.connect(url) as ws:
        # Read initial hello/doc
        init1 = json.loads(await ws.recv())
        init2 = json.loads(await ws.recv())
        doc = init1["payload"] if init1.get("type") == "doc" else init2["payload"]
        doc_version = int(doc.get("docVersion", 0))
        if cmd == "get":
            print(json.dumps(doc["json"], indent=2))
            return
        if cmd == "patch":
            with open(args.file, "r", encoding="utf-8") as f:
                ops = json.load(f)
            await ws.send(json.dumps({"type": "applyPatch", "id": 1, "payload": {"baseVersion": doc_version, "ops": ops}}))
        elif cmd == "set":
            ops = [{"op": "add", "path": args.path, "value": json.loads(args.value)}]
            await ws.send(json.dumps({"type": "applyPatch", "id": 1, "payload": {"baseVersion": doc_version, "ops": ops}}))
        elif cmd == "undo":
            await ws.send(json.dumps({"type": "undo", "id": 1, "payload": {"baseVersion": doc_version}}))
        # Print next few messages
        for _ in range(2):
            try:
                msg = await asyncio.wait_for(ws.recv(), timeout=2.0)
                print(msg)
            except asyncio.TimeoutError:
                break


def main():
    ap = argparse.ArgumentParser(description="Simple WS client for the docpatch document server")
    ap.add_argument("--url", default="ws://127.0.0.1:8765")
    sub = ap.add_subparsers(dest="cmd", required=True)
    sub.add_parser("get")
    p_patch = sub.add_parser("patch"); p_patch.add_argument("file", help="JSON Patch file")
    p_set = sub.add_parser("set"); p_set.add_argument("path"); p_set.add_argument("value", help="JSON value")
    sub.add_parser("undo")
    args = ap.parse_args()
    asyncio.run(run(args.url, args.cmd, args))


if __name__ == "__main__":
    main()
