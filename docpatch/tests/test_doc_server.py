import json
import unittest
from pathlib import Path
import tempfile
from unittest import mock

from docpatch.doc_server import DocServer
from docpatch.errors import RollbackFailed


class TestDocServer(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.doc_path = Path(self._tmp.name) / "doc.json"
        self.doc_path.write_text(json.dumps({"tracks": [{"id": "t1", "steps": []}]}))
        self.server = DocServer(str(self.doc_path), undo_depth=2)

    def _on_disk(self):
        return json.loads(self.doc_path.read_text())

    def test_apply_persists_and_bumps_version(self):
        res = self.server.apply_patch(0, [{"op": "add", "path": "/tracks/0/steps/-", "value": 4}])
        self.assertTrue(res["ok"])
        self.assertEqual(res["docVersion"], 1)
        self.assertEqual(self._on_disk(), {"tracks": [{"id": "t1", "steps": [4]}]})
        self.assertEqual(self.server.get_doc()["undoDepth"], 1)

    def test_stale_base_version(self):
        self.server.apply_patch(0, [{"op": "add", "path": "/a", "value": 1}])
        res = self.server.apply_patch(0, [{"op": "add", "path": "/b", "value": 1}])
        self.assertEqual(res, {"ok": False, "error": "stale", "expected": 1})

    def test_failed_patch_keeps_document(self):
        res = self.server.apply_patch(0, [
            {"op": "remove", "path": "/tracks/0"},
            {"op": "test", "path": "/tracks/0/id", "value": "t1"},
        ])
        self.assertFalse(res["ok"])
        self.assertEqual(res["error"], "patch_apply")
        self.assertEqual(res["kind"], "PathNotFound")
        self.assertEqual(self.server.doc, {"tracks": [{"id": "t1", "steps": []}]})
        self.assertEqual(self.server.doc_version, 0)

    def test_undo(self):
        self.server.apply_patch(0, [{"op": "replace", "path": "/tracks/0/id", "value": "t9"}])
        self.server.apply_patch(1, [{"op": "remove", "path": "/tracks/0/steps"}])
        res = self.server.undo(2)
        self.assertTrue(res["ok"])
        self.assertNotIn("revert", res)
        self.assertEqual(self._on_disk(), {"tracks": [{"id": "t9", "steps": []}]})
        self.server.undo(3)
        self.assertEqual(self._on_disk(), {"tracks": [{"id": "t1", "steps": []}]})
        self.assertEqual(self.server.undo(4), {"ok": False, "error": "nothing_to_undo"})

    def test_undo_depth_is_bounded(self):
        for v in range(3):
            self.server.apply_patch(v, [{"op": "add", "path": f"/k{v}", "value": v}])
        self.server.undo(3)
        self.server.undo(4)
        self.assertEqual(self.server.undo(5)["error"], "nothing_to_undo")
        self.assertEqual(self._on_disk(), {"tracks": [{"id": "t1", "steps": []}], "k0": 0})

    def test_persist_failure_reverts_memory(self):
        with mock.patch("docpatch.doc_server.atomic_write_json", side_effect=OSError("disk full")):
            res = self.server.apply_patch(0, [{"op": "add", "path": "/a", "value": 1}])
        self.assertEqual(res["error"], "persist")
        self.assertEqual(self.server.doc, {"tracks": [{"id": "t1", "steps": []}]})
        self.assertEqual(self.server.doc_version, 0)

    def test_undo_keeps_entry_when_save_fails(self):
        self.server.apply_patch(0, [{"op": "replace", "path": "/tracks/0/id", "value": "t9"}])
        with mock.patch("docpatch.doc_server.atomic_write_json", side_effect=OSError("disk full")):
            res = self.server.undo(1)
        self.assertEqual(res["error"], "persist")
        self.assertEqual(self.server.get_doc()["undoDepth"], 1)
        self.assertEqual(self.server.doc, {"tracks": [{"id": "t9", "steps": []}]})
        self.assertEqual(self._on_disk(), {"tracks": [{"id": "t9", "steps": []}]})

        res = self.server.undo(1)
        self.assertTrue(res["ok"])
        self.assertEqual(self._on_disk(), {"tracks": [{"id": "t1", "steps": []}]})
        self.assertEqual(self.server.get_doc()["undoDepth"], 0)

    def test_failed_revert_after_save_error_reloads_from_disk(self):
        self.server.apply_patch(0, [{"op": "add", "path": "/a", "value": 1}])
        with mock.patch("docpatch.doc_server.atomic_write_json", side_effect=OSError("disk full")), \
                mock.patch("docpatch.doc_server.revert", side_effect=RollbackFailed(OSError("disk full"))):
            res = self.server.apply_patch(1, [{"op": "add", "path": "/b", "value": 2}])
        self.assertEqual(res["error"], "fatal")
        self.assertEqual(res["kind"], "OSError")
        self.assertEqual(self.server.doc, {"tracks": [{"id": "t1", "steps": []}], "a": 1})
        self.assertEqual(self.server.get_doc()["undoDepth"], 0)
        self.assertEqual(self.server.doc_version, 1)
