import json
import unittest

from docpatch.validator import main, valid, validate_patch


class TestValidator(unittest.TestCase):
    def test_valid_patch(self):
        patch = [
            {"op": "add", "path": "/a", "value": 1},
            {"op": "remove", "path": "/a"},
            {"op": "move", "from": "/b", "path": "/c"},
            {"op": "copy", "from": "/c", "path": "/d"},
            {"op": "test", "path": "", "value": None},
        ]
        self.assertEqual(validate_patch(patch), [])
        self.assertTrue(valid(patch))

    def test_errors_are_located(self):
        patch = [
            {"op": "add", "path": "/a"},
            {"op": "move", "path": "/a"},
            {"op": "nope", "path": "/a"},
            "x",
            {"op": "remove", "path": "a"},
            {"op": "move", "from": "/a", "path": "/a/b"},
            {"op": "copy", "from": 5, "path": "/a"},
        ]
        errors = validate_patch(patch)
        self.assertEqual(errors[0], "/0/value: required for add")
        self.assertEqual(errors[1], "/1/from: required for move")
        self.assertTrue(errors[2].startswith("/2/op: "))
        self.assertEqual(errors[3], "/3: must be object")
        self.assertTrue(errors[4].startswith("/4/path: "))
        self.assertEqual(errors[5], "/5: cannot move a value into one of its children")
        self.assertEqual(errors[6], "/6/from: required JSON pointer string")
        self.assertEqual(len(errors), 7)
        self.assertFalse(valid(patch))

    def test_not_an_array(self):
        self.assertEqual(validate_patch({}), [": patch must be an array"])

    def test_main_exit_codes(self):
        import tempfile
        import os

        with tempfile.TemporaryDirectory() as d:
            good = os.path.join(d, "good.json")
            bad = os.path.join(d, "bad.json")
            with open(good, "w", encoding="utf-8") as f:
                json.dump([{"op": "remove", "path": "/a"}], f)
            with open(bad, "w", encoding="utf-8") as f:
                json.dump([{"op": "add", "path": "/a"}], f)
            self.assertEqual(main([good]), 0)
            self.assertEqual(main([bad]), 1)
            self.assertEqual(main([os.path.join(d, "missing.json")]), 2)
