import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from scripts.convert_content import main


class TestConvertContent(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, name, text):
        path = self.dir / name
        path.write_text(text, encoding="utf-8")
        return path

    def test_to_html_stdout(self):
        doc = {"blocks": [{"type": "header", "data": {"text": "Hello", "level": 2}}]}
        path = self.write("post.json", json.dumps(doc))

        out = io.StringIO()
        with redirect_stdout(out):
            code = main(["to-html", str(path)])
        self.assertEqual(code, 0)
        self.assertEqual(out.getvalue(), "<h2>Hello</h2>")

    def test_to_blocks_output_file(self):
        source = self.write("post.html", "<ul><li>A</li><li>B</li></ul>")
        target = self.dir / "post.json"

        code = main(["to-blocks", str(source), "-o", str(target)])
        self.assertEqual(code, 0)
        doc = json.loads(target.read_text(encoding="utf-8"))
        self.assertEqual(doc["blocks"][0]["type"], "list")
        self.assertEqual(doc["blocks"][0]["data"], {"style": "unordered", "items": ["A", "B"]})
        self.assertIn("time", doc)
        self.assertIn("version", doc)

    def test_infinite_header_level_converts(self):
        path = self.write("post.json", '{"blocks": [{"type": "header", "data": {"text": "a", "level": Infinity}}]}')

        out = io.StringIO()
        with redirect_stdout(out):
            code = main(["to-html", str(path)])
        self.assertEqual(code, 0)
        self.assertEqual(out.getvalue(), "<h2>a</h2>")

    def test_bad_input_fails(self):
        self.assertEqual(main(["to-html", str(self.write("broken.json", "{not json"))]), 1)
        self.assertEqual(main(["to-html", str(self.write("list.json", "[1, 2]"))]), 1)


if __name__ == "__main__":
    unittest.main()
