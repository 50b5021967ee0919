import unittest
import logging

from blockdoc.models import InlineRun, Mark, MarkRange
from htmlcodec.inline import (
    MARK_PRECEDENCE,
    decode_html,
    encode,
    normalize_runs,
    read_payload,
    render_payload,
    runs_from_ranges,
)

# Configure logging
logging.basicConfig(level=logging.INFO)


def run(text, *marks, href=None):
    return InlineRun(text, frozenset(marks), href)


class TestInlineEncode(unittest.TestCase):

    def test_single_mark(self):
        self.assertEqual(encode([run("bold", Mark.BOLD)]), "<strong>bold</strong>")

    def test_mark_tags(self):
        expected = {
            Mark.BOLD: "<strong>x</strong>",
            Mark.ITALIC: "<em>x</em>",
            Mark.UNDERLINE: "<u>x</u>",
            Mark.STRIKETHROUGH: "<s>x</s>",
            Mark.MARKER: '<mark class="cdx-marker">x</mark>',
            Mark.CODE: "<code>x</code>",
        }
        for mark, html in expected.items():
            self.assertEqual(encode([run("x", mark)]), html)

    def test_precedence_is_fixed(self):
        self.assertEqual(
            MARK_PRECEDENCE,
            (Mark.LINK, Mark.BOLD, Mark.ITALIC, Mark.UNDERLINE, Mark.STRIKETHROUGH, Mark.MARKER, Mark.CODE),
        )
        everything = run("t", *MARK_PRECEDENCE, href="/x")
        self.assertEqual(
            encode([everything]),
            '<a href="/x"><strong><em><u><s><mark class="cdx-marker"><code>t</code></mark></s></u></em></strong></a>',
        )

    def test_adjacent_runs_share_outer_tag(self):
        runs = [run("a", Mark.BOLD), run("b", Mark.BOLD, Mark.ITALIC)]
        self.assertEqual(encode(runs), "<strong>a<em>b</em></strong>")

    def test_different_links_stay_apart(self):
        runs = [run("one", Mark.LINK, href="/1"), run("two", Mark.LINK, href="/2")]
        self.assertEqual(encode(runs), '<a href="/1">one</a><a href="/2">two</a>')

    def test_link_without_href_is_dropped(self):
        self.assertEqual(encode([run("text", Mark.LINK)]), "text")
        self.assertEqual(encode([run("text", Mark.LINK, Mark.BOLD, href="  ")]), "<strong>text</strong>")

    def test_escaping(self):
        self.assertEqual(encode([run('a<b & "c"')]), "a&lt;b &amp; &quot;c&quot;")
        self.assertEqual(
            encode([run("q", Mark.LINK, href='/s?a=1&b="2"')]),
            '<a href="/s?a=1&amp;b=&quot;2&quot;">q</a>',
        )

    def test_newline_becomes_break(self):
        self.assertEqual(encode([run("one\ntwo")]), "one<br>two")

    def test_encode_is_deterministic(self):
        runs = [run("x", Mark.ITALIC, Mark.BOLD), run("y", Mark.CODE)]
        self.assertEqual(encode(runs), encode(list(runs)))
        self.assertEqual(encode(runs), "<strong><em>x</em></strong><code>y</code>")


class TestInlineDecode(unittest.TestCase):

    def test_mark_tags(self):
        runs = decode_html("<b>x</b> <i>y</i>")
        self.assertEqual(runs, [run("x", Mark.BOLD), run(" "), run("y", Mark.ITALIC)])

    def test_aliases(self):
        self.assertEqual(decode_html("<strike>a</strike>"), [run("a", Mark.STRIKETHROUGH)])
        self.assertEqual(decode_html("<del>a</del>"), [run("a", Mark.STRIKETHROUGH)])
        self.assertEqual(decode_html("<ins>a</ins>"), [run("a", Mark.UNDERLINE)])
        self.assertEqual(decode_html("<kbd>a</kbd>"), [run("a", Mark.CODE)])

    def test_link(self):
        self.assertEqual(
            decode_html('<a href="https://example.com">site</a>'),
            [run("site", Mark.LINK, href="https://example.com")],
        )

    def test_link_without_href_keeps_text(self):
        self.assertEqual(decode_html('<a name="top">anchor</a>'), [run("anchor")])
        self.assertEqual(decode_html('<a href="">empty</a>'), [run("empty")])

    def test_unknown_tags_are_transparent(self):
        self.assertEqual(decode_html('<span class="x">a<font color="red">b</font></span>'), [run("ab")])

    def test_dropped_tags(self):
        self.assertEqual(decode_html("a<script>alert(1)</script>b"), [run("ab")])

    def test_whitespace_collapses(self):
        self.assertEqual(decode_html("  a \n\t b  "), [run("a b")])

    def test_nbsp_is_kept(self):
        self.assertEqual(decode_html("a&nbsp;&nbsp;b"), [run("a\xa0\xa0b")])

    def test_break(self):
        self.assertEqual(decode_html("a<br>b"), [run("a\nb")])
        self.assertEqual(decode_html("a <br/> b"), [run("a\nb")])

    def test_block_tags_start_new_lines(self):
        self.assertEqual(decode_html("<p>a</p><p>b</p>"), [run("a\nb")])
        self.assertEqual(decode_html("<div>a</div>"), [run("a")])

    def test_entities(self):
        self.assertEqual(decode_html("1 &lt; 2 &amp;&amp; 3"), [run("1 < 2 && 3")])

    def test_empty(self):
        self.assertEqual(decode_html(""), [])
        self.assertEqual(decode_html("   "), [])


class TestRoundTrip(unittest.TestCase):

    SAMPLES = [
        [run("Hello "), run("world", Mark.BOLD), run("!")],
        [run("go", Mark.LINK, Mark.BOLD, href="https://e.com?a=1&b=2"), run(" now", Mark.BOLD)],
        [run("line1\nline2", Mark.ITALIC)],
        [run('5 < 6 & "q"', Mark.CODE)],
        [run("hi", Mark.MARKER), run(" there", Mark.UNDERLINE, Mark.STRIKETHROUGH)],
        [run("a\x0bb", Mark.BOLD), run("\x00c", Mark.LINK, href="/x\x01y")],
    ]

    def test_decode_of_encode_gives_runs_back(self):
        for runs in self.SAMPLES:
            with self.subTest(runs=runs):
                self.assertEqual(decode_html(encode(runs)), normalize_runs(runs))

    def test_reencode_is_byte_identical(self):
        for runs in self.SAMPLES:
            with self.subTest(runs=runs):
                html = encode(runs)
                self.assertEqual(encode(decode_html(html)), html)


class TestNormalize(unittest.TestCase):

    def test_merges_and_trims(self):
        runs = [run("  a ", Mark.BOLD), run(" b", Mark.BOLD), run(""), run("c  ")]
        self.assertEqual(normalize_runs(runs), [run("a b", Mark.BOLD), run("c")])

    def test_spaces_next_to_break_removed(self):
        self.assertEqual(normalize_runs([run("a  \n  b")]), [run("a\nb")])

    def test_control_characters_removed(self):
        self.assertEqual(normalize_runs([run("a\x0bb\x7f", Mark.BOLD)]), [run("ab", Mark.BOLD)])
        self.assertEqual(encode([run("\x00go", Mark.LINK, href="/a\x1fb")]), '<a href="/ab">go</a>')


class TestRanges(unittest.TestCase):

    def test_crossing_ranges_become_nested(self):
        ranges = [MarkRange(0, 4, Mark.BOLD), MarkRange(2, 6, Mark.ITALIC)]
        runs = runs_from_ranges("abcdef", ranges)
        self.assertEqual(
            runs,
            [run("ab", Mark.BOLD), run("cd", Mark.BOLD, Mark.ITALIC), run("ef", Mark.ITALIC)],
        )
        self.assertEqual(encode(runs), "<strong>ab<em>cd</em></strong><em>ef</em>")

    def test_out_of_bounds_ranges_are_clamped(self):
        runs = runs_from_ranges("abc", [MarkRange(-5, 2, Mark.CODE), MarkRange(2, 99, Mark.BOLD)])
        self.assertEqual(runs, [run("ab", Mark.CODE), run("c", Mark.BOLD)])

    def test_later_link_wins(self):
        ranges = [MarkRange(0, 4, Mark.LINK, "/outer"), MarkRange(2, 4, Mark.LINK, "/inner")]
        runs = runs_from_ranges("abcd", ranges)
        self.assertEqual(runs, [run("ab", Mark.LINK, href="/outer"), run("cd", Mark.LINK, href="/inner")])


class TestPayload(unittest.TestCase):

    def test_serialized_runs(self):
        payload = [{"text": "bold", "marks": ["bold"]}]
        self.assertEqual(render_payload(payload), "<strong>bold</strong>")

    def test_link_mark_objects(self):
        payload = [{"text": "go", "marks": [{"type": "link", "href": "/x"}]}]
        self.assertEqual(render_payload(payload), '<a href="/x">go</a>')

    def test_unknown_marks_ignored(self):
        self.assertEqual(render_payload([{"text": "x", "marks": ["sparkle"]}]), "x")

    def test_html_string_is_normalized(self):
        self.assertEqual(render_payload("Hello <b>you</b>"), "Hello <strong>you</strong>")
        self.assertEqual(render_payload("Tom & Jerry"), "Tom &amp; Jerry")

    def test_other_values(self):
        self.assertEqual(read_payload(None), [])
        self.assertEqual(render_payload(42), "42")


if __name__ == "__main__":
    unittest.main()
