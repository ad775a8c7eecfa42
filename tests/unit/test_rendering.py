"""
Unit tests for article Markdown rendering.
"""

from articlepay.rendering import markdown_to_html


class TestMarkdownToHtml:
    def test_empty(self):
        assert markdown_to_html("") == ""

    def test_headings_paragraphs_and_lists(self):
        html = markdown_to_html("# Heading\n\nThe full body.\n\n- one\n- two")

        assert "<h1>Heading</h1>" in html
        assert "<p>The full body.</p>" in html
        assert "<ul><li>one</li><li>two</li></ul>" in html

    def test_heading_levels(self):
        assert "<h3>Deep</h3>" in markdown_to_html("### Deep")

    def test_html_is_escaped(self):
        html = markdown_to_html("<script>alert(1)</script>")

        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_inline_code(self):
        assert "<code>x = 1</code>" in markdown_to_html("Set `x = 1` first.")

    def test_fenced_code_is_kept_verbatim_and_escaped(self):
        html = markdown_to_html("Intro\n\n```\nif a < b:\n    pass\n```\n\nAfter")

        assert "<pre><code>\nif a &lt; b:\n    pass\n</code></pre>" in html
        assert "<p><pre>" not in html
        assert "<p>After</p>" in html
