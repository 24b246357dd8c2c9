"""Unit tests for content_converter.markup_fixes module."""

from src.content_converter.markup_fixes import (
    COLLAPSIBLE_CONTENT,
    COLLAPSIBLE_OPEN,
    comment_out_injected_heading,
    fix_list_items,
    preprocess,
    replace_collapsed_blocks,
    replace_customized,
    replace_encoded_entities,
    replace_inline_elements,
    unescape_markers,
)


class TestPreprocess:
    """Test cases for the fixes applied before conversion."""

    def test_breaks_lists_and_tables_start_new_lines(self):
        """Block tags are moved onto their own lines."""
        assert preprocess("a<br />b<ul><li>x</li></ul>c<table>") == "a<br />\nb\n<ul><li>x</li></ul>c\n<table>"

    def test_closing_anchor_is_padded(self):
        """A space follows every closing anchor."""
        assert preprocess('<a href="x">y</a>z') == '<a href="x">y</a> z'

    def test_customized_replacements_apply_in_order(self):
        """Literal replacements run in configured order."""
        assert replace_customized("{{>toc}} A", {"{{>toc}}": "{{toc}}", "A": "B"}) == "{{toc}} B"

    def test_list_item_end_moves_to_new_line(self):
        """Closing list items get their own line."""
        assert fix_list_items("* one</li>") == "* one\n</li>"


class TestPostConversionFixes:
    """Test cases for the fixes applied after conversion."""

    def test_unescape_markers_at_line_start(self):
        """Escaped list markers at line starts lose their escape."""
        assert unescape_markers("\\# one\n\\* two") == "# one\n* two"

    def test_unescape_markers_in_table_cell(self):
        """A spaced marker in a cell starts a new line, others only lose the escape."""
        assert unescape_markers("| \\* item") == "| \n* item"
        assert unescape_markers("| \\*.jpg") == "| *.jpg"

    def test_injected_heading_is_commented_out(self):
        """A heading on the first lines is turned into a comment."""
        assert comment_out_injected_heading("= Title =\ntext") == "<!--= Title =-->\ntext"
        assert comment_out_injected_heading("text\nmore") == "text\nmore"

    def test_entities_are_decoded(self):
        """Single and double encoded entities are decoded."""
        assert replace_encoded_entities("&lt;b&gt; &amp;lt;i&amp;gt; &quot;q&quot;") == '<b> <i> "q"'

    def test_double_encoded_numeric_entities_lose_one_level(self):
        """Double encoded numeric and named entities become single encoded."""
        assert replace_encoded_entities("&amp;#160; &amp;#x41; &amp;nbsp;") == "&#160; &#x41; &nbsp;"

    def test_collapse_with_title(self):
        """A titled collapse macro becomes a collapsible div with a header."""
        result = replace_collapsed_blocks("{{collapse(Details)\nhidden\n}}")

        assert result == f"{COLLAPSIBLE_OPEN}\nDetails\n{COLLAPSIBLE_CONTENT}\n\nhidden\n\n</div></div>"

    def test_inline_elements(self):
        """Empty anchor spans are dropped and toc macros become __TOC__."""
        content = '<span id="top"></span>\n{{>toc}}\ntext'

        assert replace_inline_elements(content) == "__TOC__\ntext"
