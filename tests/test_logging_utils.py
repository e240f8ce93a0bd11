from __future__ import annotations

from streamshelf.logging_utils import _stringify, render_fields_block


class TestStringify:
    """Tests for _stringify helper function."""

    def test_none(self):
        assert _stringify(None) == ""

    def test_string_is_stripped(self):
        assert _stringify("  hello  ") == "hello"

    def test_sequences_are_joined(self):
        assert _stringify([1, 2, 3]) == "1, 2, 3"
        assert _stringify(("a", "b")) == "a, b"

    def test_float_has_two_decimals(self):
        assert _stringify(0.8571) == "0.86"


class TestRenderFieldsBlock:
    """Tests for render_fields_block."""

    def test_title_and_underline(self):
        block = render_fields_block("Catalog Sync Complete", {"Outcome": "success"})
        lines = block.splitlines()

        assert lines[0] == ""
        assert lines[1] == "Catalog Sync Complete"
        assert lines[2] == "-" * len("Catalog Sync Complete")
        assert "Outcome" in lines[3]
        assert lines[3].endswith(": success")

    def test_without_padding(self):
        block = render_fields_block("Title", [("Key", 1)], pad_top=False)
        assert block.splitlines()[0] == "Title"

    def test_labels_are_aligned(self):
        block = render_fields_block("T", {"A": 1, "Longer": 2}, pad_top=False)
        first, second = block.splitlines()[2:]

        assert first.index(":") == second.index(":")

    def test_long_values_wrap(self):
        block = render_fields_block("T", {"Key": "word " * 60}, pad_top=False)
        assert len(block.splitlines()) > 3
