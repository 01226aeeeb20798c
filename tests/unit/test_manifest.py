"""Unit tests for batch manifest parsing."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from imggen.errors import ManifestEmptyError, ManifestError
from imggen.manifest import parse_file, parse_json, parse_text


class TestParseText:
    """Tests for plain-text manifests."""

    def test_one_prompt_per_line(self) -> None:
        items = parse_text("a sunset\na cat\n")
        assert [(i.index, i.prompt) for i in items] == [(1, "a sunset"), (2, "a cat")]

    def test_skips_blank_lines_and_comments(self) -> None:
        content = "# header\n\n  first prompt  \n   \n# another comment\nsecond\n"
        items = parse_text(content)
        assert [i.prompt for i in items] == ["first prompt", "second"]
        assert [i.index for i in items] == [1, 2]

    def test_no_overrides(self) -> None:
        item = parse_text("prompt")[0]
        assert (item.model, item.size, item.quality, item.style) == ("", "", "", "")

    def test_windows_line_endings(self) -> None:
        assert [i.prompt for i in parse_text("one\r\ntwo\r\n")] == ["one", "two"]

    @pytest.mark.parametrize("content", ["", "\n\n", "# only a comment\n"])
    def test_empty_raises(self, content: str) -> None:
        with pytest.raises(ManifestEmptyError, match="no prompts"):
            parse_text(content)


class TestParseJson:
    """Tests for JSON manifests."""

    def test_prompts_with_overrides(self) -> None:
        content = json.dumps(
            [
                {"prompt": "wide shot", "model": "dall-e-3", "size": "1792x1024"},
                {"prompt": "portrait", "quality": "hd", "style": "natural"},
            ]
        )
        items = parse_json(content)

        assert items[0].index == 1
        assert items[0].model == "dall-e-3"
        assert items[0].size == "1792x1024"
        assert items[0].quality == ""
        assert items[1].index == 2
        assert items[1].quality == "hd"
        assert items[1].style == "natural"

    def test_null_overrides_become_empty(self) -> None:
        items = parse_json('[{"prompt": "x", "model": null}]')
        assert items[0].model == ""

    def test_invalid_json(self) -> None:
        with pytest.raises(ManifestError, match="failed to parse JSON"):
            parse_json("[{not json")

    def test_not_an_array(self) -> None:
        with pytest.raises(ManifestError, match="expected an array"):
            parse_json('{"prompt": "x"}')

    def test_empty_array(self) -> None:
        with pytest.raises(ManifestEmptyError):
            parse_json("[]")

    def test_item_not_object(self) -> None:
        with pytest.raises(ManifestError, match="item 2 is not an object"):
            parse_json('[{"prompt": "ok"}, "bare string"]')

    @pytest.mark.parametrize("entry", ['{"prompt": ""}', '{"prompt": "   "}', "{}"])
    def test_blank_prompt_names_item(self, entry: str) -> None:
        with pytest.raises(ManifestError, match="item 2 has empty prompt"):
            parse_json(f'[{{"prompt": "ok"}}, {entry}]')


class TestParseFile:
    """Tests for parse_file format detection."""

    def test_txt(self, tmp_path: Path) -> None:
        path = tmp_path / "prompts.txt"
        path.write_text("one\ntwo\n", encoding="utf-8")
        assert len(parse_file(path)) == 2

    def test_no_extension_is_text(self, tmp_path: Path) -> None:
        path = tmp_path / "prompts"
        path.write_text("one\n", encoding="utf-8")
        assert parse_file(path)[0].prompt == "one"

    def test_json_case_insensitive_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "prompts.JSON"
        path.write_text('[{"prompt": "one"}]', encoding="utf-8")
        assert parse_file(str(path))[0].prompt == "one"

    def test_unsupported_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "prompts.csv"
        path.write_text("one\n", encoding="utf-8")
        with pytest.raises(ManifestError, match="unsupported file format"):
            parse_file(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestError, match="failed to open file"):
            parse_file(tmp_path / "missing.txt")
