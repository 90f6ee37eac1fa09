"""Tests for file_handler.py — metadata document access."""

import json

import pytest

from frame_sync.file_handler import (
    MetadataStore,
    decode_bytes,
    empty_document,
    parse_document,
)


class TestDecodeBytes:
    def test_empty(self):
        assert decode_bytes(b"") == ""

    def test_utf8(self):
        text = '{"images": {"café.jpg": {}}}'
        assert decode_bytes(text.encode("utf-8")) == text


class TestParseDocument:
    @pytest.mark.parametrize("text", [None, "", "  \n"])
    def test_blank_is_empty_document(self, text):
        assert parse_document(text) == empty_document()

    def test_object(self):
        assert parse_document('{"images": {"a.jpg": {"tags": ["x"]}}}') == {
            "images": {"a.jpg": {"tags": ["x"]}}
        }

    def test_non_object_rejected(self):
        with pytest.raises(ValueError, match="must be a JSON object"):
            parse_document("[1, 2]")

    def test_invalid_json(self):
        with pytest.raises(ValueError):
            parse_document("<<<<<<< HEAD")


class TestMetadataStore:
    def test_read_missing_file(self, tmp_path):
        assert MetadataStore(tmp_path).read() == empty_document()

    def test_write_then_read(self, tmp_path):
        store = MetadataStore(tmp_path)
        doc = {"version": "1.0", "images": {"sunset.jpg": {"matte": "none"}}, "tvs": [], "tags": []}

        store.write(doc)

        assert store.read() == doc
        text = (tmp_path / "metadata.json").read_text(encoding="utf-8")
        assert text.endswith("}\n")
        assert text == json.dumps(doc, indent=2) + "\n"

    def test_write_leaves_no_temp_files(self, tmp_path):
        store = MetadataStore(tmp_path)
        store.write(empty_document())
        assert [p.name for p in tmp_path.iterdir()] == ["metadata.json"]

    def test_ensure_layout_creates_missing(self, tmp_path):
        store = MetadataStore(tmp_path)

        created = store.ensure_layout("library", "thumbs")

        assert created == ["library", "thumbs", "metadata.json"]
        assert (tmp_path / "library").is_dir()
        assert (tmp_path / "thumbs").is_dir()
        assert store.read() == empty_document()

    def test_ensure_layout_idempotent(self, tmp_path):
        store = MetadataStore(tmp_path)
        store.ensure_layout("library", "thumbs")
        store.write({"version": "1.0", "images": {"a.jpg": {}}, "tvs": [], "tags": []})

        assert store.ensure_layout("library", "thumbs") == []
        assert "a.jpg" in store.read()["images"]
