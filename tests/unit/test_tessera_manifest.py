"""Tests for tessera.toml loading."""

from pathlib import Path

import pytest

from tessera.core.manifest import (
    MANIFEST_FILENAME,
    LayoutConfig,
    TesseraManifest,
    find_manifest,
    load_manifest,
)


def write_manifest(directory: Path, content: str) -> Path:
    path = directory / MANIFEST_FILENAME
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadManifest:
    def test_defaults(self):
        manifest = TesseraManifest()
        assert manifest.layout == LayoutConfig(inline_batch_size=3, default_fields_layout="stacked")
        assert manifest.index.page_size == 20
        assert manifest.routes.link_prefix == ""
        assert manifest.templates.directory is None
        assert manifest.path is None

    def test_empty_file_gives_defaults(self, tmp_path):
        manifest = load_manifest(write_manifest(tmp_path, ""))
        assert manifest.layout.inline_batch_size == 3
        assert manifest.path == tmp_path / MANIFEST_FILENAME

    def test_all_sections(self, tmp_path):
        path = write_manifest(
            tmp_path,
            """
[layout]
inline_batch_size = 2
default_fields_layout = "inline"

[index]
page_size = 50

[routes]
link_prefix = "/admin/"

[templates]
directory = "templates"
""",
        )
        manifest = load_manifest(path)

        assert manifest.layout.inline_batch_size == 2
        assert manifest.layout.default_fields_layout == "inline"
        assert manifest.index.page_size == 50
        assert manifest.routes.link_prefix == "/admin"
        assert manifest.templates.directory == tmp_path / "templates"

    @pytest.mark.parametrize(
        ("content", "message"),
        [
            ("[layout]\ninline_batch_size = 0\n", "inline_batch_size"),
            ('[layout]\ndefault_fields_layout = "grid"\n', "default_fields_layout"),
            ("[index]\npage_size = -1\n", "page_size"),
        ],
    )
    def test_invalid_values(self, tmp_path, content, message):
        path = write_manifest(tmp_path, content)
        with pytest.raises(ValueError, match=message):
            load_manifest(path)


class TestFindManifest:
    def test_walks_up_to_manifest(self, tmp_path):
        write_manifest(tmp_path, "[index]\npage_size = 5\n")
        nested = tmp_path / "app" / "views"
        nested.mkdir(parents=True)

        manifest = find_manifest(nested)
        assert manifest.index.page_size == 5
        assert manifest.path == (tmp_path / MANIFEST_FILENAME).resolve()

    def test_defaults_without_manifest(self, tmp_path):
        manifest = find_manifest(tmp_path)
        # tmp_path has no manifest, but a parent directory could
        if manifest.path is None:
            assert manifest == TesseraManifest()
        else:
            assert manifest.path.parent != tmp_path
