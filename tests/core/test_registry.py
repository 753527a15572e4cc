"""Tests for mimeapps.list parsing, editing and persistence."""

from handlr.core.handler import DesktopHandler
from handlr.core.mime import MimeType
from handlr.core.registry import (
    MimeRegistry,
    load_registry,
    parse_registry,
    serialize_registry,
)

MPV = DesktopHandler("mpv.desktop")
VLC = DesktopHandler("vlc.desktop")
HELIX = DesktopHandler("helix.desktop")

SAMPLE = """\
[Default Applications]
video/mp4=mpv.desktop;vlc.desktop;
text/plain=helix.desktop;

[Added Associations]
x-scheme-handler/terminal=wezterm.desktop;
"""


class TestParse:
    def test_sections(self):
        registry = parse_registry(SAMPLE)
        assert registry.default_apps == {
            MimeType("video/mp4"): [MPV, VLC],
            MimeType("text/plain"): [HELIX],
        }
        assert registry.added_associations == {
            MimeType("x-scheme-handler/terminal"): [DesktopHandler("wezterm.desktop")],
        }

    def test_missing_trailing_semicolon(self):
        registry = parse_registry("[Default Applications]\ntext/plain=helix.desktop\n")
        assert registry.default_apps[MimeType("text/plain")] == [HELIX]

    def test_duplicates_collapse(self):
        registry = parse_registry("[Default Applications]\nvideo/mp4=mpv.desktop;vlc.desktop;mpv.desktop;\n")
        assert registry.default_apps[MimeType("video/mp4")] == [MPV, VLC]

    def test_empty_list_dropped(self):
        registry = parse_registry("[Default Applications]\nvideo/mp4=;\n")
        assert registry.default_apps == {}

    def test_comments_and_junk_skipped(self):
        text = """\
# user file
[Default Applications]
not a line
bogus=mpv.desktop;
video/mp4 = mpv.desktop;
"""
        registry = parse_registry(text)
        assert registry.default_apps == {MimeType("video/mp4"): [MPV]}

    def test_unknown_section_ignored(self):
        text = "[Removed Associations]\nvideo/mp4=vlc.desktop;\n[Default Applications]\nvideo/mp4=mpv.desktop;\n"
        registry = parse_registry(text)
        assert registry.default_apps == {MimeType("video/mp4"): [MPV]}
        assert registry.added_associations == {}

    def test_keys_normalized(self):
        registry = parse_registry("[Default Applications]\nVideo/MP4=mpv.desktop;\n")
        assert MimeType("video/mp4") in registry.default_apps

    def test_empty_text(self):
        assert parse_registry("") == MimeRegistry()


class TestSerialize:
    def test_layout(self):
        registry = MimeRegistry()
        registry.set_handler(MimeType("video/mp4"), MPV)
        registry.add_handler(MimeType("video/mp4"), VLC)
        registry.set_handler(MimeType("text/plain"), HELIX)
        registry.add_association(MimeType("x-scheme-handler/terminal"), DesktopHandler("wezterm.desktop"))
        assert serialize_registry(registry) == (
            "[Added Associations]\n"
            "x-scheme-handler/terminal=wezterm.desktop;\n"
            "\n"
            "[Default Applications]\n"
            "text/plain=helix.desktop;\n"
            "video/mp4=mpv.desktop;vlc.desktop;\n"
        )

    def test_empty_registry(self):
        assert serialize_registry(MimeRegistry()) == "[Added Associations]\n\n[Default Applications]\n"

    def test_reparse_is_identical(self):
        registry = parse_registry(SAMPLE)
        assert parse_registry(serialize_registry(registry)) == registry


class TestEditing:
    def test_add_keeps_primary(self):
        registry = MimeRegistry()
        registry.add_handler(MimeType("video/mp4"), MPV)
        registry.add_handler(MimeType("video/mp4"), VLC)
        assert registry.default_apps[MimeType("video/mp4")][0] == MPV

    def test_add_twice_is_noop(self):
        registry = MimeRegistry()
        registry.add_handler(MimeType("video/mp4"), MPV)
        registry.add_handler(MimeType("video/mp4"), MPV)
        assert registry.default_apps[MimeType("video/mp4")] == [MPV]

    def test_set_replaces_list(self):
        registry = parse_registry(SAMPLE)
        registry.set_handler(MimeType("video/mp4"), VLC)
        assert registry.default_apps[MimeType("video/mp4")] == [VLC]

    def test_unset(self):
        registry = parse_registry(SAMPLE)
        assert registry.unset_handler(MimeType("video/mp4"))
        assert MimeType("video/mp4") not in registry.default_apps
        assert not registry.unset_handler(MimeType("video/mp4"))

    def test_unset_leaves_added_associations(self):
        registry = parse_registry(SAMPLE)
        registry.unset_handler(MimeType("x-scheme-handler/terminal"))
        assert MimeType("x-scheme-handler/terminal") in registry.added_associations

    def test_remove_promotes_next(self):
        registry = parse_registry(SAMPLE)
        assert registry.remove_handler(MimeType("video/mp4"), MPV)
        assert registry.default_apps[MimeType("video/mp4")] == [VLC]

    def test_remove_last_drops_key(self):
        registry = parse_registry(SAMPLE)
        assert registry.remove_handler(MimeType("text/plain"), HELIX)
        assert MimeType("text/plain") not in registry.default_apps

    def test_remove_absent(self):
        registry = parse_registry(SAMPLE)
        assert not registry.remove_handler(MimeType("text/plain"), MPV)
        assert not registry.remove_handler(MimeType("image/png"), MPV)


class TestPersistence:
    def test_missing_file_is_empty(self, tmp_path):
        registry = load_registry(tmp_path / "nope.list")
        assert registry.default_apps == {}
        assert registry.path == tmp_path / "nope.list"

    def test_save_creates_parent(self, tmp_path):
        path = tmp_path / "config" / "mimeapps.list"
        registry = MimeRegistry(path=path)
        registry.set_handler(MimeType("video/mp4"), MPV)
        registry.save()
        assert path.read_text() == "[Added Associations]\n\n[Default Applications]\nvideo/mp4=mpv.desktop;\n"

    def test_load_after_save(self, tmp_path):
        path = tmp_path / "mimeapps.list"
        registry = parse_registry(SAMPLE, path=path)
        registry.save()
        assert load_registry(path) == registry

    def test_default_path(self, registry_path):
        registry_path.parent.mkdir(parents=True)
        registry_path.write_text(SAMPLE)
        assert load_registry().default_apps[MimeType("text/plain")] == [HELIX]
