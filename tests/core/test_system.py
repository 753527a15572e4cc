"""Tests for the installed-application catalog."""

from handlr.core.desktop_entry import DesktopEntry
from handlr.core.handler import DesktopHandler
from handlr.core.mime import MimeType
from handlr.core.system import SystemCatalog


class TestPopulate:
    def test_associations(self, apps_dir):
        catalog = SystemCatalog.populate()
        assert catalog.associations[MimeType("video/mp4")] == [DesktopHandler("mpv.desktop")]
        assert catalog.associations[MimeType("text/plain")] == [
            DesktopHandler("helix.desktop"),
            DesktopHandler("nvim.desktop"),
        ]

    def test_unassociated(self, apps_dir):
        catalog = SystemCatalog.populate()
        assert catalog.unassociated == [
            DesktopHandler("calculator.desktop"),
            DesktopHandler("wezterm.desktop"),
        ]

    def test_custom_source(self):
        entries = [
            ("a.desktop", DesktopEntry(name="A", exec="a", mime_types=[MimeType("image/png")])),
            ("b.desktop", DesktopEntry(name="B", exec="b", mime_types=[MimeType("image/png")])),
        ]
        catalog = SystemCatalog.populate(lambda: entries)
        assert catalog.get_handler(MimeType("image/png")) == DesktopHandler("a.desktop")


class TestLookup:
    def test_primary_handler(self, apps_dir):
        catalog = SystemCatalog.populate()
        assert catalog.get_handler(MimeType("text/plain")) == DesktopHandler("helix.desktop")

    def test_no_handler(self, apps_dir):
        assert SystemCatalog.populate().get_handler(MimeType("image/png")) is None

    def test_terminal_emulator(self, apps_dir):
        handler, entry = SystemCatalog.populate().terminal_emulator()
        assert handler == DesktopHandler("wezterm.desktop")
        assert entry.exec == "wezterm start --cwd ."

    def test_no_terminal_emulator(self, apps_dir):
        (apps_dir / "wezterm.desktop").unlink()
        assert SystemCatalog.populate().terminal_emulator() is None

    def test_vanished_entry_skipped(self, apps_dir):
        catalog = SystemCatalog(
            unassociated=[DesktopHandler("gone.desktop"), DesktopHandler("wezterm.desktop")]
        )
        handler, _ = catalog.terminal_emulator()
        assert handler == DesktopHandler("wezterm.desktop")
