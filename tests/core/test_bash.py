"""Tests for command splitting."""

import pytest

from handlr.core.bash import split_command, split_words


@pytest.mark.parametrize(
    "command,expected",
    [
        ("mpv video.mp4", ["mpv", "video.mp4"]),
        ("  alacritty -e hx notes.txt  ", ["alacritty", "-e", "hx", "notes.txt"]),
        ('rofi -dmenu -i -p "Open With: "', ["rofi", "-dmenu", "-i", "-p", "Open With: "]),
        ("rofi -dmenu -i -p 'Open With: '", ["rofi", "-dmenu", "-i", "-p", "Open With: "]),
        ("mpv --player-operation-mode=pseudo-gui -- a.mp4", ["mpv", "--player-operation-mode=pseudo-gui", "--", "a.mp4"]),
    ],
)
def test_simple_commands(command, expected):
    assert split_command(command) == expected


@pytest.mark.parametrize(
    "command",
    [
        "fzf | head -1",
        "cd /tmp && ls",
        "foo > out.txt",
        "FOO=bar baz",
        "mpv $MPV_FLAGS",
        "echo $(date)",
    ],
)
def test_shell_constructs_use_sh(command):
    assert split_command(command) == ["sh", "-c", command]


def test_unparseable_uses_sh():
    assert split_command("echo 'unterminated") == ["sh", "-c", "echo 'unterminated"]


def test_empty():
    assert split_command("   ") == []


class TestSplitWords:
    def test_simple(self):
        assert split_words("hx %F") == ["hx", "%F"]

    def test_quoted_field_code_stays_one_word(self):
        assert split_words("bash -c 'cmus-remote -q %u'") == ["bash", "-c", "cmus-remote -q %u"]

    @pytest.mark.parametrize("command", ["a; b", "a && b", "a | b", "cat < x", "echo 'open"])
    def test_needs_shell(self, command):
        assert split_words(command) is None

    def test_empty(self):
        assert split_words("") == []
