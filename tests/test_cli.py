"""Tests for the command-line front end (the client is faked)."""

from __future__ import annotations

import pytest

from copilotchat import cli
from copilotchat.client import AskResult
from copilotchat.config import Settings
from copilotchat.errors import TransportFailure


class FakeCopilot:
    instances: list["FakeCopilot"] = []

    def __init__(self, settings) -> None:
        self.settings = settings
        self.asked: list[tuple[str, dict]] = []
        self.saved: list[str] = []
        self.loaded: list[str] = []
        self.closed = False
        self.fail = False
        FakeCopilot.instances.append(self)

    def list_models(self):
        return ["gpt-4o", "o1-preview"]

    def ask(self, prompt, **kwargs):
        if self.fail:
            raise TransportFailure(500, "nope")
        self.asked.append((prompt, kwargs))
        return AskResult("answer", 5, 100)

    def stop(self):
        return False

    def load(self, name):
        self.loaded.append(name)
        return []

    def save(self, name):
        self.saved.append(name)

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def fake_client(monkeypatch, tmp_path):
    FakeCopilot.instances.clear()
    monkeypatch.setattr(cli, "Copilot", FakeCopilot)
    monkeypatch.setattr(cli, "load_settings", lambda: Settings(history_dir=str(tmp_path / "history")))


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, (0, 0)), ("3", (3, 3)), ("2:5", (2, 5))],
)
def test_parse_rows(raw, expected):
    assert cli._parse_rows(raw) == expected


def test_selection_slices_rows(tmp_path):
    source = tmp_path / "mod.py"
    source.write_text("one\ntwo\nthree\nfour\n")

    selection, filename, filetype = cli._selection(str(source), (2, 3))

    assert selection == "two\nthree"
    assert filename == str(source)
    assert filetype == "py"


def test_selection_without_rows_is_whole_file(tmp_path):
    source = tmp_path / "notes.md"
    source.write_text("all of it")

    assert cli._selection(str(source), (0, 0))[0] == "all of it"


def test_models_flag_lists_and_exits(capsys):
    assert cli.main(["--models"]) == 0

    out = capsys.readouterr().out
    assert "gpt-4o" in out
    assert "o1-preview" in out
    assert FakeCopilot.instances[0].closed


def test_one_shot_prompt_with_history(tmp_path):
    context = tmp_path / "ctx.py"
    context.write_text("x = 1\n")

    code = cli.main(["explain", "-f", str(context), "--history", "work", "--proxy", "http://p:1"])

    assert code == 0
    copilot = FakeCopilot.instances[0]
    assert copilot.settings.proxy == "http://p:1"
    assert copilot.loaded == ["work"]
    assert copilot.saved == ["work"]
    ((prompt, kwargs),) = copilot.asked
    assert prompt == "explain"
    assert kwargs["embeddings"][0].content == "x = 1\n"
    assert kwargs["system_prompt"] is None


def test_client_errors_exit_nonzero(monkeypatch):
    def failing(settings):
        client = FakeCopilot(settings)
        client.fail = True
        return client

    monkeypatch.setattr(cli, "Copilot", failing)

    assert cli.main(["hello"]) == 1
    assert FakeCopilot.instances[0].closed
