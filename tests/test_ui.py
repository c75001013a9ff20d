# tests/test_ui.py
from __future__ import annotations

import contextlib
import importlib
import os
from pathlib import Path

import pytest

prompt_toolkit = pytest.importorskip("prompt_toolkit")

from prompt_toolkit.document import Document  # noqa: E402

from gosh_cli.config import ShellConfig  # noqa: E402
from gosh_cli.kernel import Kernel  # noqa: E402


class FakeExecutor:
    interactive_commands: set[str] = set()

    def is_interactive(self, tokens):
        return False

    def run(self, tokens):
        raise AssertionError("UI tests never run commands")


def make_kernel() -> Kernel:
    k = Kernel(
        config=ShellConfig(aliases={"ll": "ls -la", "gs": "git status"}),
        executor=FakeExecutor(),
    )
    k.start()
    return k


def texts(completions) -> list[str]:
    return [c.text for c in completions]


# -------------------------------------------------------------------
# PromptToolkitUI surface
# -------------------------------------------------------------------


def test_prompt_toolkit_ui_contract_surface() -> None:
    ui = importlib.import_module("gosh_cli.ui")

    inst = ui.PromptToolkitUI()

    assert callable(getattr(inst, "read", None))
    assert callable(getattr(inst, "read_line", None))
    assert callable(getattr(inst, "write", None))
    assert callable(getattr(inst, "build_key_bindings", None))


def _ctrl_l_handler(kb):
    for binding in kb.bindings:
        keys = [getattr(key, "value", key) for key in binding.keys]
        if "c-l" in keys:
            return binding.handler
    return None


def test_ctrl_l_handler_clears_and_invalidates() -> None:
    ui = importlib.import_module("gosh_cli.ui")
    kb = ui.PromptToolkitUI(kernel=make_kernel()).build_key_bindings()

    handler = _ctrl_l_handler(kb)
    assert handler is not None, "Ctrl+L handler not found"

    calls = {"clear": 0, "invalidate": 0}

    class Renderer:
        def clear(self):
            calls["clear"] += 1

    class App:
        renderer = Renderer()

        def invalidate(self):
            calls["invalidate"] += 1

    class Event:
        app = App()

    handler(Event())

    assert calls == {"clear": 1, "invalidate": 1}


def test_ui_write_noops_on_empty(monkeypatch: pytest.MonkeyPatch) -> None:
    ui = importlib.import_module("gosh_cli.ui")
    called = {"print": 0}

    def fake_print_formatted_text(*args, **kwargs):
        called["print"] += 1

    monkeypatch.setattr(
        ui, "print_formatted_text", fake_print_formatted_text, raising=True
    )

    inst = ui.PromptToolkitUI()
    inst.write("")
    inst.write(None)  # type: ignore[arg-type]
    assert called["print"] == 0


def test_ui_write_wraps_ansi_and_tracks_newline(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    ui = importlib.import_module("gosh_cli.ui")
    seen: list = []

    def fake_print_formatted_text(arg, **kwargs):
        seen.append((arg, kwargs.get("end")))

    monkeypatch.setattr(
        ui, "print_formatted_text", fake_print_formatted_text, raising=True
    )

    inst = ui.PromptToolkitUI()
    inst.write("\033[31mRED\033[0m")

    assert seen[0][0].__class__.__name__ == "ANSI"
    assert seen[0][1] == ""
    assert inst._needs_newline_before_prompt is True

    inst.write("done\n")
    assert inst._needs_newline_before_prompt is False


class FakeSession:
    """Stands in for PromptSession; records construction and prompts."""

    created: dict = {}

    def __init__(self, **kwargs):
        FakeSession.created = kwargs
        self.prompts: list = []
        self.replies: list = ["  hello  "]

        class Buffer:
            text = ""

        self.default_buffer = Buffer()

    def prompt(self, arg):
        self.prompts.append(arg)
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def fake_session(monkeypatch: pytest.MonkeyPatch):
    ui = importlib.import_module("gosh_cli.ui")
    monkeypatch.setattr(ui, "PromptSession", FakeSession, raising=True)
    monkeypatch.setattr(ui, "patch_stdout", contextlib.nullcontext)
    return ui


def test_read_creates_session_once_with_history(fake_session) -> None:
    ui = fake_session
    inst = ui.PromptToolkitUI(
        kernel=make_kernel(), history_entries=["ls", "cd /tmp"]
    )

    assert inst.read("gosh> ") == "  hello  "
    session = inst.session
    session.replies.append("again")
    assert inst.read("gosh> ") == "again"

    assert inst.session is session
    created = FakeSession.created
    assert created["history"].get_strings() == ["ls", "cd /tmp"]
    assert isinstance(created["completer"], ui.GoshCompleter)
    assert created["key_bindings"] is not None
    assert session.prompts[0].__class__.__name__ == "ANSI"


def test_read_line_trims_input(fake_session) -> None:
    inst = fake_session.PromptToolkitUI()
    assert inst.read_line("> ") == ("hello", True)


@pytest.mark.parametrize(
    "error, expected",
    [(KeyboardInterrupt(), (None, True)), (EOFError(), ("", False))],
)
def test_read_line_interrupt_and_eof(fake_session, error, expected) -> None:
    inst = fake_session.PromptToolkitUI()
    inst.read("> ")  # builds the session
    inst.session.replies.append(error)

    assert inst.read_line("> ") == expected


def test_bottom_toolbar_previews_alias(fake_session) -> None:
    inst = fake_session.PromptToolkitUI(kernel=make_kernel())
    inst.read("> ")

    inst.session.default_buffer.text = "ll /tmp"
    tokens = inst._bottom_toolbar()
    assert any("ll → ls -la" in text for _style, text in tokens)

    inst.session.default_buffer.text = "echo hi"
    assert inst._bottom_toolbar() is None


def test_bottom_toolbar_without_kernel(fake_session) -> None:
    inst = fake_session.PromptToolkitUI()
    inst.read("> ")
    inst.session.default_buffer.text = "ll"
    assert inst._bottom_toolbar() is None


# -------------------------------------------------------------------
# Completers
# -------------------------------------------------------------------


@pytest.fixture
def bin_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    d = tmp_path / "bin"
    d.mkdir()
    for name in ("lsblk", "gsutil"):
        exe = d / name
        exe.write_text("#!/bin/sh\n", encoding="utf-8")
        exe.chmod(0o755)
    (d / "notes.txt").write_text("not executable", encoding="utf-8")
    monkeypatch.setenv("PATH", str(d))
    return d


def test_exe_completer_loads_path_executables(bin_dir: Path) -> None:
    ui = importlib.import_module("gosh_cli.ui")

    exes = ui.ExecutableCompleter().load()

    assert exes == {"lsblk", "gsutil"}


def test_exe_completer_caches_per_path(
    bin_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    ui = importlib.import_module("gosh_cli.ui")
    completer = ui.ExecutableCompleter()
    first = completer.load()

    (bin_dir / "newtool").write_text("", encoding="utf-8")
    (bin_dir / "newtool").chmod(0o755)
    assert completer.load() is first

    monkeypatch.setenv("PATH", str(bin_dir) + os.pathsep)
    assert "newtool" in completer.load()


def test_exe_completer_only_completes_first_token(bin_dir: Path) -> None:
    ui = importlib.import_module("gosh_cli.ui")
    completer = ui.ExecutableCompleter()

    assert texts(completer.get_completions(Document("ls"), None)) == ["lsblk"]
    assert texts(completer.get_completions(Document("cat ls"), None)) == []


def test_gosh_completer_first_token(bin_dir: Path) -> None:
    ui = importlib.import_module("gosh_cli.ui")
    completer = ui.GoshCompleter(make_kernel())

    completions = list(completer.get_completions(Document("l"), None))
    assert texts(completions) == ["ll", "lsblk"]
    assert completions[0].display_meta_text == "ls -la"
    assert completions[0].start_position == -1

    builtin = list(completer.get_completions(Document("una"), None))
    assert texts(builtin) == ["unalias"]
    assert builtin[0].display_meta_text == "builtin"

    # an alias that also exists on PATH is offered once
    assert texts(completer.get_completions(Document("gs"), None)) == [
        "gs",
        "gsutil",
    ]


def test_gosh_completer_without_kernel(bin_dir: Path) -> None:
    ui = importlib.import_module("gosh_cli.ui")
    completer = ui.GoshCompleter(None)

    assert texts(completer.get_completions(Document("ls"), None)) == ["lsblk"]
    assert texts(completer.get_completions(Document(""), None)) == []


@pytest.fixture
def tree(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    root = tmp_path / "tree"
    root.mkdir()
    (root / "file1.txt").touch()
    (root / "file2.py").touch()
    (root / "subdir").mkdir()
    (root / ".hidden").touch()
    monkeypatch.chdir(root)
    return root


def test_gosh_completer_completes_paths_after_command(tree: Path) -> None:
    ui = importlib.import_module("gosh_cli.ui")
    completer = ui.GoshCompleter(make_kernel())

    got = texts(completer.get_completions(Document("cat f"), None))
    assert got == ["file1.txt", "file2.py"]

    got = texts(completer.get_completions(Document("cd s"), None))
    assert got == ["subdir/"]


def test_path_completer_hides_dotfiles_unless_asked(tree: Path) -> None:
    ui = importlib.import_module("gosh_cli.ui")
    completer = ui.PathCompleter()

    everything = texts(completer.get_completions(Document("ls "), None))
    assert ".hidden" not in everything
    assert "file1.txt" in everything

    dotted = texts(completer.get_completions(Document("ls .h"), None))
    assert dotted == [".hidden"]


def test_path_completer_keeps_directory_prefix(tree: Path) -> None:
    ui = importlib.import_module("gosh_cli.ui")
    (tree / "subdir" / "inner.txt").touch()
    completer = ui.PathCompleter()

    assert texts(completer.get_completions(Document("cat subdir/"), None)) == [
        "subdir/inner.txt"
    ]
    assert texts(completer.get_completions(Document("cat subdir/in"), None)) == [
        "subdir/inner.txt"
    ]


def test_path_completer_expands_tilde(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    ui = importlib.import_module("gosh_cli.ui")
    home = tmp_path / "home"
    home.mkdir()
    (home / "test.txt").touch()
    monkeypatch.setenv("HOME", str(home))

    got = texts(ui.PathCompleter().get_completions(Document("cat ~/te"), None))

    assert got == ["~/test.txt"]


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", None),
        ("cat", None),
        ("cat ", ""),
        ("cat a b", "b"),
        ("  cat x", "x"),
    ],
)
def test_current_arg_token(text: str, expected) -> None:
    ui = importlib.import_module("gosh_cli.ui")
    assert ui.PathCompleter().current_arg_token(text) == expected


# -------------------------------------------------------------------
# StdIOReader
# -------------------------------------------------------------------


def test_stdio_reader_trims_and_writes() -> None:
    ui = importlib.import_module("gosh_cli.ui")
    written: list[str] = []
    reader = ui.StdIOReader(
        input_fn=lambda prompt: "  ls -la ", output_fn=written.append
    )

    assert reader.read_line("> ") == ("ls -la", True)
    reader.write("")
    reader.write("out\n")
    assert written == ["out\n"]


def test_stdio_reader_interrupt_discards_line() -> None:
    ui = importlib.import_module("gosh_cli.ui")
    written: list[str] = []

    def interrupted(prompt):
        raise KeyboardInterrupt

    reader = ui.StdIOReader(input_fn=interrupted, output_fn=written.append)

    assert reader.read_line("> ") == (None, True)
    assert written == ["\n"]


def test_stdio_reader_eof_ends_input() -> None:
    ui = importlib.import_module("gosh_cli.ui")

    def eof(prompt):
        raise EOFError

    assert ui.StdIOReader(input_fn=eof).read_line("> ") == ("", False)
