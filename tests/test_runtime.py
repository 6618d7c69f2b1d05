"""Tests for the terminal runtime (cli/runtime.py).

The runtime is driven with a fake state machine and a fake
prompt_toolkit input, so no terminal is needed.
"""

from __future__ import annotations

import asyncio
import contextlib
import io
from collections.abc import Callable, Iterator
from types import SimpleNamespace
from typing import Any

import pytest
from rich.console import Console
from rich.text import Text

from ingresso_finder.cli.runtime import TerminalRuntime, translate_key
from ingresso_finder.core.messages import Key, KeyPressed, Message, Resized


class _Machine:
    """Records messages; quits on ``q`` and answers keys with *commands*."""

    def __init__(self, commands: list[Any] | None = None) -> None:
        self.quit_requested = False
        self.seen: list[Message] = []
        self.commands = commands or []

    def start(self) -> list[Any]:
        return []

    def update(self, msg: Message) -> list[Any]:
        self.seen.append(msg)
        if isinstance(msg, KeyPressed):
            if msg.key.is_rune("q"):
                self.quit_requested = True
                return []
            commands, self.commands = self.commands, []
            return commands
        if isinstance(msg, Resized) and msg.width == 1:
            self.quit_requested = True
        return []


class _FakeInput:
    def __init__(self, presses: list[Any]) -> None:
        self._presses = presses

    def raw_mode(self) -> contextlib.AbstractContextManager[None]:
        return contextlib.nullcontext()

    @contextlib.contextmanager
    def attach(self, callback: Callable[[], None]) -> Iterator[None]:
        asyncio.get_running_loop().call_soon(callback)
        yield

    def read_keys(self) -> list[Any]:
        presses, self._presses = self._presses, []
        return presses

    def flush_keys(self) -> list[Any]:
        return []


# ---------------------------------------------------------------------------
# Key translation
# ---------------------------------------------------------------------------

class TestTranslateKey:
    @pytest.mark.parametrize(
        ("key", "data", "expected"),
        [
            ("c-m", "\r", Key("enter")),
            ("escape", "\x1b", Key("esc")),
            ("c-i", "\t", Key("tab")),
            ("c-h", "\x7f", Key("backspace")),
            ("pagedown", "", Key("pgdown")),
            ("c-f", "\x06", Key("ctrl+f")),
            (" ", " ", Key("space")),
            ("a", "a", Key("rune", "a")),
            ("<any>", "é", Key("rune", "é")),
        ],
    )
    def test_mapped(self, key: str, data: str, expected: Key) -> None:
        assert translate_key(key, data) == expected

    def test_enum_values_are_unwrapped(self) -> None:
        assert translate_key(SimpleNamespace(value="up"), "") == Key("up")

    @pytest.mark.parametrize(("key", "data"), [("c-z", "\x1a"), ("<any>", "\x00"), ("f5", "")])
    def test_ignored(self, key: str, data: str) -> None:
        assert translate_key(key, data) is None


# ---------------------------------------------------------------------------
# Message loop
# ---------------------------------------------------------------------------

class TestProcess:
    def test_command_results_are_fed_back(self) -> None:
        async def resize() -> Message:
            return Resized(1, 1)

        machine = _Machine([resize])
        frames: list[int] = []

        async def scenario() -> None:
            runtime = TerminalRuntime(machine)  # type: ignore[arg-type]
            runtime.post(KeyPressed(Key("enter")))
            await runtime.process(lambda: frames.append(1))

        asyncio.run(scenario())
        assert machine.seen == [KeyPressed(Key("enter")), Resized(1, 1)]
        assert len(frames) == 2

    def test_crashing_command_surfaces(self) -> None:
        async def boom() -> Message:
            raise RuntimeError("bug")

        machine = _Machine([boom])

        async def scenario() -> None:
            runtime = TerminalRuntime(machine)  # type: ignore[arg-type]
            runtime.post(KeyPressed(Key("enter")))
            await runtime.process()

        with pytest.raises(RuntimeError, match="bug"):
            asyncio.run(scenario())

    def test_cancel_all_stops_pending_commands(self) -> None:
        started = []

        async def slow() -> Message:
            started.append(1)
            await asyncio.sleep(10)
            return Resized(1, 1)

        async def scenario() -> None:
            runtime = TerminalRuntime(_Machine())  # type: ignore[arg-type]
            runtime.schedule([slow, slow])
            await asyncio.sleep(0)
            assert runtime.pending == 2
            await runtime.cancel_all()
            assert runtime.pending == 0

        asyncio.run(scenario())
        assert len(started) == 2


class TestRun:
    def test_run_until_quit(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("ingresso_finder.cli.render.render", lambda machine: Text("frame"))
        machine = _Machine()
        console = Console(file=io.StringIO(), width=80, height=24)
        fake_input = _FakeInput([SimpleNamespace(key="q", data="q")])
        runtime = TerminalRuntime(machine, console=console, input_factory=lambda: fake_input)  # type: ignore[arg-type]

        asyncio.run(runtime.run())

        assert machine.seen == [Resized(80, 24), KeyPressed(Key("rune", "q"))]
        assert runtime.pending == 0
