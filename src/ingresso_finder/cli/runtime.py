"""Terminal runtime: raw keys in, Rich frames out.

:class:`TerminalRuntime` owns the asyncio side of the TUI.  It reads
raw key presses through prompt_toolkit's input layer, turns them into
:class:`~ingresso_finder.core.messages.Key` messages and drives the
:class:`~ingresso_finder.core.navigation.NavigationStateMachine`:

* every message (key, resize or background result) goes through one
  queue with a single consumer, so state is only touched by one
  coroutine;
* every command returned by ``update`` runs as its own task and puts
  exactly one result on the queue;
* quitting cancels every task still in flight.

Like the rest of the CLI layer, the UI libraries are imported lazily so
that a missing dependency surfaces as
:class:`~ingresso_finder.exceptions.EnvironmentError`.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Callable, Iterable
from typing import Any

from ingresso_finder.cli.console import get_rich_console
from ingresso_finder.core.messages import Command, Key, KeyPressed, Message, Resized
from ingresso_finder.core.navigation import NavigationStateMachine
from ingresso_finder.exceptions import EnvironmentError

logger = logging.getLogger(__name__)

ESCAPE_FLUSH_SECONDS = 0.05
REFRESH_PER_SECOND = 12

_KEY_NAMES = {
    "c-m": "enter",
    "c-j": "enter",
    "escape": "esc",
    "c-i": "tab",
    "c-h": "backspace",
    "up": "up",
    "down": "down",
    "pageup": "pgup",
    "pagedown": "pgdown",
    "home": "home",
    "end": "end",
    "delete": "delete",
    "c-c": "ctrl+c",
    "c-d": "ctrl+d",
    "c-f": "ctrl+f",
    "c-l": "ctrl+l",
    "c-t": "ctrl+t",
}


def _import_prompt_toolkit_input() -> Callable[[], Any]:
    """Import ``prompt_toolkit.input.create_input`` lazily."""
    try:
        from prompt_toolkit.input import create_input
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "prompt_toolkit is not installed. Install with: pip install prompt_toolkit",
        ) from exc
    return create_input


def _import_rich_live() -> type[Any]:
    try:
        from rich.live import Live
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Live


def translate_key(key: Any, data: str) -> Key | None:
    """Map a prompt_toolkit key press to a :class:`Key`, or ``None`` to ignore it."""
    name = getattr(key, "value", key)
    if name == " ":
        return Key("space")
    if name in _KEY_NAMES:
        return Key(_KEY_NAMES[name])
    if isinstance(name, str) and len(name) == 1 and name.isprintable():
        return Key("rune", name)
    if data and len(data) == 1 and data.isprintable() and not data.isspace():
        return Key("rune", data)
    return None


class TerminalRuntime:
    """Run one :class:`NavigationStateMachine` until the user quits.

    Parameters
    ----------
    machine:
        The state machine to drive.
    console:
        Rich console to draw on; defaults to a stdout console.
    input_factory:
        Returns a prompt_toolkit ``Input``; injectable for tests.
    """

    def __init__(
        self,
        machine: NavigationStateMachine,
        *,
        console: Any | None = None,
        input_factory: Callable[[], Any] | None = None,
    ) -> None:
        self._machine = machine
        self._console = console
        self._input_factory = input_factory
        self._queue: asyncio.Queue[Message | BaseException] = asyncio.Queue()
        self._tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule(self, commands: Iterable[Command]) -> None:
        for command in commands:
            task = asyncio.ensure_future(self._execute(command))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _execute(self, command: Command) -> None:
        try:
            message = await command()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("command_crashed command=%r", command)
            await self._queue.put(exc)
            return
        await self._queue.put(message)

    async def cancel_all(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Message loop
    # ------------------------------------------------------------------

    def post(self, message: Message) -> None:
        self._queue.put_nowait(message)

    async def process(self, on_frame: Callable[[], None] | None = None) -> None:
        """Consume messages until the machine asks to quit."""
        while not self._machine.quit_requested:
            item = await self._queue.get()
            if isinstance(item, BaseException):
                raise item
            self.schedule(self._machine.update(item))
            if on_frame is not None:
                on_frame()

    async def run(self) -> None:
        """Take over the terminal and run until quit."""
        from ingresso_finder.cli.render import render

        live_class = _import_rich_live()
        create_input = self._input_factory or _import_prompt_toolkit_input()
        console = self._console if self._console is not None else get_rich_console(stderr=False)
        loop = asyncio.get_running_loop()
        term_input = create_input()
        flush_handle: asyncio.TimerHandle | None = None

        def feed(key_presses: Iterable[Any]) -> None:
            for press in key_presses:
                key = translate_key(press.key, press.data)
                if key is not None:
                    self.post(KeyPressed(key))

        def flush_pending() -> None:
            feed(term_input.flush_keys())

        def on_input() -> None:
            nonlocal flush_handle
            feed(term_input.read_keys())
            if flush_handle is not None:
                flush_handle.cancel()
            flush_handle = loop.call_later(ESCAPE_FLUSH_SECONDS, flush_pending)

        def on_resize() -> None:
            width, height = console.size
            self.post(Resized(width, height))

        resize_hooked = False
        if hasattr(signal, "SIGWINCH"):
            try:
                loop.add_signal_handler(signal.SIGWINCH, on_resize)
                resize_hooked = True
            except (NotImplementedError, RuntimeError):
                logger.debug("resize_signal_unavailable")

        try:
            with live_class(
                render(self._machine),
                console=console,
                screen=True,
                refresh_per_second=REFRESH_PER_SECOND,
            ) as live:
                with term_input.raw_mode(), term_input.attach(on_input):
                    on_resize()
                    self.schedule(self._machine.start())
                    await self.process(lambda: live.update(render(self._machine)))
        finally:
            if flush_handle is not None:
                flush_handle.cancel()
            if resize_hooked:
                loop.remove_signal_handler(signal.SIGWINCH)
            await self.cancel_all()
