"""
Interactive console loop.
"""

import asyncio
import threading
from typing import Awaitable, Callable, Optional

import typer
from loguru import logger

from ..core.domain.commands import CommandResult
from ..core.services.command_dispatcher import CommandDispatcher, OutputFn

LineReader = Callable[[str], Awaitable[str]]

PROMPT = "> "


async def read_stdin_line(prompt: str) -> str:
    """
    Read one line from stdin without blocking the event loop.

    The blocking ``input`` call runs on a daemon thread rather than the
    default executor, so cancelling the await (Ctrl-C, shutdown) returns
    immediately and ``asyncio.run`` never waits for a pending read.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[str] = loop.create_future()

    def resolve(line: Optional[str], error: Optional[BaseException]) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(line or "")

    def read() -> None:
        try:
            line, error = input(prompt), None
        except Exception as e:
            line, error = None, e
        try:
            loop.call_soon_threadsafe(resolve, line, error)
        except RuntimeError:
            logger.debug("CONSOLE: Event loop closed before input arrived")

    threading.Thread(target=read, name="stdin-reader", daemon=True).start()
    return await future


class ConsoleLoop:
    """Feeds console lines to the dispatcher until the user exits or input ends."""

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        reader: Optional[LineReader] = None,
        output: Optional[OutputFn] = None,
        prompt: str = PROMPT
    ) -> None:
        self._dispatcher = dispatcher
        self._reader = reader or read_stdin_line
        self._output = output or typer.echo
        self._prompt = prompt
        self._lines = 0

    @property
    def lines_processed(self) -> int:
        return self._lines

    async def run(self) -> Optional[CommandResult]:
        """
        Run until ``/exit``, ``/quit`` or end of input.

        Returns:
            The exit result, or None when input ended
        """
        self._output("Type /help for available commands")

        while True:
            try:
                line = await self._reader(self._prompt)
            except EOFError:
                logger.info("CONSOLE: End of input")
                return None

            self._lines += 1
            result = await self._dispatcher.dispatch(line)
            if result.should_exit:
                logger.info("CONSOLE: Exit requested")
                return result
