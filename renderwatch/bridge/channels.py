"""Ingestion channels — transports that deliver render output to the monitor.

Every channel is an async context manager and an async iterator of
channel items (``TextLine``, ``TerminalSignal``, ``ChannelEvent``).
``aclose()`` is idempotent: the underlying resource is released exactly
once no matter how often it is called.

Three transports are provided:

1. ``QueueChannel``       host-process messaging; the host pushes items.
2. ``IterableChannel``    replays a sync or async iterable of raw lines.
3. ``SubprocessChannel``  runs the render command and reads its output.
"""

from __future__ import annotations

import abc
import asyncio
import codecs
import logging
import re
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

from renderwatch.bridge.codec import decode_line
from renderwatch.models.signals import (
    ChannelEvent,
    ChannelEventKind,
    ChannelItem,
    TerminalSignal,
    TextLine,
)

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class ChannelError(RuntimeError):
    """Raised when a transport fails (cannot start, drops, or is misused)."""


class BaseChannel(abc.ABC):
    """Base class for all ingestion channels."""

    def __init__(self) -> None:
        self._opened = False
        self._closed = False
        self.close_count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> None:
        """Acquire the transport resource (no-op if already open)."""
        if self._closed:
            raise ChannelError("Channel already closed")
        if not self._opened:
            await self._open()
            self._opened = True

    async def aclose(self) -> None:
        """Release the transport resource exactly once."""
        if self._closed:
            return
        self._closed = True
        self.close_count += 1
        await self._close()

    async def __aenter__(self) -> BaseChannel:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def __aiter__(self) -> AsyncIterator[ChannelItem]:
        return self._items()

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    async def _open(self) -> None:
        return None

    async def _close(self) -> None:
        return None

    @abc.abstractmethod
    def _items(self) -> AsyncIterator[ChannelItem]:
        """Yield channel items in delivery order."""


# ---------------------------------------------------------------------------
# Host messaging
# ---------------------------------------------------------------------------

_END = object()


class QueueChannel(BaseChannel):
    """Channel fed by a host process through push calls.

    Usage
    -----
    >>> channel = QueueChannel()
    >>> channel.mark_open()
    >>> channel.push_line("Rendering scene 1")
    >>> channel.push_signal(success=True, artifact="/out/video.mp4")
    >>> channel.finish()
    """

    def __init__(self) -> None:
        super().__init__()
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._finished = False

    def _put(self, item: object) -> None:
        if self._closed or self._finished:
            logger.debug("Dropping item pushed after channel end: %r", item)
            return
        self._queue.put_nowait(item)

    def mark_open(self) -> None:
        """Notify that the host connection is established."""
        self._put(ChannelEvent(event=ChannelEventKind.OPENED))

    def push_line(self, text: str) -> None:
        """Deliver one free-text line verbatim."""
        self._put(TextLine(text=text))

    def push_raw(self, raw: str | bytes) -> None:
        """Deliver one raw wire line, decoding structured results."""
        self._put(decode_line(raw))

    def push_signal(
        self,
        *,
        success: bool,
        artifact: str | None = None,
        error: str | None = None,
    ) -> None:
        """Deliver a structured terminal signal."""
        self._put(TerminalSignal(success=success, artifact=artifact, error=error))

    def fail(self, detail: str = "") -> None:
        """Report that the host connection failed."""
        self._put(ChannelEvent(event=ChannelEventKind.FAILED, detail=detail))

    def finish(self) -> None:
        """End the stream; iteration stops after queued items drain."""
        if not self._finished:
            self._queue.put_nowait(_END)
            self._finished = True

    async def _items(self) -> AsyncIterator[ChannelItem]:
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            yield item  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Replay
# ---------------------------------------------------------------------------


class IterableChannel(BaseChannel):
    """Replays raw lines from a sync or async iterable.

    Emits an ``opened`` event first (unless ``announce_open`` is False),
    then one decoded item per raw line.

    Parameters
    ----------
    source:
        Iterable of raw lines (``str`` or ``bytes``).
    announce_open:
        Whether to emit the ``opened`` event before the first line.
    on_close:
        Optional callable invoked when the channel is closed, e.g. to
        close an underlying file.
    """

    def __init__(
        self,
        source: Iterable[str | bytes] | AsyncIterable[str | bytes],
        *,
        announce_open: bool = True,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        super().__init__()
        self._source = source
        self._announce_open = announce_open
        self._on_close = on_close

    @classmethod
    def from_file(cls, path: Path) -> IterableChannel:
        """Replay a saved transcript file line by line."""
        handle = Path(path).open("r", encoding="utf-8", errors="replace")
        return cls(handle, on_close=handle.close)

    async def _close(self) -> None:
        if self._on_close is not None:
            self._on_close()

    async def _items(self) -> AsyncIterator[ChannelItem]:
        if self._announce_open:
            yield ChannelEvent(event=ChannelEventKind.OPENED)

        if isinstance(self._source, AsyncIterable):
            async for raw in self._source:
                yield decode_line(raw)
        else:
            for raw in self._source:
                yield decode_line(raw)
                # Let timers and other tasks run between lines.
                await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# Render subprocess
# ---------------------------------------------------------------------------


class SubprocessChannel(BaseChannel):
    """Runs the render command and streams its combined output.

    stderr is merged into stdout.  Output is split on ``\\n`` and on bare
    ``\\r`` so carriage-return progress bars arrive as separate lines.
    A non-zero exit adds a final ``process exited with code N`` line.
    Closing the channel terminates a process that is still running.

    Parameters
    ----------
    argv:
        Command and arguments of the render process.
    cwd / env:
        Passed through to the subprocess.
    terminate_timeout:
        Seconds to wait after SIGTERM before killing the process.
    chunk_size:
        Bytes read from the pipe per iteration.
    """

    def __init__(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        terminate_timeout: float = 5.0,
        chunk_size: int = 4096,
    ) -> None:
        super().__init__()
        if not argv:
            raise ValueError("argv must name a command")
        self._argv = list(argv)
        self._cwd = cwd
        self._env = env
        self._terminate_timeout = terminate_timeout
        self._chunk_size = chunk_size
        self._proc: asyncio.subprocess.Process | None = None

    @property
    def returncode(self) -> int | None:
        return self._proc.returncode if self._proc else None

    async def _open(self) -> None:
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self._argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=self._cwd,
                env=self._env,
            )
        except OSError as exc:
            raise ChannelError(f"Cannot start render process {self._argv[0]!r}: {exc}") from exc
        logger.info("Started render process pid=%s: %s", self._proc.pid, " ".join(self._argv))

    async def _close(self) -> None:
        proc = self._proc
        if proc is None or proc.returncode is not None:
            return
        logger.info("Terminating render process pid=%s", proc.pid)
        try:
            proc.terminate()
            try:
                await asyncio.wait_for(proc.wait(), timeout=self._terminate_timeout)
            except asyncio.TimeoutError:
                logger.warning("Render process pid=%s ignored SIGTERM; killing", proc.pid)
                proc.kill()
                await proc.wait()
        except ProcessLookupError:
            pass

    async def _read_lines(self) -> AsyncIterator[str]:
        assert self._proc is not None and self._proc.stdout is not None
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        partial = ""
        while True:
            chunk = await self._proc.stdout.read(self._chunk_size)
            if not chunk:
                break
            # A multi-byte character may straddle two reads.
            text = partial + decoder.decode(chunk)
            pieces = _LINE_BREAK.split(text)
            # Last piece has no terminator yet; hold it for the next read.
            partial = pieces.pop()
            for piece in pieces:
                if piece:
                    yield piece
        partial += decoder.decode(b"", final=True)
        if partial:
            yield partial

    async def _items(self) -> AsyncIterator[ChannelItem]:
        if self._proc is None:
            raise ChannelError("Channel not open")
        yield ChannelEvent(event=ChannelEventKind.OPENED)

        async for line in self._read_lines():
            yield decode_line(line)

        returncode = await self._proc.wait()
        logger.info("Render process pid=%s exited with code %s", self._proc.pid, returncode)
        if returncode != 0:
            yield TextLine(text=f"process exited with code {returncode}")
