"""
UI Stream
Runs one generation at a time over an external chunk source.
"""

import asyncio
from collections.abc import AsyncIterable, AsyncIterator
from typing import Callable

from ..catalog import Catalog
from ..core import (
    GenerationRequest,
    JSONParseError,
    LogContext,
    Settings,
    StreamCounter,
    get_logger,
    get_settings,
)
from .assembler import AssembledTree, StreamAssembler, StreamReport, TreeSubscriber
from .parser import RecordParser

logger = get_logger(__name__)

ChunkSource = Callable[[str], AsyncIterable[str]]


class UIStream:
    """
    Streams a generated UI into a tree.

    The source is any callable that takes the prompt and returns an async
    iterable of text chunks (a model client, a websocket reader, a file).
    Subscribers get the tree once per chunk that changed it.
    """

    def __init__(
        self,
        source: ChunkSource | None = None,
        catalog: Catalog | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.source = source
        self.catalog = catalog
        self.settings = settings or get_settings()
        self.counter = StreamCounter()
        self._assembler = StreamAssembler(catalog)
        self._subscribers: list[TreeSubscriber] = []
        self._generation = 0
        self._abort_event: asyncio.Event | None = None
        self._streaming = False
        self._error: Exception | None = None
        self._report: StreamReport | None = None

    @property
    def tree(self) -> AssembledTree:
        return self._assembler.tree

    @property
    def assembler(self) -> StreamAssembler:
        return self._assembler

    @property
    def is_streaming(self) -> bool:
        return self._streaming

    @property
    def error(self) -> Exception | None:
        """Transport or parse failure of the latest generation."""
        return self._error

    @property
    def report(self) -> StreamReport | None:
        """Summary of the latest finished generation."""
        return self._report

    def subscribe(self, callback: TreeSubscriber) -> Callable[[], None]:
        """Register callback(tree); survives across generations."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def abort(self) -> None:
        """Stop merging; the last merged tree stays as it is."""
        if self._abort_event is not None and not self._abort_event.is_set():
            logger.info("stream_abort_requested", generation=self._generation)
            self._abort_event.set()

    async def send(self, prompt: str) -> StreamReport:
        """
        Start a new generation for prompt.

        Raises:
            ValidationError: If the prompt is empty or too long
            RuntimeError: If no chunk source was configured
        """
        request = GenerationRequest(prompt=prompt)
        if self.source is None:
            raise RuntimeError("UIStream has no chunk source")
        return await self.consume(self.source(request.prompt))

    async def consume(self, chunks: AsyncIterable[str]) -> StreamReport:
        """
        Merge an async iterable of chunks as a new generation.

        A generation already in progress is aborted first. Failures end the
        generation and are recorded on error; they are not raised.
        """
        self.abort()
        self._generation += 1
        generation = self._generation
        abort_event = asyncio.Event()
        self._abort_event = abort_event

        parser = RecordParser(self.settings.max_stream_buffer, self.settings.max_json_depth)
        assembler = StreamAssembler(self.catalog)
        assembler.subscribe(lambda tree: self._publish(generation, tree))
        self._assembler = assembler
        self._error = None
        self._report = None
        self._streaming = True
        self.counter.reset()
        self._publish(generation, assembler.tree)

        iterator = aiter(chunks)
        aborted = False
        error: Exception | None = None

        with LogContext(generation=generation):
            logger.info("stream_started")
            try:
                while True:
                    chunk = await self._next_chunk(iterator, abort_event)
                    if chunk is None:
                        aborted = abort_event.is_set()
                        break

                    records = parser.feed(chunk)
                    assembler.push_many(records, root=parser.root)
                    self.counter.track(chunk, len(records))

                    if abort_event.is_set():
                        aborted = True
                        break
            except JSONParseError as e:
                logger.error("stream_parse_failed", error=str(e))
                error = e
            except Exception as e:
                logger.error("stream_failed", error=str(e), exc_info=True)
                error = e
            finally:
                await _close(iterator)

            trailing = ""
            if not aborted and error is None:
                try:
                    trailing = parser.close()
                except JSONParseError as e:
                    logger.error("stream_parse_failed", error=str(e))
                    error = e
            report = assembler.finish(trailing, aborted)
            chunks_seen, chars, records_seen = self.counter.reset()
            logger.info("stream_stats", chunks=chunks_seen, chars=chars, records=records_seen)

        if generation == self._generation:
            self._error = error
            self._report = report
            self._streaming = False
        return report

    async def _next_chunk(
        self, iterator: AsyncIterator[str], abort_event: asyncio.Event
    ) -> str | None:
        """Next chunk, or None when the source ends or an abort arrives first."""
        next_task = asyncio.ensure_future(anext(iterator))
        abort_task = asyncio.ensure_future(abort_event.wait())
        try:
            done, _ = await asyncio.wait(
                {next_task, abort_task}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            next_task.cancel()
            raise
        finally:
            abort_task.cancel()

        if next_task not in done:
            next_task.cancel()
            try:
                await next_task
            except (asyncio.CancelledError, StopAsyncIteration):
                pass
            return None

        try:
            return next_task.result()
        except StopAsyncIteration:
            return None

    def _publish(self, generation: int, tree: AssembledTree) -> None:
        if generation != self._generation:
            return
        for callback in list(self._subscribers):
            try:
                callback(tree)
            except Exception as e:
                logger.warning("tree_subscriber_failed", error=str(e))


async def _close(iterator: AsyncIterator[str]) -> None:
    aclose = getattr(iterator, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as e:
        logger.debug("source_close_failed", error=str(e))
