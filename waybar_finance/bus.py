"""Event bus and task supervision.

Every producer writes into one unbounded asyncio.Queue; exactly one consumer
reads it. Fetch tasks never touch state, they only post events.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

import httpx

from waybar_finance.constants import DEFAULT_MARKET_INTERVAL, DEFAULT_TICK
from waybar_finance.credentials import CrumbCache
from waybar_finance.errors import FetchError
from waybar_finance.events import (
    DetailsFetched, Event, HistoryFetched, MarketFetched, QuoteFetched,
    SearchResultsFetched, Tick,
)
from waybar_finance import provider

logger = logging.getLogger(__name__)


class EventBus:
    def __init__(self, client: httpx.AsyncClient, crumbs: Optional[CrumbCache] = None):
        self.client = client
        self.crumbs = crumbs or CrumbCache()
        self.queue: "asyncio.Queue[Event]" = asyncio.Queue()
        self._tasks: Set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # -- Channel -----------------------------------------------------------

    def post(self, event: Event):
        self.queue.put_nowait(event)

    def post_threadsafe(self, event: Event):
        """Post from a non-loop thread (the key reader)."""
        self._loop.call_soon_threadsafe(self.queue.put_nowait, event)

    async def next_event(self) -> Event:
        return await self.queue.get()

    # -- Supervision -------------------------------------------------------

    def spawn(self, coro: Awaitable, name: str = "") -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("task %s died: %r", task.get_name(), exc, exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def shutdown(self):
        tasks = list(self._tasks)
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def _guard(self, what: str, fn: Callable[[], Awaitable]):
        """Run fn, returning (value, None) or (None, error). Never raises FetchError."""
        try:
            return await fn(), None
        except FetchError as e:
            logger.info("%s failed: %s", what, e)
            return None, e
        except Exception as e:
            logger.exception("%s crashed", what)
            return None, FetchError(f"{what}: {e}")

    # -- Producers ---------------------------------------------------------

    def start(self, key_reader=None, tick_interval: float = DEFAULT_TICK,
              market_interval: float = DEFAULT_MARKET_INTERVAL):
        """Start the long-lived producers on the running loop."""
        self._loop = asyncio.get_running_loop()
        self.spawn(self._tick_producer(tick_interval), "tick")
        self.spawn(self._market_producer(market_interval), "market")
        if key_reader is not None:
            self.spawn(self._input_producer(key_reader), "input")

    async def _tick_producer(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            self.post(Tick())

    async def _market_producer(self, interval: float):
        while True:
            status, err = await self._guard(
                "market status", lambda: provider.fetch_market_status(self.client, self.crumbs))
            self.post(MarketFetched(status=status, error=err))
            await asyncio.sleep(interval)

    async def _input_producer(self, key_reader):
        # read() blocks in the OS, so it gets its own thread
        def _pump():
            while True:
                ev = key_reader.read()
                if ev is None:
                    return
                try:
                    self.post_threadsafe(ev)
                except RuntimeError:
                    # loop already closed during shutdown
                    return

        await self._loop.run_in_executor(None, _pump)

    # -- On-demand fetches -------------------------------------------------

    def fetch_symbol(self, symbol: str, api_key: Optional[str]):
        """Fan out quote, history and details; each posts its own event."""
        self.spawn(self._quote_task(symbol, api_key), f"quote:{symbol}")
        self.spawn(self._history_task(symbol), f"history:{symbol}")
        self.spawn(self._details_task(symbol), f"details:{symbol}")

    def search(self, query: str):
        self.spawn(self._search_task(query), f"search:{query}")

    async def _quote_task(self, symbol: str, api_key: Optional[str]):
        quote, err = await self._guard(
            f"quote {symbol}", lambda: provider.fetch_quote(self.client, symbol, api_key))
        self.post(QuoteFetched(symbol, quote=quote, error=err))

    async def _history_task(self, symbol: str):
        history, err = await self._guard(
            f"history {symbol}", lambda: provider.fetch_history(self.client, symbol))
        self.post(HistoryFetched(symbol, history=history, error=err))

    async def _details_task(self, symbol: str):
        details, err = await self._guard(
            f"details {symbol}", lambda: provider.fetch_details(self.client, symbol, self.crumbs))
        self.post(DetailsFetched(symbol, details=details, error=err))

    async def _search_task(self, query: str):
        results, err = await self._guard(
            f"search {query!r}", lambda: provider.search_ticker(self.client, query))
        self.post(SearchResultsFetched(query, results=results, error=err))
