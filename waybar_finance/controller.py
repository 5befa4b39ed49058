"""The interaction state machine.

The consumer loop hands every event to Controller.handle(). It is the only
code that mutates AppState; it asks the bus to spawn fetches and persists
the config when the key is committed.
"""

import logging
from typing import Callable, Optional

from waybar_finance.config import Config, save_config
from waybar_finance.constants import MESSAGE_TTL
from waybar_finance.events import (
    BACKSPACE, CTRL_C, DELETE, DOWN, ENTER, ESC, TAB, UP,
    DetailsFetched, Event, HistoryFetched, KeyPress, MarketFetched, Paste,
    QuoteFetched, SearchResultsFetched, Tick,
)
from waybar_finance.state import AppState, InputMode, BUSY, ERROR, INFO, OK, WARN

logger = logging.getLogger(__name__)

MIN_SEARCH_LEN = 2


def _symbol_chars(text: str) -> str:
    return "".join(ch for ch in text if ch.isprintable() and not ch.isspace())


class Controller:
    def __init__(self, state: AppState, bus, config_path: str = "",
                 base_config: Optional[Config] = None,
                 saver: Callable[[Config, str], None] = save_config):
        self.state = state
        self.bus = bus
        self.config_path = config_path
        self.base_config = base_config
        self._save = saver

    def handle(self, event: Event):
        match event:
            case Tick():
                pass
            case KeyPress() | Paste():
                self._handle_input(event)
            case QuoteFetched():
                self._on_quote(event)
            case HistoryFetched():
                self._on_history(event)
            case DetailsFetched():
                self._on_details(event)
            case SearchResultsFetched():
                self._on_search(event)
            case MarketFetched():
                self._on_market(event)
            case _:
                logger.warning("unhandled event %r", event)

    def persist(self) -> bool:
        """Write the watchlist and key synchronously. False on failure."""
        try:
            self._save(self.state.to_config(self.base_config), self.config_path)
        except OSError as e:
            logger.error("saving config failed: %s", e)
            self.state.set_message(f"Failed to save config: {e}", ERROR)
            return False
        return True

    # -- Input routing -----------------------------------------------------

    def _handle_input(self, event):
        if isinstance(event, KeyPress) and event.key == CTRL_C:
            self.state.should_quit = True
            return
        match self.state.mode:
            case InputMode.NORMAL:
                self._normal(event)
            case InputMode.EDITING_SYMBOL:
                self._editing_symbol(event)
            case InputMode.EDITING_API_KEY:
                self._editing_api_key(event)

    def _normal(self, event):
        s = self.state
        if isinstance(event, Paste):
            return
        if event.char in ("q", "Q"):
            s.should_quit = True
        elif event.char == "a":
            s.mode = InputMode.EDITING_SYMBOL
            s.input = ""
            s.reset_search()
            s.set_message("Enter Symbol...", WARN)
        elif event.key == DOWN:
            s.next()
        elif event.key == UP:
            s.previous()
        elif event.key == ENTER:
            symbol = s.selected_symbol
            if symbol:
                self._spawn_fetches(symbol, f"Fetching {symbol}...")
        elif event.char == "d" or event.key == DELETE:
            removed = s.delete_selected()
            if removed:
                if removed == s.focused_symbol:
                    s.unfocus()
                s.set_message(f"Removed {removed}", INFO)

    def _editing_symbol(self, event):
        s = self.state
        if isinstance(event, Paste):
            self._set_symbol_buffer(s.input + _symbol_chars(event.text))
            s.set_message("Pasted text", WARN)
        elif event.key == ENTER:
            self._commit_symbol()
        elif event.key == ESC:
            s.input = ""
            s.reset_search()
            s.mode = InputMode.NORMAL
            s.set_message("Ready", INFO)
        elif event.key == BACKSPACE:
            self._set_symbol_buffer(s.input[:-1])
        elif event.key == DOWN:
            s.next_search()
        elif event.key == UP:
            s.previous_search()
        elif event.key == TAB:
            if s.search_selected is not None:
                self._set_symbol_buffer(s.search_results[s.search_selected].symbol)
        elif event.char:
            self._set_symbol_buffer(s.input + event.char)

    def _set_symbol_buffer(self, text: str):
        s = self.state
        if text == s.input:
            return
        s.input = text
        s.reset_search()
        query = text.strip()
        if len(query) >= MIN_SEARCH_LEN:
            self.bus.search(query)

    def _commit_symbol(self):
        s = self.state
        symbol = s.input.strip().upper()
        if not symbol:
            return
        s.input = ""
        s.reset_search()
        s.mode = InputMode.NORMAL
        if not s.add_symbol(symbol):
            s.set_message(f"{symbol} exists!", WARN, ttl=MESSAGE_TTL)
            return
        self._spawn_fetches(symbol, f"Adding {symbol}...")

    def _editing_api_key(self, event):
        s = self.state
        if isinstance(event, Paste):
            s.input += event.text.strip()
            s.set_message("Pasted text", WARN)
        elif event.key == ENTER:
            key = s.input.strip()
            if not key:
                return
            s.api_key = key
            s.input = ""
            s.mode = InputMode.NORMAL
            s.set_message("API Key Saved! Press 'q' to quit.", OK)
            self.persist()
        elif event.key == ESC:
            s.should_quit = True
        elif event.key == BACKSPACE:
            s.input = s.input[:-1]
        elif event.char:
            s.input += event.char

    def _spawn_fetches(self, symbol: str, message: str):
        self.state.focus(symbol)
        self.state.set_message(message, BUSY)
        self.bus.fetch_symbol(symbol, self.state.api_key)

    # -- Results -----------------------------------------------------------

    def _is_stale(self, symbol: str) -> bool:
        if symbol != self.state.focused_symbol:
            logger.debug("dropping stale result for %s (focused %s)", symbol, self.state.focused_symbol)
            return True
        return False

    def _on_quote(self, ev: QuoteFetched):
        if self._is_stale(ev.symbol):
            return
        if ev.error is not None:
            self.state.set_message(f"Error: {ev.error}", ERROR, ttl=MESSAGE_TTL)
            return
        self.state.quote = ev.quote
        self.state.set_message(f"Updated {ev.symbol}", OK)

    def _on_history(self, ev: HistoryFetched):
        if self._is_stale(ev.symbol):
            return
        if ev.error is not None:
            self.state.history = None
            self.state.history_error = str(ev.error)
            return
        self.state.history = ev.history
        self.state.history_error = ""

    def _on_details(self, ev: DetailsFetched):
        if self._is_stale(ev.symbol):
            return
        if ev.error is not None:
            self.state.details = None
            self.state.set_message(f"Details fetch failed for {ev.symbol}: {ev.error}",
                                   ERROR, ttl=MESSAGE_TTL)
            return
        self.state.details = ev.details

    def _on_search(self, ev: SearchResultsFetched):
        s = self.state
        if s.mode is not InputMode.EDITING_SYMBOL or ev.query != s.input.strip():
            return
        if ev.error is not None:
            s.set_message(f"Search failed: {ev.error}", ERROR, ttl=MESSAGE_TTL)
            return
        s.search_results = list(ev.results or [])
        s.search_selected = 0 if s.search_results else None
        s.set_message(f"Fetched {len(s.search_results)} results", BUSY)

    def _on_market(self, ev: MarketFetched):
        if ev.error is not None:
            # keep the previous snapshot on screen
            self.state.set_message(f"Market status: {ev.error}", ERROR, ttl=MESSAGE_TTL)
            return
        self.state.market_status = ev.status
