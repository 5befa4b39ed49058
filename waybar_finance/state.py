import enum
import time
from dataclasses import dataclass, field
from typing import List, Optional

from waybar_finance.config import Config
from waybar_finance.models import History, MarketStatus, Quote, SearchResult, StockDetails


class InputMode(enum.Enum):
    NORMAL = "normal"
    EDITING_SYMBOL = "editing_symbol"
    EDITING_API_KEY = "editing_api_key"


# Semantic colors for the status line
INFO = "grey70"
OK = "green"
WARN = "yellow"
ERROR = "red"
BUSY = "cyan"


@dataclass
class AppState:
    stocks: List[str] = field(default_factory=list)
    selected: Optional[int] = None
    api_key: Optional[str] = None
    mode: InputMode = InputMode.NORMAL
    input: str = ""

    focused_symbol: Optional[str] = None
    quote: Optional[Quote] = None
    history: Optional[History] = None
    history_error: str = ""
    details: Optional[StockDetails] = None
    market_status: Optional[MarketStatus] = None

    search_results: List[SearchResult] = field(default_factory=list)
    search_selected: Optional[int] = None

    message: str = "Ready"
    message_color: str = INFO
    message_until: Optional[float] = None  # None = sticky

    should_quit: bool = False

    @classmethod
    def from_config(cls, cfg: Config) -> "AppState":
        state = cls(stocks=list(cfg.stocks), api_key=cfg.api_key)
        state.selected = 0 if state.stocks else None
        if not state.api_key:
            state.mode = InputMode.EDITING_API_KEY
            state.set_message("Enter your Finnhub API key", WARN)
        return state

    def to_config(self, base: Optional[Config] = None) -> Config:
        cfg = Config() if base is None else Config(market_interval=base.market_interval,
                                                   tick_interval=base.tick_interval)
        cfg.stocks = list(self.stocks)
        cfg.api_key = self.api_key
        return cfg

    # -- Status line -----------------------------------------------------

    def set_message(self, text: str, color: str = INFO, ttl: Optional[float] = None):
        self.message = text
        self.message_color = color
        self.message_until = time.time() + ttl if ttl else None

    # -- Watchlist ---------------------------------------------------------

    @property
    def selected_symbol(self) -> Optional[str]:
        if self.selected is None or not self.stocks:
            return None
        return self.stocks[self.selected]

    def add_symbol(self, symbol: str) -> bool:
        """Append and select a new symbol. False if it is already listed."""
        if symbol in self.stocks:
            return False
        self.stocks.append(symbol)
        self.selected = len(self.stocks) - 1
        return True

    def next(self):
        if not self.stocks:
            self.selected = None
            return
        i = -1 if self.selected is None else self.selected
        self.selected = (i + 1) % len(self.stocks)

    def previous(self):
        if not self.stocks:
            self.selected = None
            return
        i = 0 if self.selected is None else self.selected
        self.selected = (i - 1) % len(self.stocks)

    def delete_selected(self) -> Optional[str]:
        """Remove the selected symbol, keeping the cursor in range."""
        if self.selected is None or not self.stocks:
            return None
        removed = self.stocks.pop(self.selected)
        if not self.stocks:
            self.selected = None
        elif self.selected >= len(self.stocks):
            self.selected = len(self.stocks) - 1
        return removed

    # -- Search ------------------------------------------------------------

    def reset_search(self):
        self.search_results = []
        self.search_selected = None

    def next_search(self):
        if self.search_results:
            i = -1 if self.search_selected is None else self.search_selected
            self.search_selected = (i + 1) % len(self.search_results)

    def previous_search(self):
        if self.search_results:
            i = 0 if self.search_selected is None else self.search_selected
            self.search_selected = (i - 1) % len(self.search_results)

    # -- Focus -------------------------------------------------------------

    def focus(self, symbol: str):
        """Point per-symbol panels at symbol; clear them if it changed."""
        if symbol != self.focused_symbol:
            self.quote = None
            self.history = None
            self.history_error = ""
            self.details = None
        self.focused_symbol = symbol

    def unfocus(self):
        """Drop focus, e.g. when the focused symbol leaves the watchlist."""
        self.focused_symbol = None
        self.quote = None
        self.history = None
        self.history_error = ""
        self.details = None
