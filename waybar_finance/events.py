"""Events carried on the bus.

Per-symbol results carry the symbol they were spawned for, so the consumer
can drop results that arrive after focus has moved on.
"""

from dataclasses import dataclass
from typing import List, Optional, Union

from waybar_finance.models import History, MarketStatus, Quote, SearchResult, StockDetails

# Named keys; printable characters travel as KeyPress(char=...)
ENTER = "enter"
ESC = "esc"
BACKSPACE = "backspace"
DELETE = "delete"
UP = "up"
DOWN = "down"
TAB = "tab"
CTRL_C = "ctrl_c"


@dataclass
class Tick:
    pass


@dataclass(frozen=True)
class KeyPress:
    key: str = ""   # one of the named keys above, or "" for a character
    char: str = ""

    @classmethod
    def of(cls, char: str) -> "KeyPress":
        return cls(char=char)


@dataclass(frozen=True)
class Paste:
    text: str


@dataclass
class QuoteFetched:
    symbol: str
    quote: Optional[Quote] = None
    error: Optional[Exception] = None


@dataclass
class HistoryFetched:
    symbol: str
    history: Optional[History] = None
    error: Optional[Exception] = None


@dataclass
class DetailsFetched:
    symbol: str
    details: Optional[StockDetails] = None
    error: Optional[Exception] = None


@dataclass
class SearchResultsFetched:
    query: str
    results: Optional[List[SearchResult]] = None
    error: Optional[Exception] = None


@dataclass
class MarketFetched:
    status: Optional[MarketStatus] = None
    error: Optional[Exception] = None


Event = Union[Tick, KeyPress, Paste, QuoteFetched, HistoryFetched,
              DetailsFetched, SearchResultsFetched, MarketFetched]
