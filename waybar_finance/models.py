from dataclasses import dataclass
from typing import List, Optional, Tuple

HistoryPoint = Tuple[float, float]  # (unix timestamp, close)
History = List[HistoryPoint]


@dataclass
class Quote:
    price: float
    percent: float


@dataclass
class StockDetails:
    """Extended metrics. Funds and equities report different subsets."""
    market_cap: Optional[float] = None
    pe_ratio: Optional[float] = None
    dividend_yield: Optional[float] = None  # percent
    high_52w: Optional[float] = None
    low_52w: Optional[float] = None
    year_return: Optional[float] = None  # percent


@dataclass
class SearchResult:
    symbol: str
    name: Optional[str] = None
    quote_type: Optional[str] = None


@dataclass
class MarketStatus:
    yield_long: float   # 10Y
    yield_mid: float    # 5Y
    yield_short: float  # 13W

    @property
    def spread(self) -> float:
        """10Y minus 13W. Negative means an inverted curve."""
        return self.yield_long - self.yield_short
