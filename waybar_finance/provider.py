"""Upstream fetches — the only module that knows the Finnhub and Yahoo schemas.

Every function takes the shared AsyncClient, returns a normalized value and
raises a FetchError subclass on failure. None of them touch app state.
"""

from typing import Any, Dict, List, Optional

import httpx

from waybar_finance.constants import (
    FINNHUB_QUOTE_URL, YAHOO_CHART_URL, YAHOO_QUOTE_URL, YAHOO_SEARCH_URL,
    HISTORY_RANGE, HISTORY_INTERVAL, SEARCH_LIMIT, YIELD_SYMBOLS,
    HTTP_TIMEOUT, USER_AGENT,
)
from waybar_finance.credentials import CrumbCache
from waybar_finance.errors import CredentialError, EmptyResultError, NetworkError, ParseError
from waybar_finance.models import History, MarketStatus, Quote, SearchResult, StockDetails


def make_client(**kwargs) -> httpx.AsyncClient:
    """AsyncClient shared by every task. Yahoo rejects the default UA."""
    kwargs.setdefault("timeout", HTTP_TIMEOUT)
    kwargs.setdefault("follow_redirects", True)
    headers = kwargs.pop("headers", {})
    headers.setdefault("User-Agent", USER_AGENT)
    return httpx.AsyncClient(headers=headers, **kwargs)


async def _get_json(client: httpx.AsyncClient, url: str, params: Dict[str, Any], what: str) -> Any:
    try:
        resp = await client.get(url, params=params)
    except httpx.HTTPError as e:
        raise NetworkError(f"{what}: {e.__class__.__name__}") from e
    if not resp.is_success:
        raise NetworkError(f"Failed to fetch {what}: HTTP {resp.status_code}")
    try:
        return resp.json()
    except ValueError as e:
        raise ParseError(f"{what}: invalid JSON") from e


def _num(val: Any) -> Optional[float]:
    """Coerce a JSON number, or a Yahoo {"raw": n} wrapper, to float."""
    if isinstance(val, dict):
        val = val.get("raw")
    if isinstance(val, bool) or val is None:
        return None
    try:
        return float(val)
    except (TypeError, ValueError):
        return None


# -- Quote -------------------------------------------------------------

async def fetch_quote(client: httpx.AsyncClient, symbol: str, api_key: Optional[str]) -> Quote:
    """Latest price and day change percent from Finnhub."""
    if not api_key:
        raise CredentialError("API key not set")
    data = await _get_json(client, FINNHUB_QUOTE_URL, {"symbol": symbol, "token": api_key}, "quote")
    if not isinstance(data, dict):
        raise ParseError("quote: unexpected payload")
    price = _num(data.get("c"))
    percent = _num(data.get("dp"))
    if price is None or percent is None:
        raise ParseError(f"No quote data for {symbol}")
    return Quote(price=price, percent=percent)


# -- History -----------------------------------------------------------

def _normalize_chart(data: Any) -> History:
    try:
        chart = data["chart"]
        if chart.get("error"):
            err = chart["error"]
            desc = err.get("description") if isinstance(err, dict) else str(err)
            raise ParseError(f"Chart error: {desc}")
        result = (chart.get("result") or [None])[0]
        if not result:
            return []
        timestamps = result.get("timestamp") or []
        closes = result["indicators"]["quote"][0].get("close") or []
    except (KeyError, IndexError, TypeError, AttributeError) as e:
        raise ParseError("history: unexpected payload") from e

    points = []
    for ts, close in zip(timestamps, closes):
        c = _num(close)
        if ts is None or c is None:
            continue
        points.append((float(ts), c))
    return points


async def fetch_history(client: httpx.AsyncClient, symbol: str) -> History:
    """One year of daily closes as (timestamp, close) pairs."""
    params = {"range": HISTORY_RANGE, "interval": HISTORY_INTERVAL}
    data = await _get_json(client, YAHOO_CHART_URL.format(symbol=symbol), params, "history")
    points = _normalize_chart(data)
    if not points:
        raise EmptyResultError("History data is empty")
    return points


# -- Batch quote (crumb) -----------------------------------------------

async def _fetch_yahoo_quotes(client: httpx.AsyncClient, symbols: List[str],
                              crumbs: CrumbCache) -> Dict[str, Dict[str, Any]]:
    """Yahoo v7 quote for several symbols, keyed by the symbol each entry reports."""
    crumb = await crumbs.get(client)
    params = {"symbols": ",".join(symbols), "crumb": crumb}
    data = await _get_json(client, YAHOO_QUOTE_URL, params, "quote batch")
    try:
        entries = data["quoteResponse"]["result"] or []
    except (KeyError, TypeError) as e:
        raise ParseError("quote batch: unexpected payload") from e
    by_symbol = {}
    for entry in entries:
        if isinstance(entry, dict) and entry.get("symbol"):
            by_symbol[str(entry["symbol"]).upper()] = entry
    return by_symbol


def _first(entry: Dict[str, Any], *keys: str, scale: float = 1.0) -> Optional[float]:
    for key in keys:
        val = _num(entry.get(key))
        if val is not None:
            return val * scale
    return None


def _normalize_details(entry: Dict[str, Any]) -> StockDetails:
    # dividendYield is already a percent; the trailing field is a fraction
    dividend = _first(entry, "dividendYield")
    if dividend is None:
        dividend = _first(entry, "trailingAnnualDividendYield", scale=100.0)
    return StockDetails(
        market_cap=_first(entry, "marketCap", "netAssets"),
        pe_ratio=_first(entry, "trailingPE", "forwardPE"),
        dividend_yield=dividend,
        high_52w=_first(entry, "fiftyTwoWeekHigh"),
        low_52w=_first(entry, "fiftyTwoWeekLow"),
        year_return=_first(entry, "ytdReturn", "fiftyTwoWeekChangePercent"),
    )


async def fetch_details(client: httpx.AsyncClient, symbol: str, crumbs: CrumbCache) -> StockDetails:
    """Fundamentals for one symbol, with fund/equity field fallbacks."""
    entries = await _fetch_yahoo_quotes(client, [symbol], crumbs)
    entry = entries.get(symbol.upper())
    if entry is None:
        raise EmptyResultError(f"No details for {symbol}")
    return _normalize_details(entry)


async def fetch_market_status(client: httpx.AsyncClient, crumbs: CrumbCache) -> MarketStatus:
    """Reference treasury yields, matched back by symbol not by position."""
    entries = await _fetch_yahoo_quotes(client, list(YIELD_SYMBOLS.values()), crumbs)
    values = {}
    for field_name, sym in YIELD_SYMBOLS.items():
        entry = entries.get(sym)
        price = _num(entry.get("regularMarketPrice")) if entry else None
        if price is None:
            raise ParseError(f"Missing yield for {sym}")
        values[field_name] = price
    return MarketStatus(**values)


# -- Search ------------------------------------------------------------

async def search_ticker(client: httpx.AsyncClient, query: str) -> List[SearchResult]:
    """Symbol search. No matches is an empty list, not an error."""
    params = {"q": query, "quotesCount": SEARCH_LIMIT, "newsCount": 0}
    data = await _get_json(client, YAHOO_SEARCH_URL, params, "search")
    if not isinstance(data, dict):
        raise ParseError("search: unexpected payload")
    results = []
    for q in data.get("quotes") or []:
        if not isinstance(q, dict) or not q.get("symbol"):
            continue
        results.append(SearchResult(
            symbol=str(q["symbol"]),
            name=q.get("shortname") or q.get("longname"),
            quote_type=q.get("quoteType"),
        ))
    return results
