"""One-shot mode: quote the watchlist, emit a single waybar JSON line."""

import asyncio
import logging
from typing import Dict, List, Optional, Union

import httpx

from waybar_finance.config import Config
from waybar_finance.constants import WAYBAR_CLASS, WAYBAR_DOWN, WAYBAR_ERROR, WAYBAR_UP
from waybar_finance.errors import FetchError
from waybar_finance.models import Quote
from waybar_finance.provider import fetch_quote

logger = logging.getLogger(__name__)


def format_output(symbols: List[str], quotes: List[Union[Quote, Exception]]) -> Dict[str, str]:
    text_parts = []
    tooltip_parts = []
    for symbol, quote in zip(symbols, quotes):
        if isinstance(quote, Quote):
            color, icon = (WAYBAR_UP, "▲") if quote.percent >= 0 else (WAYBAR_DOWN, "▼")
            text_parts.append(f"<span color='{color}'>{symbol} {quote.price:.2f} {icon}</span>")
            tooltip_parts.append(f"{symbol}: ${quote.price:.2f} ({quote.percent:.2f}%)")
        else:
            text_parts.append(f"<span color='{WAYBAR_ERROR}'>{symbol} ???</span>")
    return {
        "text": " ".join(text_parts),
        "tooltip": "\n".join(tooltip_parts),
        "class": WAYBAR_CLASS,
    }


async def run_waybar(client: httpx.AsyncClient, config: Config) -> Optional[Dict[str, str]]:
    """Quote every watchlist symbol concurrently. None when there is no API key."""
    if not config.api_key:
        return None

    async def _one(symbol: str):
        try:
            return await fetch_quote(client, symbol, config.api_key)
        except FetchError as e:
            logger.warning("quote %s failed: %s", symbol, e)
            return e

    quotes = await asyncio.gather(*(_one(s) for s in config.stocks))
    return format_output(config.stocks, list(quotes))
