import json
import os
import re
import tomllib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from waybar_finance.constants import (
    CONFIG_PATH, SHARED_CONFIG_PATH, SHARED_CONFIG_SECTION, API_KEY_ENV,
    DEFAULT_WATCHLIST, DEFAULT_TICK, DEFAULT_MARKET_INTERVAL,
)


def parse_interval(value: str, default: int) -> int:
    """Convert interval string like '10s', '3m', '1h', '1d' to seconds."""
    value = str(value).strip().lower()
    m = re.match(r"^(\d+)\s*(s|m|h|d)$", value)
    if not m:
        print(f"[warning] Invalid interval '{value}', using {default}s")
        return default
    num, unit = int(m.group(1)), m.group(2)
    multipliers = {"s": 1, "m": 60, "h": 3600, "d": 86400}
    return num * multipliers[unit]


def normalize_symbols(symbols: List[str]) -> List[str]:
    """Upper-case, strip and de-duplicate, keeping first occurrence order."""
    seen = set()
    result = []
    for s in symbols:
        sym = str(s).strip().upper()
        if sym and sym not in seen:
            seen.add(sym)
            result.append(sym)
    return result


@dataclass
class Config:
    stocks: List[str] = field(default_factory=lambda: list(DEFAULT_WATCHLIST))
    api_key: Optional[str] = None
    market_interval: int = DEFAULT_MARKET_INTERVAL
    tick_interval: float = DEFAULT_TICK

    def to_dict(self) -> Dict[str, Any]:
        return {"stocks": list(self.stocks), "api_key": self.api_key}


def config_path(override: str = "") -> str:
    return override or CONFIG_PATH


def _read_local(path: str) -> Optional[Dict[str, Any]]:
    """Return the parsed local JSON config, or None if absent or unreadable."""
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        print(f"[warning] Could not read {path}: {e}")
        return None
    if not isinstance(data, dict):
        print(f"[warning] {path} is not a JSON object, ignoring")
        return None
    return data


def _read_shared(path: str) -> Dict[str, Any]:
    """Return the [waybar_finance] table of the shared dotfiles config."""
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        print(f"[warning] Could not read {path}: {e}")
        return {}
    sect = data.get(SHARED_CONFIG_SECTION)
    return sect if isinstance(sect, dict) else {}


def load_config(path: str = "", shared_path: str = "", env_file: str = ".env") -> Config:
    """Build a Config from the local file, the shared file and the environment.

    The local file wins for whatever it holds. The shared dotfiles config and
    then FINNHUB_API_KEY fill in a missing key; the shared stock list is only
    used when there is no local file at all.
    """
    path = config_path(path)
    shared_path = shared_path or SHARED_CONFIG_PATH
    if env_file and os.path.exists(env_file):
        load_dotenv(env_file, override=False)

    cfg = Config()
    local = _read_local(path)
    shared = _read_shared(shared_path)

    if local is not None:
        stocks = local.get("stocks")
        if isinstance(stocks, list):
            cfg.stocks = normalize_symbols(stocks)
        key = local.get("api_key")
        if isinstance(key, str) and key.strip():
            cfg.api_key = key.strip()
    else:
        print(f"[notice] {path} not found, using defaults")
        stocks = shared.get("stocks")
        if isinstance(stocks, list) and stocks:
            cfg.stocks = normalize_symbols(stocks)

    if not cfg.api_key:
        key = shared.get("api_key") or os.environ.get(API_KEY_ENV, "")
        if isinstance(key, str) and key.strip():
            cfg.api_key = key.strip()

    if "market_interval" in shared:
        cfg.market_interval = parse_interval(shared["market_interval"], DEFAULT_MARKET_INTERVAL)

    return cfg


def save_config(cfg: Config, path: str = ""):
    """Write the watchlist and key as pretty JSON, creating parent dirs."""
    path = config_path(path)
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w") as f:
        json.dump(cfg.to_dict(), f, indent=2)
        f.write("\n")
