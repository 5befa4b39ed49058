import os

APP_NAME = "waybar-finance"

# Local config lives under the XDG config dir, shared config is the dotfiles one
CONFIG_HOME = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
CONFIG_PATH = os.path.join(CONFIG_HOME, APP_NAME, "config.json")
SHARED_CONFIG_PATH = os.path.join(os.path.expanduser("~"), ".config", "rust-dotfiles", "config.toml")
SHARED_CONFIG_SECTION = "waybar_finance"
LOG_FILENAME = "waybar-finance.log"

API_KEY_ENV = "FINNHUB_API_KEY"

DEFAULT_WATCHLIST = ["SCHO", "SPY", "BITB", "SGOL", "QQQ"]

DEFAULT_TICK = 0.25
DEFAULT_MARKET_INTERVAL = 180  # 3 minutes
MESSAGE_TTL = 5.0  # failure messages fade back to "Ready"

HTTP_TIMEOUT = 10.0
USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

FINNHUB_QUOTE_URL = "https://finnhub.io/api/v1/quote"
YAHOO_WARMUP_URL = "https://fc.yahoo.com"
YAHOO_CRUMB_URL = "https://query2.finance.yahoo.com/v1/test/getcrumb"
YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
YAHOO_QUOTE_URL = "https://query2.finance.yahoo.com/v7/finance/quote"
YAHOO_SEARCH_URL = "https://query2.finance.yahoo.com/v1/finance/search"

SEARCH_LIMIT = 10
HISTORY_RANGE = "1y"
HISTORY_INTERVAL = "1d"

# Reference yields shown in the banner, keyed by the field they fill
YIELD_SYMBOLS = {
    "yield_long": "^TNX",   # 10Y
    "yield_mid": "^FVX",    # 5Y
    "yield_short": "^IRX",  # 13W
}

YIELD_LABELS = [
    ("13W", "yield_short"),
    ("5Y", "yield_mid"),
    ("10Y", "yield_long"),
]

# Waybar markup colors
WAYBAR_UP = "#a6e3a1"
WAYBAR_DOWN = "#f38ba8"
WAYBAR_ERROR = "#6c7086"
WAYBAR_CLASS = "finance"
