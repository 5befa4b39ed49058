import time
from datetime import datetime
from typing import Optional

from rich.align import Align
from rich.console import Group
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from waybar_finance.chart import HistoryChart
from waybar_finance.constants import YIELD_LABELS
from waybar_finance.formatting import (
    fmt_market_cap, fmt_num, fmt_pct, fmt_price, fmt_spread, fmt_yield_val,
)
from waybar_finance.state import AppState, InputMode, INFO

HINTS = {
    InputMode.NORMAL: "q:Quit  a:Add  d:Del  ↓/↑:Nav  Enter:Select",
    InputMode.EDITING_SYMBOL: "Enter:Confirm  Tab:Complete  ↓/↑:Results  Esc:Cancel",
    InputMode.EDITING_API_KEY: "Enter:Save  Esc:Quit",
}

API_KEY_TITLE = "Enter Finnhub API Key (Enter to Save)"
API_KEY_HELP = "This is an app requirement. Visit finnhub.io/register to obtain a key."


def make_banner(state: AppState, now: float) -> Panel:
    clock = Text(datetime.fromtimestamp(now).strftime("%H:%M:%S"), style="dim")
    left = Text()
    status = state.market_status
    if status is None:
        left.append("Loading Market Data...", style="grey46")
    else:
        left.append("TREASURY YIELDS: ", style="bold yellow")
        for label, attr in YIELD_LABELS:
            left.append(f"{label}: ")
            left.append_text(fmt_yield_val(getattr(status, attr)))
            left.append("  ")
        left.append("| ", style="grey30")
        left.append("10Y-3M Spread: ")
        left.append_text(fmt_spread(status.spread))

    table = Table(expand=True, box=None, show_header=False, padding=0)
    table.add_column("left")
    table.add_column("right", justify="right")
    table.add_row(left, clock)
    return Panel(table, title="[bold grey70]WAYBAR FINANCE[/bold grey70]", border_style="grey70")


def build_watchlist_panel(state: AppState) -> Panel:
    table = Table(expand=True, box=None, show_header=False, padding=(0, 1))
    table.add_column("Symbol", no_wrap=True)
    if not state.stocks:
        table.add_row(Text("empty — press 'a' to add", style="dim"))
    for i, sym in enumerate(state.stocks):
        if i == state.selected:
            table.add_row(Text(f">> {sym}", style="bold white on blue"))
        else:
            table.add_row(Text(f"   {sym}", style="white"))
    return Panel(table, title="[bold grey70]WATCHLIST[/bold grey70]", border_style="grey70")


def build_chart_panel(state: AppState) -> Panel:
    title = "[bold grey70]1 YEAR HISTORY[/bold grey70]"
    if state.history:
        body = HistoryChart(state.history)
    elif state.history_error:
        body = Text(f"No chart: {state.history_error}", style="red")
    elif state.focused_symbol:
        body = Text("loading...", style="dim")
    else:
        body = Text("Press Enter to load Chart", style="dim")
    subtitle = state.focused_symbol or ""
    return Panel(body, title=title, subtitle=f"[grey46]{subtitle}[/grey46]",
                 subtitle_align="right", border_style="grey70")


def build_details_panel(state: AppState) -> Panel:
    title = "[bold grey70]FUNDAMENTALS[/bold grey70]"
    quote = state.quote
    details = state.details
    if quote is None and details is None:
        placeholder = "loading..." if state.focused_symbol else "—"
        return Panel(Align.center(Text(placeholder, style="dim")), title=title, border_style="grey70")

    table = Table(expand=True, box=None, show_header=False, padding=(0, 1))
    for _ in range(3):
        table.add_column(style="grey70", no_wrap=True)
        table.add_column(justify="right", no_wrap=True)

    def val(fn, attr, *args):
        return fn(getattr(details, attr), *args) if details else Text("loading...", style="dim")

    price = fmt_price(quote.price) if quote else Text("loading...", style="dim")
    change = fmt_pct(quote.percent) if quote else Text("loading...", style="dim")
    high = val(fmt_price, "high_52w", "green")
    low = val(fmt_price, "low_52w", "red")
    table.add_row("Price", price, "Mkt Cap", val(fmt_market_cap, "market_cap"),
                  "YTD Ret", val(fmt_num, "year_return", "%"))
    table.add_row("Change", change, "P/E Ratio", val(fmt_num, "pe_ratio"),
                  "Div Yield", val(fmt_num, "dividend_yield", "%"))
    table.add_row("52W High", high, "52W Low", low, "", "")
    return Panel(table, title=title, subtitle=f"[grey46]{state.focused_symbol or ''}[/grey46]",
                 subtitle_align="right", border_style="grey70")


def build_symbol_overlay(state: AppState) -> Panel:
    entry = Panel(Text(state.input + "█"), title="Input Stock Ticker (Enter to Confirm, Esc to Cancel)",
                  border_style="yellow")
    results = Table(expand=True, box=None, show_header=False, padding=(0, 1))
    results.add_column("Symbol", no_wrap=True, min_width=8)
    results.add_column("Type", no_wrap=True, min_width=10)
    results.add_column("Name")
    if not state.search_results:
        results.add_row(Text("—", style="dim"), "", "")
    for i, r in enumerate(state.search_results):
        style = "white on grey30" if i == state.search_selected else None
        results.add_row(Text(r.symbol, style=style), Text(r.quote_type or "", style=style),
                        Text(r.name or "Unknown", style=style))
    return Panel(Group(entry, Panel(results, title="Results", border_style="grey50")),
                 border_style="yellow", width=80)


def build_api_key_overlay(state: AppState) -> Panel:
    body = Group(Text(API_KEY_HELP, style="grey70"), Text(""), Text(state.input + "█"))
    return Panel(body, title=API_KEY_TITLE, border_style="yellow", width=80)


def build_footer(state: AppState, now: float) -> Table:
    expired = state.message_until is not None and now >= state.message_until
    message = Text("Ready", style=INFO) if expired else Text(state.message, style=state.message_color)
    table = Table(expand=True, box=None, show_header=False, padding=(0, 1))
    table.add_column("status", ratio=1, no_wrap=True)
    table.add_column("hints", ratio=1, justify="right", no_wrap=True)
    table.add_row(message, Text(HINTS[state.mode], style="grey46"))
    return table


def build_dashboard(state: AppState) -> Layout:
    body = Layout()
    body.split_row(
        Layout(build_watchlist_panel(state), name="watchlist", ratio=3),
        Layout(name="right", ratio=7),
    )
    body["right"].split_column(
        Layout(build_chart_panel(state), name="chart", ratio=7),
        Layout(build_details_panel(state), name="details", size=5),
    )
    return body


def build_layout(state: AppState, now: Optional[float] = None) -> Layout:
    """Render state into a frame. Reads state only."""
    now = time.time() if now is None else now
    layout = Layout()
    layout.split_column(
        Layout(name="banner", size=3),
        Layout(name="body"),
        Layout(name="footer", size=1),
    )
    layout["banner"].update(make_banner(state, now))

    if state.mode is InputMode.EDITING_API_KEY:
        layout["body"].update(Align.center(build_api_key_overlay(state), vertical="middle"))
    elif state.mode is InputMode.EDITING_SYMBOL:
        layout["body"].update(Align.center(build_symbol_overlay(state), vertical="middle"))
    else:
        layout["body"].update(build_dashboard(state))

    layout["footer"].update(build_footer(state, now))
    return layout
