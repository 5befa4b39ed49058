from typing import Optional

from rich.text import Text

PLACEHOLDER = "—"


def fmt_price(val: Optional[float], style: str = "cyan") -> Text:
    if val is None:
        return Text(PLACEHOLDER, style="dim")
    return Text(f"${val:,.2f}", style=style)


def fmt_pct(val: Optional[float]) -> Text:
    if val is None:
        return Text(PLACEHOLDER, style="dim")
    sign = "+" if val >= 0 else ""
    style = "green" if val >= 0 else "red"
    return Text(f"{sign}{val:.2f}%", style=style)


def fmt_num(val: Optional[float], suffix: str = "") -> Text:
    if val is None:
        return Text("N/A", style="dim")
    return Text(f"{val:.2f}{suffix}", style="cyan")


def fmt_market_cap(val: Optional[float]) -> Text:
    if val is None:
        return Text("N/A", style="dim")
    if val >= 1_000_000_000_000:
        s = f"${val / 1_000_000_000_000:.2f}T"
    elif val >= 1_000_000_000:
        s = f"${val / 1_000_000_000:.2f}B"
    elif val >= 1_000_000:
        s = f"${val / 1_000_000:.0f}M"
    else:
        s = f"${val:,.0f}"
    return Text(s, style="cyan")


def fmt_yield_val(val: Optional[float]) -> Text:
    if val is None:
        return Text(PLACEHOLDER, style="dim")
    return Text(f"{val:.2f}%", style="cyan")


def fmt_spread(val: float) -> Text:
    style = "red" if val < 0 else "green"
    return Text(f"{val:.2f}%", style=style)
