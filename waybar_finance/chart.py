from datetime import datetime, timezone
from typing import List

from rich.console import Console, ConsoleOptions, RenderResult
from rich.text import Text

from waybar_finance.models import History

BLOCKS = "▁▂▃▄▅▆▇█"
LABEL_WIDTH = 9


def resample(values: List[float], width: int) -> List[float]:
    """Pick one value per column, keeping the last point of each bucket."""
    n = len(values)
    if n <= width:
        return list(values)
    return [values[int((i + 1) * n / width) - 1] for i in range(width)]


def _date(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d")


class HistoryChart:
    """Area chart of closing prices, sized to the space rich gives it."""

    def __init__(self, history: History, height: int = 10):
        self.history = history
        self.height = max(height, 2)

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        width = max(options.max_width - LABEL_WIDTH, 10)
        closes = [p for _, p in self.history]
        values = resample(closes, width)
        lo, hi = min(closes), max(closes)
        span = (hi - lo) or 1.0
        color = "green" if closes[-1] >= closes[0] else "red"
        steps = self.height * 8
        levels = [int(round((v - lo) / span * (steps - 1))) for v in values]

        for row in range(self.height - 1, -1, -1):
            if row == self.height - 1:
                label = f"{hi:>8.2f} "
            elif row == 0:
                label = f"{lo:>8.2f} "
            else:
                label = " " * LABEL_WIDTH
            cells = []
            for lvl in levels:
                filled = lvl + 1 - row * 8
                if filled >= 8:
                    cells.append(BLOCKS[-1])
                elif filled <= 0:
                    cells.append(" ")
                else:
                    cells.append(BLOCKS[filled - 1])
            line = Text(label, style="grey50")
            line.append("".join(cells), style=color)
            yield line

        start, end = _date(self.history[0][0]), _date(self.history[-1][0])
        gap = max(len(values) - len(start) - len(end), 1)
        yield Text(" " * LABEL_WIDTH + start + " " * gap + end, style="grey50")
