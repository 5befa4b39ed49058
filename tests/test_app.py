import asyncio
import io
import json

import httpx

from waybar_finance import app
from waybar_finance.bus import EventBus
from waybar_finance.config import Config, load_config
from waybar_finance.controller import Controller
from waybar_finance.events import DOWN, ENTER, DetailsFetched, HistoryFetched, KeyPress, QuoteFetched
from waybar_finance.models import Quote
from waybar_finance.state import AppState, InputMode
from waybar_finance.ui import build_layout

CHART = {"chart": {"result": [{"timestamp": [1, 2, 3], "indicators": {"quote": [{"close": [1.0, 2.0, 3.0]}]}}],
                   "error": None}}


def _keys(text):
    return [KeyPress(ENTER) if ch == "\n" else KeyPress.of(ch) for ch in text]


def _routes(quotes, slow=()):
    async def quote(request):
        sym = request.url.params["symbol"]
        if sym in slow:
            await asyncio.sleep(0.2)
        price, pct = quotes[sym]
        return httpx.Response(200, json={"c": price, "dp": pct})

    return {
        "fc.yahoo.com": httpx.Response(404),
        "/v1/test/getcrumb": "crumb",
        "/api/v1/quote": quote,
        "/v1/finance/search": {"quotes": [{"symbol": "AAPL", "shortname": "Apple", "quoteType": "EQUITY"}]},
        "/v7/finance/quote": lambda r: httpx.Response(200, json={"quoteResponse": {"result": [
            {"symbol": s, "marketCap": 1e12} for s in r.url.params["symbols"].split(",")]}}),
        "/v8/finance/chart/AAPL": CHART,
        "/v8/finance/chart/TSLA": CHART,
        "/v8/finance/chart/MSFT": CHART,
    }


def test_first_run_to_first_quote(tmp_path, make_client):
    path = str(tmp_path / "config.json")
    cfg = load_config(path, shared_path=str(tmp_path / "none.toml"), env_file="")
    cfg.stocks = []
    state = AppState.from_config(cfg)
    client, _ = make_client(_routes({"AAPL": (150.25, 1.2)}))
    frames = []

    async def run():
        async with client:
            bus = EventBus(client)
            ctl = Controller(state, bus, config_path=path, base_config=cfg)
            for ev in _keys("abc123\naaapl\n"):
                bus.post(ev)
            got = set()
            while got != {QuoteFetched, HistoryFetched, DetailsFetched}:
                ev = await asyncio.wait_for(bus.next_event(), 2)
                ctl.handle(ev)
                frames.append(build_layout(state))
                if type(ev) in (QuoteFetched, HistoryFetched, DetailsFetched):
                    got.add(type(ev))
            await bus.shutdown()

    asyncio.run(run())
    assert state.mode is InputMode.NORMAL
    assert state.stocks == ["AAPL"]
    assert state.selected == 0
    assert state.quote == Quote(150.25, 1.2)
    assert state.history == [(1.0, 1.0), (2.0, 2.0), (3.0, 3.0)]
    assert state.details.market_cap == 1e12
    with open(path) as f:
        assert json.load(f) == {"stocks": [], "api_key": "abc123"}
    assert frames


def test_slow_stale_quote_is_discarded(make_client):
    state = AppState(stocks=["TSLA", "MSFT"], selected=0, api_key="k")
    client, _ = make_client(_routes({"TSLA": (250.0, -3.0), "MSFT": (410.0, 0.4)}, slow=("TSLA",)))

    async def run():
        async with client:
            bus = EventBus(client)
            ctl = Controller(state, bus, saver=lambda cfg, path: None)
            for ev in (KeyPress(ENTER), KeyPress(DOWN), KeyPress(ENTER)):
                ctl.handle(ev)
            quotes = []
            while len(quotes) < 2:
                ev = await asyncio.wait_for(bus.next_event(), 2)
                ctl.handle(ev)
                if isinstance(ev, QuoteFetched):
                    quotes.append(ev.symbol)
            await bus.shutdown()
            return quotes

    assert asyncio.run(run()) == ["MSFT", "TSLA"]
    assert state.focused_symbol == "MSFT"
    assert state.quote == Quote(410.0, 0.4)


def test_consume_stops_on_quit():
    state = AppState(stocks=["SPY", "QQQ"], selected=0, api_key="k")
    rendered = []

    async def run():
        bus = EventBus(client=None)
        ctl = Controller(state, bus, saver=lambda cfg, path: None)
        bus.post(KeyPress.of("q"))
        bus.post(KeyPress(DOWN))  # never consumed
        await asyncio.wait_for(app.consume(bus, ctl, lambda s: rendered.append(s.selected)), 2)
        return bus.queue.qsize()

    assert asyncio.run(run()) == 1
    assert state.should_quit
    assert rendered == [0, 0]


def test_main_waybar_mode(tmp_path, monkeypatch, capsys, make_client):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"stocks": ["SPY"], "api_key": "k"}))
    client, _ = make_client({"/api/v1/quote": {"c": 500.0, "dp": 0.25}})
    monkeypatch.setattr(app, "make_client", lambda: client)
    monkeypatch.setattr("waybar_finance.config.SHARED_CONFIG_PATH", str(tmp_path / "none.toml"))

    assert app.main(["--config", str(path)]) == 0
    out = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert out["class"] == "finance"
    assert "SPY 500.00" in out["text"]


def test_main_waybar_mode_without_key(tmp_path, monkeypatch, capsys):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"stocks": ["SPY"], "api_key": None}))
    monkeypatch.setattr("waybar_finance.config.SHARED_CONFIG_PATH", str(tmp_path / "none.toml"))

    assert app.main(["--config", str(path)]) == 0
    captured = capsys.readouterr()
    assert "API key not found" in captured.err
    assert captured.out.strip() == ""


class _ScriptedReader:
    """Stands in for the terminal: hands out queued keys, then reports closed."""

    instances = []

    def __init__(self):
        self.keys = _keys("q")
        self.entered = False
        self.exited = False
        _ScriptedReader.instances.append(self)

    def __enter__(self):
        self.entered = True
        return self

    def __exit__(self, *exc):
        self.exited = True

    def read(self):
        return self.keys.pop(0) if self.keys else None


def test_run_tui_restores_reader_and_saves(tmp_path, monkeypatch, make_client):
    path = str(tmp_path / "config.json")
    client, _ = make_client({})
    monkeypatch.setattr(app, "make_client", lambda: client)
    monkeypatch.setattr(app, "KeyReader", _ScriptedReader)
    _ScriptedReader.instances.clear()
    console = app.Console(file=io.StringIO(), width=100, height=30)

    saved = asyncio.run(app.run_tui(Config(stocks=["SPY"], api_key="k"), path, console=console))

    assert saved
    reader, = _ScriptedReader.instances
    assert reader.entered and reader.exited
    with open(path) as f:
        assert json.load(f) == {"stocks": ["SPY"], "api_key": "k"}
