import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Callable, Optional

from rich.console import Console
from rich.live import Live

from waybar_finance.bus import EventBus
from waybar_finance.config import Config, config_path, load_config
from waybar_finance.constants import APP_NAME, LOG_FILENAME
from waybar_finance.controller import Controller
from waybar_finance.keyboard import KeyReader
from waybar_finance.provider import make_client
from waybar_finance.state import AppState
from waybar_finance.ui import build_layout
from waybar_finance.waybar import run_waybar

logger = logging.getLogger(__name__)


def setup_logging(tui: bool, verbose: bool, cfg_path: str):
    level = logging.DEBUG if verbose else logging.INFO
    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    if tui:
        # The terminal belongs to Live, so log next to the config file
        log_dir = os.path.dirname(cfg_path) or "."
        os.makedirs(log_dir, exist_ok=True)
        logging.basicConfig(filename=os.path.join(log_dir, LOG_FILENAME), level=level, format=fmt)
    else:
        logging.basicConfig(stream=sys.stderr, level=logging.DEBUG if verbose else logging.WARNING,
                            format=fmt)
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def consume(bus: EventBus, controller: Controller, render: Callable[[AppState], None]):
    """The single consumer: apply each event, redraw, stop on quit."""
    state = controller.state
    render(state)
    while not state.should_quit:
        event = await bus.next_event()
        controller.handle(event)
        render(state)


async def run_tui(config: Config, path: str, console: Optional[Console] = None) -> bool:
    """Run the dashboard until quit. Returns whether the final save succeeded."""
    state = AppState.from_config(config)
    console = console or Console()
    saved = False
    async with make_client() as client:
        bus = EventBus(client)
        controller = Controller(state, bus, config_path=path, base_config=config)
        try:
            with KeyReader() as reader:
                bus.start(reader, tick_interval=config.tick_interval,
                          market_interval=config.market_interval)
                with Live(build_layout(state), console=console, screen=True,
                          auto_refresh=False, transient=True) as live:
                    await consume(bus, controller,
                                  lambda s: live.update(build_layout(s), refresh=True))
        finally:
            saved = controller.persist()
            await bus.shutdown()
    return saved


async def _waybar(config: Config):
    async with make_client() as client:
        return await run_waybar(client, config)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog=APP_NAME, description="Watchlist dashboard and waybar module")
    parser.add_argument("-t", "--tui", action="store_true", help="launch the interactive dashboard")
    parser.add_argument("--config", default="", help="path to config.json")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args(argv)

    path = config_path(args.config)
    setup_logging(args.tui, args.verbose, path)
    config = load_config(path)

    if not args.tui:
        output = asyncio.run(_waybar(config))
        if output is None:
            print("Error: API key not found in config.json", file=sys.stderr)
            return 0
        print(json.dumps(output))
        return 0

    if not sys.stdin.isatty():
        print(f"[{APP_NAME}] --tui needs an interactive terminal", file=sys.stderr)
        return 1

    print(f"[{APP_NAME}] Initializing TUI mode...")
    logger.info("starting with %d symbols", len(config.stocks))
    saved = True
    try:
        saved = asyncio.run(run_tui(config, path))
    except KeyboardInterrupt:
        pass
    if not saved:
        print(f"[{APP_NAME}] Could not save {path}, see {LOG_FILENAME}", file=sys.stderr)
    print(f"[{APP_NAME}] Goodbye.")
    return 0
