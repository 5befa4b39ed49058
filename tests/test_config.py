import json
import os

from waybar_finance.config import Config, load_config, normalize_symbols, parse_interval, save_config
from waybar_finance.constants import API_KEY_ENV, DEFAULT_MARKET_INTERVAL, DEFAULT_WATCHLIST
from waybar_finance.state import AppState


def _load(tmp_path, name="config.json", shared="", **kw):
    shared_path = tmp_path / "shared.toml"
    if shared:
        shared_path.write_text(shared)
    return load_config(str(tmp_path / name), shared_path=str(shared_path), env_file="", **kw)


def test_missing_file_uses_defaults(tmp_path):
    cfg = _load(tmp_path)
    assert cfg.stocks == DEFAULT_WATCHLIST
    assert cfg.api_key is None
    assert AppState.from_config(cfg).mode.name == "EDITING_API_KEY"


def test_round_trip(tmp_path):
    path = str(tmp_path / "nested" / "dir" / "config.json")
    save_config(Config(stocks=["QQQ", "SPY", "NVDA"], api_key="abc"), path)
    assert os.path.exists(path)
    cfg = load_config(path, shared_path=str(tmp_path / "none.toml"), env_file="")
    assert cfg.stocks == ["QQQ", "SPY", "NVDA"]
    assert cfg.api_key == "abc"

    state = AppState.from_config(cfg)
    save_config(state.to_config(), path)
    again = load_config(path, shared_path=str(tmp_path / "none.toml"), env_file="")
    assert again.stocks == cfg.stocks
    assert again.api_key == cfg.api_key


def test_saved_file_layout(tmp_path):
    path = tmp_path / "config.json"
    save_config(Config(stocks=["SPY"], api_key=None), str(path))
    assert json.loads(path.read_text()) == {"stocks": ["SPY"], "api_key": None}


def test_load_dedupes_and_uppercases(tmp_path):
    (tmp_path / "config.json").write_text(json.dumps({"stocks": ["spy", "SPY", " qqq", ""], "api_key": "k"}))
    cfg = _load(tmp_path)
    assert cfg.stocks == ["SPY", "QQQ"]


def test_malformed_file_falls_back(tmp_path, capsys):
    (tmp_path / "config.json").write_text("{not json")
    cfg = _load(tmp_path)
    assert cfg.stocks == DEFAULT_WATCHLIST
    assert "[warning]" in capsys.readouterr().out


def test_shared_config_fills_missing_key_and_stocks(tmp_path):
    shared = '[waybar_finance]\napi_key = "shared-key"\nstocks = ["SPY", "QQQ", "NVDA"]\nmarket_interval = "5m"\n'
    cfg = _load(tmp_path, shared=shared)
    assert cfg.api_key == "shared-key"
    assert cfg.stocks == ["SPY", "QQQ", "NVDA"]
    assert cfg.market_interval == 300


def test_local_file_takes_precedence(tmp_path):
    (tmp_path / "config.json").write_text(json.dumps({"stocks": ["DIA"], "api_key": "local"}))
    shared = '[waybar_finance]\napi_key = "shared-key"\nstocks = ["SPY"]\n'
    cfg = _load(tmp_path, shared=shared)
    assert cfg.api_key == "local"
    assert cfg.stocks == ["DIA"]


def test_shared_key_used_when_local_has_none(tmp_path):
    (tmp_path / "config.json").write_text(json.dumps({"stocks": ["DIA"], "api_key": None}))
    cfg = _load(tmp_path, shared='[waybar_finance]\napi_key = "shared-key"\n')
    assert cfg.api_key == "shared-key"
    assert cfg.stocks == ["DIA"]


def test_env_key_is_last_resort(tmp_path, monkeypatch):
    monkeypatch.setenv(API_KEY_ENV, "from-env")
    assert _load(tmp_path).api_key == "from-env"


def test_dotenv_file_is_loaded(tmp_path):
    (tmp_path / ".env").write_text(f"{API_KEY_ENV}=dotenv-key\n")
    cfg = load_config(str(tmp_path / "config.json"), shared_path=str(tmp_path / "none.toml"),
                      env_file=str(tmp_path / ".env"))
    assert cfg.api_key == "dotenv-key"
    os.environ.pop(API_KEY_ENV, None)


def test_parse_interval():
    assert parse_interval("10s", 1) == 10
    assert parse_interval("3m", 1) == 180
    assert parse_interval("1h", 1) == 3600
    assert parse_interval("soon", DEFAULT_MARKET_INTERVAL) == DEFAULT_MARKET_INTERVAL


def test_normalize_symbols():
    assert normalize_symbols(["a", "B", "a", " c "]) == ["A", "B", "C"]
