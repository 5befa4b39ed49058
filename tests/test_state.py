import random

from waybar_finance.config import Config
from waybar_finance.state import AppState, InputMode


def test_from_config_without_key_forces_key_entry():
    state = AppState.from_config(Config(stocks=["SPY"], api_key=None))
    assert state.mode is InputMode.EDITING_API_KEY
    assert state.selected == 0


def test_from_config_with_key_starts_normal():
    state = AppState.from_config(Config(stocks=[], api_key="k"))
    assert state.mode is InputMode.NORMAL
    assert state.selected is None


def test_navigation_wraps_modulo_length():
    rng = random.Random(7)
    for n in range(1, 6):
        state = AppState(stocks=[f"S{i}" for i in range(n)], selected=0)
        expected = 0
        for _ in range(40):
            if rng.random() < 0.5:
                state.next()
                expected = (expected + 1) % n
            else:
                state.previous()
                expected = (expected - 1) % n
            assert state.selected == expected
            assert 0 <= state.selected < n


def test_navigation_on_empty_list_stays_unset():
    state = AppState()
    state.next()
    state.previous()
    assert state.selected is None


def test_add_rejects_duplicates():
    state = AppState(stocks=["SPY"], selected=0)
    assert state.add_symbol("QQQ")
    assert state.selected == 1
    assert not state.add_symbol("SPY")
    assert state.stocks == ["SPY", "QQQ"]
    assert state.selected == 1


def test_delete_last_remaining_unsets_cursor():
    state = AppState(stocks=["SPY"], selected=0)
    assert state.delete_selected() == "SPY"
    assert state.stocks == []
    assert state.selected is None
    assert state.delete_selected() is None


def test_delete_tail_moves_cursor_up():
    state = AppState(stocks=["SPY", "QQQ", "DIA"], selected=2)
    state.delete_selected()
    assert state.stocks == ["SPY", "QQQ"]
    assert state.selected == 1


def test_delete_middle_keeps_index_in_range():
    state = AppState(stocks=["SPY", "QQQ", "DIA"], selected=1)
    state.delete_selected()
    assert state.stocks == ["SPY", "DIA"]
    assert state.selected == 1
    assert state.selected_symbol == "DIA"


def test_focus_change_clears_symbol_panels():
    state = AppState(stocks=["SPY"], selected=0)
    state.focus("SPY")
    state.quote = object()
    state.focus("SPY")
    assert state.quote is not None
    state.focus("QQQ")
    assert state.quote is None
    assert state.focused_symbol == "QQQ"


def test_search_cursor_wraps():
    from waybar_finance.models import SearchResult

    state = AppState()
    state.search_results = [SearchResult("A"), SearchResult("B")]
    state.search_selected = 0
    state.next_search()
    state.next_search()
    assert state.search_selected == 0
    state.previous_search()
    assert state.search_selected == 1
    state.reset_search()
    assert state.search_results == [] and state.search_selected is None
