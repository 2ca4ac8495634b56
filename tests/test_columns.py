"""
Tests for the column model: initial visibility, set_visible bounds, events.
"""
import pytest

from boardsync.columns import ColumnModel
from boardsync.config import BoardConfig
from boardsync.context import BoardContext
from boardsync.events import COLUMNS_CHANGED
from boardsync.schema import State
from boardsync.view import MemoryBoardView


def _model(n=4, max_visible=10, ready=True):
    ctx = BoardContext(config=BoardConfig(list_name="Tasks", field="Status", max_visible=max_visible),
                       view=MemoryBoardView())
    states = [State(name=f"s{i}", title=f"Col {i}") for i in range(n)]
    model = ColumnModel(ctx, states)
    ctx.view.build_columns(states)
    if ready:
        ctx.events.mark_ready()
    return model, ctx


class TestInitialState:

    def test_columns_beyond_max_visible_start_hidden(self):
        model, _ = _model(n=12, max_visible=10)
        assert model.get_visible_count() == 10
        assert [c["is_visible"] for c in model.list()][-2:] == [False, False]

    def test_duplicate_names_rejected(self):
        ctx = BoardContext(config=BoardConfig(list_name="T", field="F"), view=MemoryBoardView())
        with pytest.raises(ValueError):
            ColumnModel(ctx, [State(name="a", title="A"), State(name="a", title="B")])

    def test_list_returns_a_copy(self):
        model, _ = _model()
        columns = model.list()
        columns[0]["is_visible"] = False
        columns[0]["title"] = "hacked"
        assert model.states[0].is_visible is True
        assert model.states[0].title == "Col 0"

    def test_resolve_by_name_or_title(self):
        model, _ = _model()
        assert model.resolve("s1").name == "s1"
        assert model.resolve("Col 2").name == "s2"
        assert model.resolve("missing") is None


class TestSetVisible:

    def test_single_column_rejected(self):
        model, ctx = _model()
        before = model.list()
        assert model.set_visible(["Col 1"]) is False
        assert model.list() == before

    def test_unknown_columns_do_not_count(self):
        model, _ = _model()
        assert model.set_visible(["Col 1", "nope", "also-nope"]) is False
        assert model.get_visible_count() == 4

    def test_same_column_twice_counts_once(self):
        model, _ = _model()
        assert model.set_visible(["Col 1", "s1"]) is False

    def test_two_columns_by_name_and_title(self):
        model, ctx = _model()
        assert model.set_visible(["s0", "Col 3"]) is True
        assert model.visible_titles() == ["Col 0", "Col 3"]
        assert ctx.view.columns["s1"].visible is False
        assert ctx.view.column_class == 2

    def test_excess_columns_cut_in_caller_order(self):
        model, _ = _model(n=6, max_visible=3)
        assert model.set_visible(["Col 5", "Col 0", "Col 4", "Col 1"]) is True
        assert model.get_visible_count() == 3
        assert [s.name for s in model.states if s.is_visible] == ["s0", "s4", "s5"]

    def test_all_keyword(self):
        model, _ = _model(n=5)
        model.set_visible(["Col 0", "Col 1"])
        assert model.set_visible("all") is True
        assert model.get_visible_count() == 5

    def test_all_keyword_respects_max_visible(self):
        model, _ = _model(n=12, max_visible=10)
        assert model.set_visible("ALL") is True
        assert model.get_visible_count() == 10

    def test_other_strings_rejected(self):
        model, _ = _model()
        assert model.set_visible("Col 1") is False

    @pytest.mark.parametrize("request_cols", [[], ["x"], ["Col 0"], ["Col 0", "Col 1"], ["Col 0", "Col 1", "Col 2", "Col 3"]])
    def test_visible_count_stays_in_bounds(self, request_cols):
        model, _ = _model(n=4, max_visible=3)
        before = model.get_visible_count()
        applied = model.set_visible(request_cols)
        count = model.get_visible_count()
        if applied:
            assert 2 <= count <= 3
        else:
            assert count == before


class TestColumnEvents:

    def test_change_emits_visible_titles(self):
        model, ctx = _model()
        seen = []
        ctx.events.subscribe(COLUMNS_CHANGED, seen.append)
        model.set_visible(["Col 2", "Col 0"])
        assert seen == [["Col 0", "Col 2"]]

    def test_no_event_before_board_is_ready(self):
        model, ctx = _model(ready=False)
        seen = []
        ctx.events.subscribe(COLUMNS_CHANGED, seen.append)
        assert model.set_visible(["Col 2", "Col 0"]) is True
        assert seen == []

    def test_rejected_change_emits_nothing(self):
        model, ctx = _model()
        seen = []
        ctx.events.subscribe(COLUMNS_CHANGED, seen.append)
        model.set_visible(["Col 2"])
        assert seen == []
