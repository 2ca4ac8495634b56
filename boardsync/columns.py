"""
Column model: the ordered, immutable set of board states and their visibility.

Only `is_visible` ever changes after construction. Visibility changes are
all-or-nothing: a request naming fewer than two known columns is ignored.
"""
import logging
from typing import Dict, Iterator, List, Optional, Sequence, Union

from .context import BoardContext
from .events import COLUMNS_CHANGED
from .schema import State

logger = logging.getLogger(__name__)

MIN_VISIBLE = 2


class ColumnModel:
    """Owns the board columns for one board."""

    def __init__(self, ctx: BoardContext, states: List[State]):
        self.ctx = ctx
        self.max_visible = ctx.config.max_visible
        self.states = list(states)
        self._by_name: Dict[str, State] = {}
        for index, state in enumerate(self.states):
            if state.name in self._by_name:
                raise ValueError(f"Duplicate column name: {state.name!r}")
            self._by_name[state.name] = state
            state.is_visible = index < self.max_visible
        self.visible_count: Optional[int] = None  # last count pushed to the view

    def __iter__(self) -> Iterator[State]:
        return iter(self.states)

    def __len__(self) -> int:
        return len(self.states)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def get(self, name: str) -> Optional[State]:
        return self._by_name.get(name)

    def names(self) -> List[str]:
        return [s.name for s in self.states]

    def resolve(self, identifier: str) -> Optional[State]:
        """Find a column by internal name, falling back to its title."""
        state = self._by_name.get(identifier)
        if state is not None:
            return state
        for state in self.states:
            if state.title == identifier:
                return state
        return None

    def get_visible_count(self) -> int:
        return sum(1 for s in self.states if s.is_visible)

    def visible_titles(self) -> List[str]:
        return [s.title for s in self.states if s.is_visible]

    def list(self) -> List[Dict]:
        """Safe copy of the columns; changing it does not touch the board."""
        return [s.to_dict() for s in self.states]

    def set_visible(self, identifiers: Union[Sequence[str], str]) -> bool:
        """
        Make exactly the given columns visible (names or titles, or "all").

        At most `max_visible` columns are shown, taken in the caller's order;
        everything else is hidden. Returns False and changes nothing when fewer
        than two known columns were given.
        """
        if isinstance(identifiers, str):
            if identifiers.lower() != "all":
                logger.warning(f"set_visible: expected a list of columns or 'all', got {identifiers!r}")
                return False
            identifiers = self.names()

        chosen: List[State] = []
        for identifier in identifiers or []:
            state = self.resolve(identifier)
            if state is not None and state not in chosen:
                chosen.append(state)

        if len(chosen) < MIN_VISIBLE:
            logger.info(f"set_visible ignored: {len(chosen)} known column(s) given, need {MIN_VISIBLE}")
            return False

        if len(chosen) > self.max_visible:
            logger.warning(
                f"set_visible: {len(chosen)} columns requested, showing the first {self.max_visible}"
            )
            chosen = chosen[:self.max_visible]

        visible_names = {s.name for s in chosen}
        for state in self.states:
            state.is_visible = state.name in visible_names
            self.ctx.view.set_column_visible(state.name, state.is_visible)

        self.set_column_class(len(chosen))
        self.ctx.view.normalize_heights(self.ctx.height)
        self.ctx.events.emit(COLUMNS_CHANGED, self.visible_titles())
        return True

    def set_column_class(self, count: Optional[int] = None) -> None:
        """Tag the board with the number of visible columns (layout only)."""
        if not count or count < MIN_VISIBLE:
            count = self.get_visible_count()
        if count == self.visible_count:
            return
        self.visible_count = count
        self.ctx.view.set_column_class(count)
