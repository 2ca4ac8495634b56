"""
View layer contract and the in-memory view.

The engine never inspects the view to find out what is on the board; it keeps
its own id → RenderedItem map and only tells the view what to change.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from .schema import State

logger = logging.getLogger(__name__)


class BoardView(Protocol):
    def build_columns(self, states: List[State]) -> None: ...
    def clear(self) -> None: ...
    def create_card(self, state: str, record_id: str, content: str) -> Any: ...
    def update_card(self, element: Any, content: str) -> None: ...
    def move_card(self, element: Any, state: str) -> None: ...
    def remove_card(self, element: Any) -> None: ...
    def set_column_visible(self, state: str, visible: bool) -> None: ...
    def set_column_class(self, visible_count: int) -> None: ...
    def set_header_total(self, state: str, total: int) -> None: ...
    def normalize_heights(self, height: Optional[str]) -> None: ...
    def show_error(self, message: str) -> None: ...


@dataclass
class CardElement:
    record_id: str
    state: str
    content: str = ""


@dataclass
class ColumnElement:
    name: str
    title: str
    visible: bool = True
    total: int = 0
    cards: List[CardElement] = field(default_factory=list)
    height: Optional[str] = None


class MemoryBoardView:
    """A BoardView that keeps the board in memory; used by the CLI, the HTTP host and tests."""

    def __init__(self):
        self.columns: Dict[str, ColumnElement] = {}
        self.column_class: int = 0
        self.height: Optional[str] = None
        self.errors: List[str] = []
        self.layout_passes = 0

    # ── BoardView ────────────────────────────────────────────

    def build_columns(self, states: List[State]) -> None:
        self.columns = {
            s.name: ColumnElement(name=s.name, title=s.title, visible=s.is_visible)
            for s in states
        }

    def clear(self) -> None:
        for column in self.columns.values():
            column.cards = []
            column.total = 0

    def create_card(self, state: str, record_id: str, content: str) -> CardElement:
        element = CardElement(record_id=record_id, state=state, content=content)
        self.columns[state].cards.append(element)
        return element

    def update_card(self, element: CardElement, content: str) -> None:
        element.content = content

    def move_card(self, element: CardElement, state: str) -> None:
        if element.state == state:
            return
        source = self.columns.get(element.state)
        if source is not None and element in source.cards:
            source.cards.remove(element)
        self.columns[state].cards.append(element)
        element.state = state

    def remove_card(self, element: CardElement) -> None:
        column = self.columns.get(element.state)
        if column is not None and element in column.cards:
            column.cards.remove(element)

    def set_column_visible(self, state: str, visible: bool) -> None:
        self.columns[state].visible = visible

    def set_column_class(self, visible_count: int) -> None:
        self.column_class = visible_count

    def set_header_total(self, state: str, total: int) -> None:
        self.columns[state].total = total

    def normalize_heights(self, height: Optional[str]) -> None:
        self.height = height
        for column in self.columns.values():
            column.height = height if column.visible else None
        self.layout_passes += 1

    def show_error(self, message: str) -> None:
        logger.error(f"Board error: {message}")
        self.errors.append(message)

    # ── Inspection ───────────────────────────────────────────

    def card_ids(self, state: str) -> List[str]:
        return [c.record_id for c in self.columns[state].cards]

    def find_card(self, record_id: str) -> Optional[CardElement]:
        for column in self.columns.values():
            for card in column.cards:
                if card.record_id == record_id:
                    return card
        return None

    def snapshot(self) -> Dict[str, Any]:
        """JSON-friendly view of the board."""
        return {
            "column_class": f"states-{self.column_class}",
            "height": self.height,
            "errors": list(self.errors),
            "columns": [
                {
                    "name": c.name,
                    "title": c.title,
                    "visible": c.visible,
                    "total": c.total,
                    "cards": [{"id": card.record_id, "content": card.content} for card in c.cards],
                }
                for c in self.columns.values()
            ],
        }

    def render_text(self) -> str:
        """Plain-text dump of the visible columns."""
        if self.errors:
            return "\n".join(f"[ERROR] {e}" for e in self.errors)
        lines = []
        for column in self.columns.values():
            if not column.visible:
                continue
            lines.append(f"== {column.title} ({column.total}) ==")
            for card in column.cards:
                lines.append(f"  - [{card.record_id}] {card.content}")
            lines.append("")
        return "\n".join(lines).rstrip() + "\n"
