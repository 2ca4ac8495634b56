"""Per-board state shared by the engine components."""
from dataclasses import dataclass, field
from typing import Dict, Optional

from .config import BoardConfig
from .events import BoardEventBus
from .schema import Phase, QuerySource, RenderedItem, RenderHook
from .view import BoardView


@dataclass
class BoardContext:
    """Everything one board instance owns. Never shared between boards."""
    config: BoardConfig
    view: BoardView
    events: BoardEventBus = field(default_factory=BoardEventBus)
    query_source: Optional[QuerySource] = None
    render_hook: Optional[RenderHook] = None
    height: Optional[str] = None
    items: Dict[str, RenderedItem] = field(default_factory=dict)  # record id -> rendered item

    def __post_init__(self):
        if self.query_source is None:
            self.query_source = QuerySource.from_option(self.config.query)
        if self.render_hook is None:
            self.render_hook = RenderHook.from_option(self.config.template)
        if self.height is None:
            self.height = self.config.height

    @property
    def phase(self) -> Phase:
        return self.events.phase

    @property
    def is_ready(self) -> bool:
        return self.events.is_ready
