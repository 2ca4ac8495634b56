"""
Board data model.

A board is a set of columns ("states") built once from the value domain of a
single list field, plus the cards rendered under them. Records themselves are
plain dicts owned by the caller.

Move lifecycle (one per drag gesture):
  Idle → PreCommit → Committing → Committed | RolledBack
"""
import asyncio
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Callable, Protocol, Tuple, Union


# Key stamped on a record with the column it currently renders under
STATE_STAMP = "_board_state"

# Reserved name of the blank/optional column
BLANK_STATE = ""


Record = Dict[str, Any]
Update = List[Any]  # [field_name, value]


def record_id(record: Record, id_field: str = "id") -> str:
    """Identifier of a record, compared as a string."""
    value = record.get(id_field)
    if value is None:
        return ""
    return str(value)


def record_state(record: Record, field_name: str) -> str:
    """Raw column value of a record; missing and empty values map to the blank state."""
    value = record.get(field_name)
    if value is None:
        return BLANK_STATE
    return str(value)


class StateType(Enum):
    """How a column was derived from the field domain."""
    ENUMERATED = "enumerated"    # fixed choice list
    REFERENCE = "reference"      # rows of another list

    @classmethod
    def from_field_type(cls, value: str) -> Optional["StateType"]:
        aliases = {
            "choice": cls.ENUMERATED,
            "enumerated": cls.ENUMERATED,
            "lookup": cls.REFERENCE,
            "reference": cls.REFERENCE,
        }
        return aliases.get(str(value or "").lower())


class Phase(Enum):
    """Board lifecycle. Notifications are only delivered once READY."""
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class MovePhase(Enum):
    IDLE = "idle"
    PRE_COMMIT = "pre_commit"
    COMMITTING = "committing"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class ReconcileMode(Enum):
    FULL = "full"
    INCREMENTAL = "incremental"


@dataclass
class State:
    """One board column."""
    name: str                    # internal, stable key
    title: str                   # display label
    type: StateType = StateType.ENUMERATED
    is_visible: bool = True

    @property
    def is_blank(self) -> bool:
        return self.name == BLANK_STATE

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "title": self.title, "is_visible": self.is_visible}


@dataclass
class FieldDescriptor:
    """Field metadata as returned by the metadata source."""
    name: str
    type: str
    required: bool = False
    domain_values: List[str] = field(default_factory=list)
    reference_collection: Optional[str] = None
    reference_display_field: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldDescriptor":
        return cls(
            name=data.get("name", ""),
            type=data.get("type", ""),
            required=bool(data.get("required", False)),
            domain_values=list(data.get("domain_values") or data.get("choices") or []),
            reference_collection=data.get("reference_collection") or data.get("lookup_list"),
            reference_display_field=data.get("reference_display_field") or data.get("show_field"),
        )


@dataclass
class QueryDescriptor:
    """A structured record query against one list."""
    collection: str
    filter: Any = None
    fields: List[str] = field(default_factory=list)
    limit: int = 0               # 0 = no limit


@dataclass
class QuerySource:
    """
    Where board records come from, resolved once at configuration time.

    kind="query":    `filter` is handed to the record source as-is.
    kind="callback": `callback(deliver, context)` produces the records itself
                     by calling `deliver(records)`; it may be a coroutine.
    """
    kind: str
    filter: Any = None
    callback: Optional[Callable] = None

    @classmethod
    def from_option(cls, option: Any) -> "QuerySource":
        if callable(option):
            return cls(kind="callback", callback=option)
        return cls(kind="query", filter=option)


@dataclass
class RenderHook:
    """
    How a card's content is produced.

    kind="template":  `template` with {{Field}} tokens.
    kind="render_fn": `render_fn(record, existing_content) -> content`.
    """
    kind: str
    template: str = ""
    render_fn: Optional[Callable] = None

    @classmethod
    def from_option(cls, option: Any, default_template: str = "{{Title}}") -> "RenderHook":
        if callable(option):
            return cls(kind="render_fn", render_fn=option)
        return cls(kind="template", template=option if option is not None else default_template)


@dataclass
class RenderedItem:
    """A record currently shown on the board."""
    record_id: str
    record: Record
    state: str
    element: Any = None
    content: str = ""


@dataclass
class UpdateResult:
    """Outcome of a committed move."""
    updated_record: Optional[Record]
    original_record: Record
    raw_response: Any = None


@dataclass
class MoveIntent:
    """The field update implied by one drag-and-drop move, prior to commit."""
    record: Record
    from_state: str
    to_state: str
    updates: List[Update] = field(default_factory=list)
    phase: MovePhase = MovePhase.IDLE
    result: Optional[asyncio.Future] = field(default=None, repr=False)
    error: Optional[Exception] = None

    @property
    def is_settled(self) -> bool:
        return self.phase in (MovePhase.COMMITTED, MovePhase.ROLLED_BACK)


@dataclass
class BoardEvent:
    """Payload delivered with every board notification."""
    state_totals: Dict[str, int] = field(default_factory=dict)
    item_total: int = 0
    current_state: Optional[str] = None
    item: Record = field(default_factory=dict)
    items_modified: List[Record] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state_totals": dict(self.state_totals),
            "item_total": self.item_total,
            "current_state": self.current_state,
            "item": self.item,
            "items_modified": list(self.items_modified),
        }


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# External collaborators
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class RecordSource(Protocol):
    async def fetch(self, query: QueryDescriptor) -> Tuple[List[Record], Any]:
        """Return (records, raw_response). Raises TransportError."""
        ...


class FieldMetadataSource(Protocol):
    async def describe_field(self, collection: str, field_id: str) -> Optional[FieldDescriptor]:
        """Field metadata, or None when the list has no such field."""
        ...


class UpdateSink(Protocol):
    async def update(
        self, collection: str, item_id: str, updates: List[Update]
    ) -> Tuple[Optional[Record], Any]:
        """Return (updated_record, raw_response). Raises TransportError / RemoteValidationError."""
        ...


PreUpdateHook = Callable[[Any, Any, MoveIntent], Union[bool, None]]
