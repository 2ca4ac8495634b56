"""
Reconciliation engine: keeps the rendered cards in step with fetched records.

A pass is split in two:
  diff_records()  pure classification of fresh records against what is
                  currently rendered (added / moved / retained / removed /
                  dropped) plus the render operations that realize it;
  Reconciler      applies those operations to the view and the id → item map,
                  refreshes header totals and layout, then notifies the host.

Records whose column value is not on the board are dropped without error.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Container, Dict, List, Mapping, Optional, Sequence

from .columns import ColumnModel
from .context import BoardContext
from .events import ITEM_ADDED, ITEM_REMOVED, ITEMS_CHANGED
from .schema import (
    STATE_STAMP,
    BoardEvent,
    ReconcileMode,
    Record,
    RenderedItem,
    record_id,
    record_state,
)
from .template import render_card

logger = logging.getLogger(__name__)


@dataclass
class RenderOp:
    """One change to apply to the view."""
    kind: str                   # clear | create | move | update | remove
    record_id: str = ""
    state: str = ""
    record: Optional[Record] = None


@dataclass
class ReconcileResult:
    mode: ReconcileMode
    added: List[Record] = field(default_factory=list)
    removed: List[Record] = field(default_factory=list)
    moved: List[Record] = field(default_factory=list)
    retained: List[Record] = field(default_factory=list)   # already on the board, moved included
    dropped: List[Record] = field(default_factory=list)    # not rendered
    render_ops: List[RenderOp] = field(default_factory=list)

    @property
    def changed(self) -> List[Record]:
        return self.added + self.removed + self.moved

    def classification(self, id_field: str = "id") -> Dict[str, List[str]]:
        """Ids per partition, for comparing passes."""
        return {
            "added": [record_id(r, id_field) for r in self.added],
            "removed": [record_id(r, id_field) for r in self.removed],
            "moved": [record_id(r, id_field) for r in self.moved],
            "retained": [record_id(r, id_field) for r in self.retained],
            "dropped": [record_id(r, id_field) for r in self.dropped],
        }


def diff_records(
    items: Mapping[str, RenderedItem],
    fresh_records: Sequence[Record],
    mode: ReconcileMode,
    columns: Container[str],
    field_name: str,
    id_field: str = "id",
) -> ReconcileResult:
    """
    Classify `fresh_records` against the currently rendered `items`.

    Pure: neither argument is modified. Records are processed in input order,
    so cards keep that relative order inside each column.
    """
    result = ReconcileResult(mode=mode)
    seen = set()

    if mode == ReconcileMode.FULL:
        result.render_ops.append(RenderOp(kind="clear"))

    for record in fresh_records:
        rid = record_id(record, id_field)
        state = record_state(record, field_name)

        if state not in columns:
            logger.debug(f"Record {rid} dropped: value {state!r} is not a board column")
            result.dropped.append(record)
            continue
        if rid in seen:
            logger.warning(f"Record {rid} appears more than once in one fetch; keeping the first")
            result.dropped.append(record)
            continue
        seen.add(rid)

        existing = items.get(rid) if mode == ReconcileMode.INCREMENTAL else None
        if existing is None:
            result.added.append(record)
            result.render_ops.append(RenderOp(kind="create", record_id=rid, state=state, record=record))
            continue

        result.retained.append(record)
        if existing.state != state:
            result.moved.append(record)
            result.render_ops.append(RenderOp(kind="move", record_id=rid, state=state, record=record))
        result.render_ops.append(RenderOp(kind="update", record_id=rid, state=state, record=record))

    if mode == ReconcileMode.INCREMENTAL:
        for rid, item in items.items():
            if rid not in seen:
                result.removed.append(item.record)
                result.render_ops.append(RenderOp(kind="remove", record_id=rid, state=item.state, record=item.record))

    return result


class Reconciler:
    """Applies reconciliation passes to one board."""

    def __init__(self, ctx: BoardContext, columns: ColumnModel):
        self.ctx = ctx
        self.columns = columns

    def reconcile(self, fresh_records: Sequence[Record], mode: ReconcileMode) -> ReconcileResult:
        cfg = self.ctx.config
        result = diff_records(self.ctx.items, fresh_records, mode, self.columns, cfg.field, cfg.id_field)
        for op in result.render_ops:
            self._apply(op)

        logger.info(
            f"Reconciled ({mode.value}): {len(result.added)} added, {len(result.moved)} moved, "
            f"{len(result.removed)} removed, {len(result.dropped)} dropped"
        )

        self.update_headers()
        self.ctx.view.normalize_heights(self.ctx.height)
        self._notify(result)
        return result

    def _apply(self, op: RenderOp) -> None:
        view = self.ctx.view
        items = self.ctx.items

        if op.kind == "clear":
            view.clear()
            items.clear()
        elif op.kind == "create":
            content = render_card(self.ctx.render_hook, op.record)
            element = view.create_card(op.state, op.record_id, content)
            op.record[STATE_STAMP] = op.state
            items[op.record_id] = RenderedItem(
                record_id=op.record_id, record=op.record, state=op.state,
                element=element, content=content,
            )
        elif op.kind == "move":
            item = items[op.record_id]
            view.move_card(item.element, op.state)
            item.state = op.state
            op.record[STATE_STAMP] = op.state
        elif op.kind == "update":
            item = items[op.record_id]
            content = render_card(self.ctx.render_hook, op.record, item.content)
            view.update_card(item.element, content)
            op.record[STATE_STAMP] = item.state
            item.record = op.record
            item.content = content
        elif op.kind == "remove":
            item = items.pop(op.record_id)
            view.remove_card(item.element)
        else:
            raise ValueError(f"Unknown render operation: {op.kind}")

    def record_drop(self, rid: str, to_state: str) -> RenderedItem:
        """Take note of a card the user dropped into another column."""
        item = self.ctx.items[rid]
        if item.state != to_state:
            self.ctx.view.move_card(item.element, to_state)
            item.state = to_state
            item.record[STATE_STAMP] = to_state
        self.update_headers()
        return item

    def state_totals(self) -> Dict[str, int]:
        totals = {name: 0 for name in self.columns.names()}
        for item in self.ctx.items.values():
            totals[item.state] = totals.get(item.state, 0) + 1
        return totals

    def update_headers(self) -> None:
        for name, total in self.state_totals().items():
            self.ctx.view.set_header_total(name, total)

    def event_object(self, rid: Optional[str] = None, items_modified: Optional[List[Record]] = None) -> BoardEvent:
        """Board summary handed to every notification."""
        totals = self.state_totals()
        item = self.ctx.items.get(rid) if rid is not None else self._first_item()
        return BoardEvent(
            state_totals=totals,
            item_total=sum(totals.values()),
            current_state=item.state if item else None,
            item=item.record if item else {},
            items_modified=list(items_modified or []),
        )

    def _first_item(self) -> Optional[RenderedItem]:
        for name in self.columns.names():
            for item in self.ctx.items.values():
                if item.state == name:
                    return item
        return None

    def _notify(self, result: ReconcileResult) -> None:
        events = self.ctx.events
        if not events.is_ready:
            return
        if result.added:
            events.emit(ITEM_ADDED, self.event_object(items_modified=result.added))
        if result.removed:
            events.emit(ITEM_REMOVED, self.event_object(items_modified=result.removed))
        if result.changed:
            events.emit(ITEMS_CHANGED, self.event_object(items_modified=result.changed))
