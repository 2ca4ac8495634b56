"""
Board widget: wires the resolver, column model, reconciler and move
synchronizer together for one board and exposes the host-facing operations.

Lifecycle:
  initialize()  resolve columns → fetch → full render → READY → `create`
  refresh()     fetch → incremental reconcile (passes never overlap)
  move()        persist a drag-and-drop move
"""
import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .columns import ColumnModel
from .config import BoardConfig
from .context import BoardContext
from .domain import FieldDomainResolver, ResolveOptions
from .errors import BoardError, BoardNotReady, TransportError
from .events import CREATE
from .reconcile import ReconcileResult, Reconciler
from .schema import (
    BoardEvent,
    FieldMetadataSource,
    MoveIntent,
    PreUpdateHook,
    QueryDescriptor,
    Record,
    RecordSource,
    ReconcileMode,
    UpdateSink,
)
from .sync import MoveSynchronizer
from .view import BoardView, MemoryBoardView

logger = logging.getLogger(__name__)


class Board:
    """One board bound to one list field."""

    def __init__(
        self,
        config: BoardConfig,
        client: Any = None,
        *,
        records: Optional[RecordSource] = None,
        metadata: Optional[FieldMetadataSource] = None,
        sink: Optional[UpdateSink] = None,
        view: Optional[BoardView] = None,
        on_pre_update: Optional[PreUpdateHook] = None,
        on_get_list_items: Optional[Callable[[List[Record], Any], None]] = None,
        on_board_create: Optional[Callable[[BoardEvent], None]] = None,
    ):
        self.config = config.validate()
        self.records = records or client
        self.metadata = metadata or client
        self.sink = sink or client
        if self.records is None or self.metadata is None or self.sink is None:
            raise ValueError("Board needs a record source, a metadata source and an update sink")

        self.ctx = BoardContext(config=config, view=view if view is not None else MemoryBoardView())
        self.on_pre_update = on_pre_update
        self.on_get_list_items = on_get_list_items
        self.on_board_create = on_board_create

        self.columns: Optional[ColumnModel] = None
        self.reconciler: Optional[Reconciler] = None
        self.synchronizer: Optional[MoveSynchronizer] = None
        self.last_result: Optional[ReconcileResult] = None
        self._refresh_lock = asyncio.Lock()

    @property
    def view(self) -> BoardView:
        return self.ctx.view

    @property
    def is_ready(self) -> bool:
        return self.ctx.is_ready

    def on(self, event_type: str, callback: Callable) -> None:
        """Subscribe to a board event (item-added, item-removed, items-changed, columns-changed, create)."""
        self.ctx.events.subscribe(event_type, callback)

    # ── Lifecycle ────────────────────────────────────────────

    async def initialize(self) -> BoardEvent:
        """Build the columns and render the first set of records."""
        if self.is_ready:
            return self.get_event_object()

        cfg = self.config
        resolver = FieldDomainResolver(self.metadata, self.records)
        options = ResolveOptions(
            collection=cfg.list_name,
            field_filter=cfg.field_filter,
            allow_blanks=cfg.allow_field_blanks,
            optional_label=cfg.optional_label,
            max_columns=cfg.max_columns,
            id_field=cfg.id_field,
        )
        try:
            states = await resolver.resolve_field(cfg.field, options)
        except BoardError as e:
            self.ctx.view.show_error(e.message)
            raise

        self.columns = ColumnModel(self.ctx, states)
        self.ctx.view.build_columns(states)
        self.columns.set_column_class()
        if cfg.visible_columns:
            self.columns.set_visible(cfg.visible_columns)

        self.reconciler = Reconciler(self.ctx, self.columns)
        self.synchronizer = MoveSynchronizer(self.ctx, self.reconciler, self.sink, self.on_pre_update)

        async with self._refresh_lock:
            records = await self._fetch()
            self.last_result = self.reconciler.reconcile(records, ReconcileMode.FULL)

        self.ctx.events.mark_ready()
        self.redraw()
        logger.info(f"Board {cfg.list_name}/{cfg.field} ready: {len(states)} columns, {len(self.ctx.items)} cards")

        event = self.get_event_object()
        if self.on_board_create is not None:
            self.on_board_create(event)
        self.ctx.events.emit(CREATE, event)
        return event

    async def refresh(self) -> ReconcileResult:
        """Re-fetch the records and reconcile them against the board."""
        self._require_ready("refresh")
        async with self._refresh_lock:
            records = await self._fetch()
            self.last_result = self.reconciler.reconcile(records, ReconcileMode.INCREMENTAL)
            return self.last_result

    async def auto_refresh(self, interval: float) -> None:
        """Refresh every `interval` seconds until cancelled. Failures are logged, not fatal."""
        while True:
            await asyncio.sleep(interval)
            try:
                await self.refresh()
            except BoardError as e:
                logger.warning(f"Periodic refresh failed ({e.status}): {e.message}")
            except Exception:
                logger.exception("Periodic refresh failed")

    async def _fetch(self) -> List[Record]:
        cfg = self.config
        source = self.ctx.query_source

        if source.kind == "callback":
            records, raw = await self._fetch_from_callback(source.callback)
        else:
            query = QueryDescriptor(collection=cfg.list_name, filter=source.filter, fields=cfg.request_fields())
            records, raw = await self.records.fetch(query)

        records = list(records)
        logger.debug(f"Fetched {len(records)} records from {cfg.list_name}")
        if self.on_get_list_items is not None:
            self.on_get_list_items(records, raw)
        return records

    async def _fetch_from_callback(self, callback: Callable):
        loop = asyncio.get_running_loop()
        delivered = loop.create_future()

        def deliver(records):
            if isinstance(records, list) and not delivered.done():
                delivered.set_result(records)

        outcome = callback(deliver, self.config)
        if inspect.isawaitable(outcome):
            await outcome
        try:
            records = await asyncio.wait_for(delivered, timeout=self.config.fetch_timeout)
        except asyncio.TimeoutError:
            raise TransportError(
                f"Record callback did not deliver within {self.config.fetch_timeout}s", callback, "error"
            )
        return records, callback

    # ── Host operations ──────────────────────────────────────

    def redraw(self) -> None:
        """Re-run layout only; no fetch, no events."""
        if self.columns is None:
            return
        self.columns.set_column_class()
        self.ctx.view.normalize_heights(self.ctx.height)

    def set_height(self, height: Optional[str]) -> None:
        """Fix the card area height (CSS length), or None to let it grow."""
        self.ctx.height = height
        self.redraw()

    def set_visible_columns(self, columns: Union[Sequence[str], str]) -> bool:
        self._require_ready("set_visible_columns")
        return self.columns.set_visible(columns)

    def get_columns(self) -> List[Dict]:
        if self.columns is None:
            return []
        return self.columns.list()

    def has_card(self, rid: Any) -> bool:
        return str(rid) in self.ctx.items

    def get_event_object(self, rid: Optional[Any] = None) -> BoardEvent:
        self._require_columns()
        return self.reconciler.event_object(None if rid is None else str(rid))

    async def move(self, rid: Any, to_state: str, event: Any = None, element: Any = None) -> MoveIntent:
        """A card was dropped on another column: persist it."""
        self._require_ready("move")
        return await self.synchronizer.move(rid, to_state, event=event, element=element)

    def _require_columns(self) -> None:
        if self.reconciler is None:
            raise BoardNotReady("Board has not been initialized")

    def _require_ready(self, operation: str) -> None:
        if not self.is_ready:
            raise BoardNotReady(f"Cannot {operation}: board has not been initialized")
