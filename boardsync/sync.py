"""
Move synchronizer: persists drag-and-drop moves to the remote list.

Per drag gesture:
  Idle → PreCommit → Committing → Committed | RolledBack

The card is already in its new column when a move starts (the user dropped
it there). That position is kept whether the update succeeds, fails, or is
cancelled by the pre-update hook; only the remote write is rolled back.
"""
import asyncio
import logging
from typing import Any, Optional

from .context import BoardContext
from .errors import BoardError
from .events import ITEMS_CHANGED
from .reconcile import Reconciler
from .schema import MoveIntent, MovePhase, PreUpdateHook, UpdateResult, UpdateSink

logger = logging.getLogger(__name__)


class MoveSynchronizer:
    """Runs one MoveIntent per drop. Moves of different cards do not share state."""

    def __init__(
        self,
        ctx: BoardContext,
        reconciler: Reconciler,
        sink: UpdateSink,
        on_pre_update: Optional[PreUpdateHook] = None,
    ):
        self.ctx = ctx
        self.reconciler = reconciler
        self.sink = sink
        self.on_pre_update = on_pre_update

    async def move(self, rid: Any, to_state: str, event: Any = None, element: Any = None) -> MoveIntent:
        """
        Commit a drop of card `rid` into column `to_state`.

        Returns the settled intent. Raises BoardError (transport or validation)
        when the remote update fails; the error's `intent` is the rolled-back
        intent and its `result` future carries the same error. A drop on the
        card's own column settles as RolledBack without a remote call.
        """
        rid = str(rid)
        if rid not in self.ctx.items:
            raise KeyError(f"Card {rid} is not on the board")
        if to_state not in self.reconciler.columns:
            raise KeyError(f"Column {to_state!r} is not on the board")

        from_state = self.ctx.items[rid].state
        item = self.reconciler.record_drop(rid, to_state)
        if element is None:
            element = item.element

        intent = MoveIntent(
            record=item.record,
            from_state=from_state,
            to_state=to_state,
            updates=[[self.ctx.config.field, to_state]],
            phase=MovePhase.PRE_COMMIT,
            result=asyncio.get_running_loop().create_future(),
        )

        if from_state == to_state:
            logger.debug(f"Card {rid} dropped back on {to_state!r}; nothing to update")
            return self._roll_back(intent)

        if self.on_pre_update is not None:
            try:
                cancelled = self.on_pre_update(event, element, intent) is True
            except Exception as e:
                logger.exception(f"Pre-update hook failed for {rid}")
                self._fail(intent, e)
                raise
            if cancelled:
                logger.info(f"Move of {rid} to {to_state!r} cancelled by pre-update hook")
                return self._roll_back(intent)
        if not intent.updates:
            logger.info(f"Move of {rid} to {to_state!r} has no updates to make")
            return self._roll_back(intent)

        intent.phase = MovePhase.COMMITTING
        try:
            updated, raw = await self.sink.update(self.ctx.config.list_name, rid, intent.updates)
        except BoardError as e:
            logger.error(f"Update of {rid} failed ({e.status}): {e.message}")
            self._fail(intent, e)
            e.intent = intent
            raise

        intent.phase = MovePhase.COMMITTED
        intent.result.set_result(UpdateResult(updated_record=updated, original_record=item.record, raw_response=raw))
        logger.info(f"Moved {rid}: {from_state!r} → {to_state!r}")

        self.ctx.events.emit(
            ITEMS_CHANGED,
            self.reconciler.event_object(rid, items_modified=[item.record]),
        )
        return intent

    def _fail(self, intent: MoveIntent, error: Exception) -> None:
        intent.phase = MovePhase.ROLLED_BACK
        intent.error = error
        intent.result.set_exception(error)
        intent.result.exception()  # the error is re-raised to the caller

    def _roll_back(self, intent: MoveIntent) -> MoveIntent:
        intent.phase = MovePhase.ROLLED_BACK
        intent.result.cancel()
        return intent
