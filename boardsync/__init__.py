# Board reconciliation engine: columns from a field's domain, cards kept in
# step with a remote list, drag-and-drop moves written back.
#
# Components:
#   schema.py    - Data model (State, RenderedItem, MoveIntent, BoardEvent, collaborator protocols)
#   errors.py    - BoardError taxonomy
#   config.py    - YAML-backed BoardConfig
#   domain.py    - Field domain resolver (choice / lookup fields → states)
#   columns.py   - Column model and visibility rules
#   events.py    - Lifecycle-gated event bus
#   reconcile.py - Diff-based reconciliation of fetched records
#   sync.py      - Move synchronizer (pre-update hook, commit, rollback)
#   board.py     - Board widget tying it together
#   view.py      - View contract + in-memory view
#   remote.py    - REST client for the list service
#   server.py    - Flask host

from .board import Board
from .config import BoardConfig
from .errors import (
    BoardError,
    BoardNotReady,
    ConfigError,
    FieldNotFound,
    RemoteValidationError,
    TransportError,
    UnsupportedFieldType,
)
from .schema import MoveIntent, MovePhase, State, StateType

__version__ = "1.0.0"
