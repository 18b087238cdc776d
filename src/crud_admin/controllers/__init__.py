"""Controllers: view state for show, create, edit, list and delete actions."""

from __future__ import annotations

from .bulk_delete import BulkDeleteController
from .callbacks import ControllerCallbacks
from .create import CreateController
from .delete import DeleteController, DeleteWithConfirmController, DeleteWithUndoController
from .edit import EditController
from .list import ListController, ListParams, ListState
from .selection import RecordSelection
from .show import RecordState, ShowController

__all__ = [
    "BulkDeleteController",
    "ControllerCallbacks",
    "CreateController",
    "DeleteController",
    "DeleteWithConfirmController",
    "DeleteWithUndoController",
    "EditController",
    "ListController",
    "ListParams",
    "ListState",
    "RecordSelection",
    "RecordState",
    "ShowController",
]
