"""Bounded undo/redo history of whole-canvas snapshots."""

from __future__ import annotations

from .constants import MAX_HISTORY
from .model import Canvas


class CanvasHistory:
    """Undo/redo stacks around a *present* canvas value.

    ``record`` skips transitions whose content equals the present value, so
    no-op edits never create undo steps.
    """

    def __init__(self, present: Canvas, limit: int = MAX_HISTORY) -> None:
        self._present: Canvas = present.copy()
        self._limit = max(1, limit)
        self._undo_stack: list[Canvas] = []
        self._redo_stack: list[Canvas] = []

    @property
    def present(self) -> Canvas:
        return self._present.copy()

    @property
    def can_undo(self) -> bool:
        return len(self._undo_stack) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._redo_stack) > 0

    def record(self, canvas: Canvas) -> bool:
        if canvas.same_content(self._present):
            self._present = canvas.copy()
            return False
        self._undo_stack.append(self._present)
        if len(self._undo_stack) > self._limit:
            self._undo_stack.pop(0)
        self._redo_stack.clear()
        self._present = canvas.copy()
        return True

    def undo(self) -> Canvas | None:
        if not self._undo_stack:
            return None
        self._redo_stack.append(self._present)
        self._present = self._undo_stack.pop()
        return self._present.copy()

    def redo(self) -> Canvas | None:
        if not self._redo_stack:
            return None
        self._undo_stack.append(self._present)
        self._present = self._redo_stack.pop()
        return self._present.copy()
