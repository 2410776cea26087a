"""
guard.py - Reentrancy guard

One flag per engine. Entering while the flag is held raises ReentrantCall
immediately; a nested call is never blocked or queued. The flag is cleared
on every exit path, including exceptions.
"""

from __future__ import annotations
from typing import Optional

from .core import ReentrantCall


class ReentrancyGuard:
    """
    Exclusive, non-blocking entry flag.

    Example:
        guard = ReentrancyGuard()
        with guard.enter("deposit_collateral"):
            ...  # a nested guard.enter() here raises ReentrantCall
    """

    def __init__(self):
        self._holder: Optional[str] = None

    @property
    def locked(self) -> bool:
        return self._holder is not None

    @property
    def holder(self) -> Optional[str]:
        """Name of the operation currently holding the guard."""
        return self._holder

    def enter(self, operation: str) -> "_GuardContext":
        return _GuardContext(self, operation)

    def _acquire(self, operation: str) -> None:
        if self._holder is not None:
            raise ReentrantCall(
                f"{operation} called while {self._holder} is still executing"
            )
        self._holder = operation

    def _release(self) -> None:
        self._holder = None

    def __repr__(self):
        return f"ReentrancyGuard(holder={self._holder!r})"


class _GuardContext:
    __slots__ = ("_guard", "_operation")

    def __init__(self, guard: ReentrancyGuard, operation: str):
        self._guard = guard
        self._operation = operation

    def __enter__(self) -> ReentrancyGuard:
        self._guard._acquire(self._operation)
        return self._guard

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._guard._release()
        return False
