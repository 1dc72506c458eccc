"""Cancellable, user-visible envelopes around long-running operations."""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any, TypeVar

from gql_workspace.errors import OperationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class LoadingOperation:
    token: int
    message: str
    status: str = "pending"
    latency_ms: float = 0.0
    error: str | None = None
    cancel_requested: bool = False
    _task: asyncio.Task[Any] | None = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.status != "pending"


@dataclass(slots=True, frozen=True)
class UserMessage:
    level: str
    text: str


class LoadingHandler:
    """Runs coroutines as named operations and keeps their outcome.

    Failures are recorded and shown as errors, then re-raised so callers can
    decide how to recover. An operation cancelled through `cancel` raises
    `OperationCancelledError`; cancelling the awaiting task itself still
    raises `asyncio.CancelledError`.
    """

    def __init__(self, *, history_limit: int = 100) -> None:
        self._operations: dict[int, LoadingOperation] = {}
        self._messages: list[UserMessage] = []
        self._tokens = itertools.count(1)
        self._history_limit = history_limit
        self._observer: Callable[[LoadingOperation], None] | None = None

    def set_observer(self, observer: Callable[[LoadingOperation], None] | None) -> None:
        """Set an optional callback invoked when an operation starts and ends."""
        self._observer = observer

    async def handle(self, message: str, work: Coroutine[Any, Any, T]) -> T:
        operation = LoadingOperation(token=next(self._tokens), message=message)
        operation._task = asyncio.ensure_future(work)
        self._operations[operation.token] = operation
        self._trim_history()
        self._notify(operation)
        logger.debug("Loading started: %s", message)

        start = time.perf_counter()
        try:
            result = await operation._task
        except asyncio.CancelledError:
            operation.status = "cancelled"
            if operation.cancel_requested:
                raise OperationCancelledError(f'"{message}" was cancelled') from None
            raise
        except Exception as exc:
            operation.status = "failed"
            operation.error = str(exc)
            self.show_error(f'Error in "{message}": {exc}')
            raise
        else:
            operation.status = "succeeded"
            return result
        finally:
            operation.latency_ms = (time.perf_counter() - start) * 1000.0
            operation._task = None
            self._notify(operation)

    def cancel(self, token: int) -> bool:
        operation = self._operations.get(token)
        if operation is None or operation._task is None:
            return False
        operation.cancel_requested = True
        return operation._task.cancel()

    def show_error(self, text: str) -> None:
        logger.error(text)
        self._messages.append(UserMessage(level="error", text=text))

    def show_warning(self, text: str) -> None:
        logger.warning(text)
        self._messages.append(UserMessage(level="warning", text=text))

    def operations(self) -> list[LoadingOperation]:
        return list(self._operations.values())

    def messages(self) -> list[UserMessage]:
        return list(self._messages)

    def _notify(self, operation: LoadingOperation) -> None:
        if self._observer is not None:
            self._observer(operation)

    def _trim_history(self) -> None:
        finished = [op.token for op in self._operations.values() if op.done]
        for token in finished[: max(0, len(self._operations) - self._history_limit)]:
            del self._operations[token]

