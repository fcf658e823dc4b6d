"""Structured action results.

Learn: Actions never raise for expected failures and never swallow
them either. They return an ActionResult whose error carries a kind
the caller can branch on, plus details (e.g. remaining quota).
"""

import functools
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

import structlog
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger()

T = TypeVar("T")


class ErrorKind(str, Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    POLICY_BLOCKED = "POLICY_BLOCKED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    QUERY_FAILED = "QUERY_FAILED"


@dataclass
class ActionError:
    kind: ErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class ActionResult(Generic[T]):
    ok: bool
    data: Optional[T] = None
    error: Optional[ActionError] = None

    @classmethod
    def success(cls, data: T) -> "ActionResult[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        **details: Any,
    ) -> "ActionResult[T]":
        return cls(ok=False, error=ActionError(kind, message, details))


class ActionFailure(Exception):
    """Raised inside an action to end it with a structured error."""

    def __init__(self, kind: ErrorKind, message: str, **details: Any):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details


def action(name: str):
    """Wrap a service coroutine so it always returns an ActionResult.

    Learn: The wrapped method returns plain data on success. An
    ActionFailure becomes a failure result with its kind; any database
    error rolls the session back and becomes QUERY_FAILED. Either way
    the failure is logged here, once.
    """

    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(self, *args, **kwargs) -> ActionResult:
            try:
                data = await fn(self, *args, **kwargs)
            except ActionFailure as e:
                await self.db.rollback()
                logger.info(
                    "welth.action.failed",
                    action=name,
                    kind=e.kind.value,
                    error=e.message,
                    **e.details,
                )
                return ActionResult.failure(e.kind, e.message, **e.details)
            except SQLAlchemyError:
                await self.db.rollback()
                logger.exception("welth.action.query_failed", action=name)
                return ActionResult.failure(
                    ErrorKind.QUERY_FAILED, "Database query failed"
                )
            return ActionResult.success(data)

        return wrapper

    return decorator
