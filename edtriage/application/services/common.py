from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from enum import StrEnum
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError

from edtriage.application.errors import DependencyFailureError, InvalidInputError

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=StrEnum)


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Re-raise store failures as DependencyFailureError; the core never retries."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Store call failed: %s", operation)
        raise DependencyFailureError(f"Store call failed: {operation}") from exc


def parse_choice(enum_cls: type[E], value: object, field: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value))
    except ValueError:
        raise InvalidInputError(
            f"{field} must be one of: {', '.join(item.value for item in enum_cls)}"
        ) from None


def require_ref(value: object, field: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise InvalidInputError(f"{field} is required")
    return text
