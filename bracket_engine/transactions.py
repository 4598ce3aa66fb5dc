"""Read-check-write loop on top of version-conditioned puts."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol, TypeVar

from .validation import ConcurrentUpdateError, NotFoundError

log = logging.getLogger(__name__)


class Versioned(Protocol):
    version: int


RecordT = TypeVar("RecordT", bound=Versioned)
ResultT = TypeVar("ResultT")


def run_optimistic(
    load: Callable[[], RecordT | None],
    mutate: Callable[[RecordT], tuple[ResultT, bool]],
    save: Callable[[RecordT, int], bool],
    *,
    attempts: int,
    describe: str,
) -> ResultT:
    """Apply ``mutate`` to a fresh copy of a record until the write sticks.

    ``mutate`` returns ``(result, changed)``; when ``changed`` is false nothing
    is written. Every attempt re-reads the record, so decisions are always made
    against the state the conditional write is checked against. Exceptions
    raised by ``mutate`` abort the loop.
    """
    for attempt in range(1, attempts + 1):
        record = load()
        if record is None:
            raise NotFoundError(f"{describe} not found")
        expected_version = record.version
        result, changed = mutate(record)
        if not changed or save(record, expected_version):
            return result
        log.info(
            "Concurrent update on %s; re-evaluating (attempt %s/%s)",
            describe,
            attempt,
            attempts,
        )
    raise ConcurrentUpdateError(
        f"Gave up updating {describe} after {attempts} conflicting writes"
    )


__all__ = ["run_optimistic"]
