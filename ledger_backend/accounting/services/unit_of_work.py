# accounting/services/unit_of_work.py

"""
UNIT OF WORK

One business event == one database transaction.

Services accept an optional `uow`. When a caller passes an active
UnitOfWork the service joins it; otherwise the service opens its own.
Nothing in the ledger core writes outside of one.

On PostgreSQL the unit of work also bounds how long it may wait on row
locks and run statements (settings.LEDGER LOCK_TIMEOUT_SECONDS /
STATEMENT_TIMEOUT_SECONDS). A timed-out unit of work aborts; retrying is
the caller's decision.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, connections, transaction

logger = logging.getLogger(__name__)


def _ledger_setting(key: str, default):
    return getattr(settings, "LEDGER", {}).get(key, default)


class UnitOfWork:
    """
    Explicit transaction handle passed down the posting call chain.

        with UnitOfWork() as uow:
            entry = apply_template(..., uow=uow)
            record_movement(..., uow=uow)
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS, label: str = ""):
        self.using = using
        self.label = label
        self._atomic = None
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def __enter__(self) -> "UnitOfWork":
        self._atomic = transaction.atomic(using=self.using)
        self._atomic.__enter__()
        self._active = True
        self._apply_timeouts()
        return self

    def __exit__(self, exc_type, exc, tb):
        self._active = False
        if exc_type is not None:
            logger.warning(
                "Unit of work rolled back",
                extra={"uow": self.label, "error": exc_type.__name__},
            )
        return self._atomic.__exit__(exc_type, exc, tb)

    def require_active(self) -> None:
        if not self._active:
            raise RuntimeError("UnitOfWork is not active")

    def _apply_timeouts(self) -> None:
        connection = connections[self.using]
        if connection.vendor != "postgresql":
            return

        lock_ms = int(_ledger_setting("LOCK_TIMEOUT_SECONDS", 10)) * 1000
        stmt_ms = int(_ledger_setting("STATEMENT_TIMEOUT_SECONDS", 30)) * 1000
        with connection.cursor() as cursor:
            cursor.execute(f"SET LOCAL lock_timeout = {lock_ms}")
            cursor.execute(f"SET LOCAL statement_timeout = {stmt_ms}")


@contextmanager
def unit_of_work(uow: UnitOfWork | None = None, *, label: str = ""):
    """Join `uow` when it is active, else open (and own) a new one."""
    if uow is not None and uow.active:
        yield uow
        return

    with UnitOfWork(label=label) as own:
        yield own
