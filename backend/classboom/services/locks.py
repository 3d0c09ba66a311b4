from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import ExitStack, contextmanager
from threading import Lock

from sqlalchemy import select
from sqlalchemy.orm import Session

from classboom.models.resource import Resource


class ResourceLockRegistry:
    """Process-local mutex per resource id."""

    def __init__(self) -> None:
        self._locks: dict[str, Lock] = {}
        self._guard = Lock()

    def _lock_for(self, resource_id: str) -> Lock:
        with self._guard:
            lock = self._locks.get(resource_id)
            if lock is None:
                lock = Lock()
                self._locks[resource_id] = lock
            return lock

    @contextmanager
    def hold(self, resource_ids: Iterable[str]) -> Iterator[None]:
        # Sorted acquisition keeps concurrent multi-resource attempts deadlock free.
        with ExitStack() as stack:
            for resource_id in sorted(set(resource_ids)):
                stack.enter_context(self._lock_for(resource_id))
            yield

    def clear(self) -> None:
        with self._guard:
            self._locks.clear()


_registry = ResourceLockRegistry()


@contextmanager
def booking_attempt(db: Session, resource_ids: Iterable[str]) -> Iterator[None]:
    """Serialize check-then-write on the given resources.

    Holds the in-process locks and row locks (``SELECT ... FOR UPDATE`` where the
    dialect supports it) until the block exits. The block is expected to commit;
    any exception rolls the transaction back before propagating.
    """
    ids = sorted(set(resource_ids))
    with _registry.hold(ids):
        try:
            db.execute(select(Resource.id).where(Resource.id.in_(ids)).order_by(Resource.id).with_for_update())
            yield
        except Exception:
            db.rollback()
            raise


def clear_resource_locks() -> None:
    _registry.clear()
