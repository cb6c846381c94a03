"""A point cache indexed by database plus GN and by database plus point ID.

Cached points may be any objects exposing ``id`` and ``gn`` attributes.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable


def _point_id(point: Any) -> int:
    return getattr(point, "id", 0) or 0


def _point_gn(point: Any) -> str:
    return getattr(point, "gn", "") or ""


@dataclass(eq=False)
class _Entry:
    point: Any
    expires: float | None


class PointCache:
    """Thread-safe point cache with optional TTL (seconds) and entry limit."""

    def __init__(
        self,
        ttl: float = 0,
        max_entries: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._by_gn: dict[tuple[str, str], _Entry] = {}
        self._by_id: dict[tuple[str, int], _Entry] = {}

    def get_by_gn(self, db: str, gn: str) -> Any | None:
        """Return the cached point for ``gn`` or None."""
        if not gn:
            return None
        key = (db, gn)
        with self._lock:
            entry = self._by_gn.get(key)
            if entry is None:
                return None
            if self._expired(entry):
                self._delete_point(db, entry.point)
                return None
            return entry.point

    def get_by_id(self, db: str, point_id: int) -> Any | None:
        """Return the cached point for ``point_id`` or None."""
        if point_id <= 0:
            return None
        key = (db, point_id)
        with self._lock:
            entry = self._by_id.get(key)
            if entry is None:
                return None
            if self._expired(entry):
                self._delete_point(db, entry.point)
                return None
            return entry.point

    def store(self, db: str, points: Iterable[Any]) -> None:
        points = list(points)
        if not points:
            return
        expires = self._clock() + self._ttl if self._ttl > 0 else None
        with self._lock:
            for point in points:
                self._store(db, point, expires)
            self._prune()

    def store_point(self, db: str, point: Any) -> None:
        self.store(db, [point])

    def invalidate_gn(self, db: str, gn: str) -> None:
        if not gn:
            return
        with self._lock:
            entry = self._by_gn.get((db, gn))
            if entry is not None:
                self._delete_point(db, entry.point)

    def invalidate_id(self, db: str, point_id: int) -> None:
        if point_id <= 0:
            return
        with self._lock:
            entry = self._by_id.get((db, point_id))
            if entry is not None:
                self._delete_point(db, entry.point)

    def invalidate_db(self, db: str) -> None:
        with self._lock:
            self._by_gn = {k: v for k, v in self._by_gn.items() if k[0] != db}
            self._by_id = {k: v for k, v in self._by_id.items() if k[0] != db}

    def clear(self) -> None:
        with self._lock:
            self._by_gn = {}
            self._by_id = {}

    def __len__(self) -> int:
        with self._lock:
            return self._count()

    def _store(self, db: str, point: Any, expires: float | None) -> None:
        pid, gn = _point_id(point), _point_gn(point)
        if pid <= 0 and not gn:
            return
        entry = _Entry(point, expires)
        if pid > 0:
            id_key = (db, pid)
            old = self._by_id.get(id_key)
            if old is not None:
                old_gn = _point_gn(old.point)
                if old_gn and old_gn != gn:
                    self._by_gn.pop((db, old_gn), None)
            self._by_id[id_key] = entry
        if gn:
            gn_key = (db, gn)
            old = self._by_gn.get(gn_key)
            if old is not None:
                old_id = _point_id(old.point)
                if old_id > 0 and old_id != pid:
                    self._by_id.pop((db, old_id), None)
            self._by_gn[gn_key] = entry

    def _expired(self, entry: _Entry) -> bool:
        if entry.expires is None:
            return False
        return self._clock() >= entry.expires

    def _count(self) -> int:
        return len(self._by_id) + sum(1 for e in self._by_gn.values() if _point_id(e.point) <= 0)

    def _prune(self) -> None:
        remaining = self._count()
        if self._max_entries <= 0 or remaining <= self._max_entries:
            return
        now = self._clock()

        def is_live(entry: _Entry) -> bool:
            return entry.expires is None or now < entry.expires

        passes = (
            (self._by_id, lambda e: not is_live(e)),
            (self._by_gn, lambda e: _point_id(e.point) <= 0 and not is_live(e)),
            (self._by_id, lambda e: True),
            (self._by_gn, lambda e: _point_id(e.point) <= 0),
        )
        for index, wanted in passes:
            for (db, _), entry in list(index.items()):
                if not wanted(entry):
                    continue
                if self._delete_point_counted(db, entry.point):
                    remaining -= 1
                if remaining <= self._max_entries:
                    return

    def _delete_point(self, db: str, point: Any) -> None:
        gn, pid = _point_gn(point), _point_id(point)
        if gn:
            self._by_gn.pop((db, gn), None)
        if pid > 0:
            self._by_id.pop((db, pid), None)

    def _delete_point_counted(self, db: str, point: Any) -> bool:
        pid, gn = _point_id(point), _point_gn(point)
        if pid > 0:
            if (db, pid) not in self._by_id:
                return False
            self._delete_point(db, point)
            return True
        if gn:
            if (db, gn) not in self._by_gn:
                return False
            self._delete_point(db, point)
            return True
        return False