from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, TypeVar

from wqsim.core.device_record import DeviceRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DeviceStateStore:
    """
    Thread-safe in-memory map of device id to :class:`DeviceRecord`.

    Concurrency Model
    -----------------
    All reads/writes are guarded by a single re-entrant lock (`threading.RLock`).
    Mutation goes through :meth:`update`, which runs the caller's function on a
    deep copy and swaps the copy in only if the function returns normally.
    Readers therefore observe either the pre-update or the post-update record,
    never a half-written one, and a failing pipeline leaves the stored record
    untouched.

    Design Notes
    ------------
    - Iteration order is registration order (dict insertion order).
    - Every read returns a deep copy so callers can never mutate stored state.
    """

    _records: Dict[str, DeviceRecord] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def add(self, record: DeviceRecord) -> None:
        """
        Register a device.

        Parameters
        ----------
        record
            Initial record; stored as a private copy.

        Raises
        ------
        ValueError
            If a device with the same id is already registered.
        """
        with self._lock:
            if record.device_id in self._records:
                raise ValueError(f"Device already registered: {record.device_id}")
            self._records[record.device_id] = copy.deepcopy(record)
        logger.info("Registered device %s (%s)", record.device_id, record.config.name)

    def remove(self, device_id: str) -> bool:
        """Remove a device and all its state. Returns False if it was unknown."""
        with self._lock:
            removed = self._records.pop(device_id, None) is not None
        if removed:
            logger.info("Removed device %s", device_id)
        return removed

    def get(self, device_id: str) -> Optional[DeviceRecord]:
        with self._lock:
            rec = self._records.get(device_id)
            return copy.deepcopy(rec) if rec is not None else None

    def update(self, device_id: str, fn: Callable[[DeviceRecord], T]) -> Optional[T]:
        """
        Atomically mutate one device record.

        Parameters
        ----------
        device_id
            Device to update.
        fn
            Called with a private copy of the record; its mutations are
            committed when it returns. Exceptions propagate and nothing is
            committed.

        Returns
        -------
        object or None
            Whatever ``fn`` returned, or None if the device is unknown.
        """
        with self._lock:
            rec = self._records.get(device_id)
            if rec is None:
                return None
            draft = copy.deepcopy(rec)
            result = fn(draft)
            self._records[device_id] = draft
            return result

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._records.keys())

    def snapshot(self) -> List[DeviceRecord]:
        """Deep copies of all records in registration order."""
        with self._lock:
            return [copy.deepcopy(r) for r in self._records.values()]

    def __contains__(self, device_id: object) -> bool:
        with self._lock:
            return device_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self.ids())
