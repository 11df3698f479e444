from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator, List


class ProductLockRegistry:
    """
    One mutex per product id.
    Mutations of the same product run one at a time; different products
    never wait on each other. An entry lives only while some thread holds
    or waits for it, so ids that are never touched again cost nothing.
    """

    def __init__(self):
        self._lock = Lock()
        # product id -> [mutex, threads holding or waiting]
        self._entries: Dict[int, List] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _acquire_entry(self, product_id: int) -> Lock:
        with self._lock:
            entry = self._entries.get(product_id)
            if entry is None:
                entry = [Lock(), 0]
                self._entries[product_id] = entry
            entry[1] += 1
            return entry[0]

    def _release_entry(self, product_id: int) -> None:
        with self._lock:
            entry = self._entries[product_id]
            entry[1] -= 1
            if not entry[1]:
                del self._entries[product_id]

    @contextmanager
    def hold(self, product_id: int) -> Iterator[None]:
        lock = self._acquire_entry(product_id)
        try:
            with lock:
                yield
        finally:
            self._release_entry(product_id)


product_locks = ProductLockRegistry()
