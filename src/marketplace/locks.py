"""In-process per-key locks for orders, wallets, partner earnings and the
order sequence.

A transition on one order and ledger operations on one vendor's wallet or
one partner's earnings must be serialized; work on different keys must not
wait on each other. Locks are created on first use and live as long as the process.

Acquisition order is always: sequence, order, vendors sorted by id, then the
delivery partner.

Across processes the event store's version check is the backstop: a stale
write fails with ``ExpectedVersionError`` and surfaces as a retryable
``StorageError``.
"""

import threading
from contextlib import ExitStack, contextmanager


class KeyedLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, *keys: str):
        """Hold the locks for ``keys`` in the order given, releasing in reverse."""
        with ExitStack() as stack:
            for key in keys:
                stack.enter_context(self.lock_for(key))
            yield


_locks = KeyedLocks()


def sequence_key(year) -> str:
    return f"sequence:{year}"


def order_key(order_id) -> str:
    return f"order:{order_id}"


def vendor_key(vendor_id) -> str:
    return f"vendor:{vendor_id}"


def partner_key(delivery_partner_id) -> str:
    return f"partner:{delivery_partner_id}"


def hold(*keys: str):
    return _locks.hold(*keys)


def vendor_keys(vendor_ids) -> list[str]:
    """Lock keys for ``vendor_ids``, deduplicated and sorted."""
    return [vendor_key(v) for v in sorted({str(v) for v in vendor_ids})]
