import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, Optional


class AccountLocks:
    """One asyncio lock per account uid.

    ``hold`` acquires several locks in sorted uid order, so two transfers
    between the same pair of accounts can never deadlock. A lock is dropped
    once no caller holds it or waits on it.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def _checkout(self, uid: str) -> asyncio.Lock:
        lock = self._locks.get(uid)
        if lock is None:
            lock = self._locks[uid] = asyncio.Lock()
        self._users[uid] = self._users.get(uid, 0) + 1
        return lock

    def _checkin(self, uid: str) -> None:
        self._users[uid] -= 1
        if self._users[uid] == 0:
            del self._users[uid]
            del self._locks[uid]

    @asynccontextmanager
    async def hold(self, uids: Iterable[Optional[str]]) -> AsyncIterator[None]:
        ordered = sorted({uid for uid in uids if uid})
        # Register every uid up front so no lock is dropped while a caller waits on it
        locks = [(uid, self._checkout(uid)) for uid in ordered]
        acquired = []
        try:
            for uid, lock in locks:
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for uid, _ in locks:
                self._checkin(uid)
