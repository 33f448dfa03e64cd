"""In-process per-loan mutual exclusion"""

from contextlib import contextmanager
from threading import Lock, RLock
from typing import Dict, Iterator


class LoanLocks:
    """
    Registry of one lock per loan id.

    Work on the same loan inside this process runs one at a time; work on
    different loans runs in parallel. Across processes the row lock taken by
    ``LoanRepository.get_loan_for_update`` does the same job.

    A loan's lock is dropped from the registry once no thread holds or
    waits on it.
    """

    def __init__(self):
        self._guard = Lock()
        self._locks: Dict[int, RLock] = {}
        self._holders: Dict[int, int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _acquire_entry(self, loan_id: int) -> RLock:
        with self._guard:
            lock = self._locks.get(loan_id)
            if lock is None:
                lock = self._locks[loan_id] = RLock()
            self._holders[loan_id] = self._holders.get(loan_id, 0) + 1
            return lock

    def _release_entry(self, loan_id: int) -> None:
        with self._guard:
            self._holders[loan_id] -= 1
            if not self._holders[loan_id]:
                del self._holders[loan_id]
                del self._locks[loan_id]

    @contextmanager
    def hold(self, loan_id: int) -> Iterator[None]:
        lock = self._acquire_entry(loan_id)
        try:
            with lock:
                yield
        finally:
            self._release_entry(loan_id)


loan_locks = LoanLocks()
