"""Abstract unit of work spanning the stock ledger and the hold store.

A hold's status change and the stock movement it implies must land
together: a hold that went terminal while its units stayed reserved
could never be repaired, since every later finalize loses the guard.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager


class UnitOfWork(ABC):

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Context in which ledger and hold-store writes commit together.

        If the block raises, every write made inside it is undone.
        Nested blocks join the outer one.
        """
