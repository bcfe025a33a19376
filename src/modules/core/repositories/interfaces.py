"""Generic repository interface (Dependency Inversion Principle).

``IRepository[T]`` is the base contract every module repository extends
(carts, clients, sales).  Services depend on these abstractions and never on
the Django ORM; missing rows are reported as ``None`` and translated into
domain errors by the Service Layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Iterable, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base generic repository contract.

    ``T`` is the aggregate root managed by the repository (e.g. ``Cart``,
    ``Sale``).
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an aggregate by primary key; ``None`` when absent."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> Iterable[T]:
        """List aggregates matching optional ORM look-ups."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist (create or update) an aggregate."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Remove an aggregate; ``False`` when nothing was removed."""
