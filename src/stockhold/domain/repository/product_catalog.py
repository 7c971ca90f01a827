"""Abstract port onto the product catalog.

Defined in the domain layer so the domain never depends on
infrastructure. The catalog itself is an external collaborator; the
hold core only needs to resolve a product id to its name and price.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from stockhold.domain.model.product import Product


class ProductCatalog(ABC):

    @abstractmethod
    def get_by_id(self, product_id: str) -> Product | None:
        """Return a product by its ID, or None if not found."""

    @abstractmethod
    def save(self, product: Product) -> None:
        """Persist a new or updated product (local catalog seeding)."""
