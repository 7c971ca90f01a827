"""Catalog read model.

Products are owned by the catalog service; this core only reads their
existence, name and current price at checkout time.
"""

from __future__ import annotations

from dataclasses import dataclass

from stockhold.domain.model.value_objects import Money


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: Money
