"""Product DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
DTOs are immutable (``frozen=True``).

- ``CreateProductDTO``: input for product creation, assembled by the
  add-product conversation form.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


class CreateProductDTO(BaseModel):
    """Immutable DTO for product creation requests.

    Validates:
    - ``name`` is a non-empty string.
    - ``price_cost``, ``price_sell`` and ``stock`` are non-negative.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    price_sell: int
    price_cost: int = 0
    stock: int = 0
    category: str = ""
    unit: str = ""
    description: str = ""

    @field_validator("name")
    @classmethod
    def name_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Name must not be empty.")
        return v.strip()

    @field_validator("price_sell", "price_cost", "stock")
    @classmethod
    def must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Value cannot be negative.")
        return v

