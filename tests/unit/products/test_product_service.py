"""Unit tests for ProductService and the in-memory catalog.

Covers:
- Creation with sequential human codes.
- Price/stock edits and their validation.
- Atomic stock adjustment clamped at zero.
- Deletion and lookups of unknown products.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from modules.products.dtos import CreateProductDTO
from modules.products.exceptions import ProductNotFound
from modules.products.repositories import ProductMemoryRepository
from modules.products.services import ProductService
from shared.domain.exceptions import InvalidInput, NotFound

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def repo():
    return ProductMemoryRepository()


@pytest.fixture()
def service(repo):
    return ProductService(repo)


@pytest.fixture()
def product(service):
    return service.create_product(
        CreateProductDTO(
            name="Spotify Premium",
            price_sell=25000,
            price_cost=18000,
            stock=5,
            category="Music",
            unit="month",
        )
    )


# ---------------------------------------------------------------------------
# DTO validation
# ---------------------------------------------------------------------------


class TestCreateProductDTO:
    def test_strips_name(self):
        dto = CreateProductDTO(name="  Canva Pro  ", price_sell=10000)
        assert dto.name == "Canva Pro"

    def test_rejects_blank_name(self):
        with pytest.raises(ValidationError):
            CreateProductDTO(name="   ", price_sell=10000)

    @pytest.mark.parametrize("field", ["price_sell", "price_cost", "stock"])
    def test_rejects_negative_numbers(self, field):
        data = {"name": "Canva Pro", "price_sell": 10000, field: -1}
        with pytest.raises(ValidationError):
            CreateProductDTO(**data)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class TestCreateProduct:
    def test_assigns_sequential_codes(self, service, product):
        second = service.create_product(CreateProductDTO(name="YouTube", price_sell=1))
        assert product.code == "P001"
        assert second.code == "P002"

    def test_persists_all_fields(self, service, product):
        stored = service.get_product(product.id)
        assert stored.name == "Spotify Premium"
        assert stored.price_sell == 25000
        assert stored.price_cost == 18000
        assert stored.stock == 5
        assert stored.in_stock is True


class TestPriceAndStockEdits:
    def test_update_price(self, service, product):
        updated = service.update_price(product.id, 30000)
        assert updated.price_sell == 30000

    def test_negative_price_rejected(self, service, product):
        with pytest.raises(InvalidInput):
            service.update_price(product.id, -5)
        assert service.get_product(product.id).price_sell == 25000

    def test_update_stock(self, service, product):
        assert service.update_stock(product.id, 0).stock == 0
        assert service.get_product(product.id).in_stock is False

    def test_unknown_product(self, service):
        with pytest.raises(ProductNotFound):
            service.update_price("missing", 1)


class TestAdjustStock:
    def test_decrement(self, repo, product):
        assert repo.adjust_stock(product.id, -2) == 3

    def test_clamped_at_zero(self, repo, service, product):
        assert repo.adjust_stock(product.id, -50) == 0
        assert service.get_product(product.id).stock == 0

    def test_increment(self, repo, product):
        assert repo.adjust_stock(product.id, 4) == 9

    def test_unknown_product(self, repo):
        assert repo.adjust_stock("missing", -1) is None


class TestDeleteAndLookup:
    def test_delete(self, service, product):
        service.delete_product(product.id)
        assert service.count() == 0
        with pytest.raises(NotFound):
            service.get_product(product.id)

    def test_delete_unknown(self, service):
        with pytest.raises(ProductNotFound):
            service.delete_product("missing")

    def test_list_in_creation_order(self, service, product):
        service.create_product(CreateProductDTO(name="Zoom Pro", price_sell=1))
        assert [p.name for p in service.list_products()] == [
            "Spotify Premium",
            "Zoom Pro",
        ]
