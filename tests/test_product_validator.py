"""Payload validation: every violation reported once, by client field path."""

from decimal import Decimal

import pytest

from inventory_api.core.errors import ValidationError
from inventory_api.utils.product_validator import (
    validate_category_create,
    validate_create,
    validate_stock_update,
    validate_update,
)
from tests.conftest import product_payload


def _fields(exc_info) -> list[str]:
    return [v.field for v in exc_info.value.violations]


class TestValidateCreate:
    def test_valid_payload_is_normalized(self):
        record = validate_create(product_payload())

        assert record.name == "Wireless Mouse"
        assert record.price == Decimal("19.99")
        assert record.stock_quantity == 25
        assert record.category_id == 1

    def test_snake_case_keys_are_accepted(self):
        record = validate_create(
            {
                "name": "Desk Lamp",
                "description": "",
                "price": "12.50",
                "stock_quantity": 3,
                "category_id": 2,
            }
        )
        assert record.stock_quantity == 3
        assert record.price == Decimal("12.50")

    def test_every_broken_field_is_enumerated(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_create(
                {
                    "name": "T",
                    "description": "d",
                    "price": -10,
                    "stockQuantity": -5,
                    "categoryId": 0,
                }
            )

        fields = _fields(exc_info)
        assert len(set(fields)) >= 4
        assert {"name", "price", "stockQuantity", "categoryId"} <= set(fields)

    def test_each_missing_field_is_its_own_item(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_create({"name": "Widget"})

        assert sorted(_fields(exc_info)) == sorted(
            ["description", "price", "stockQuantity", "categoryId"]
        )

    def test_missing_and_wrong_type_are_not_duplicated(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_create(product_payload(stockQuantity="many"))

        assert _fields(exc_info) == ["stockQuantity"]

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"name": "x" * 101}, "name"),
            ({"description": "x" * 501}, "description"),
            ({"price": 0}, "price"),
            ({"stockQuantity": 2.5}, "stockQuantity"),
            ({"stockQuantity": True}, "stockQuantity"),
            ({"categoryId": "1"}, "categoryId"),
        ],
    )
    def test_field_rules(self, overrides, field):
        with pytest.raises(ValidationError) as exc_info:
            validate_create(product_payload(**overrides))

        assert _fields(exc_info) == [field]

    def test_detail_lists_field_and_message(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_create(product_payload(price=-1))

        assert exc_info.value.detail.startswith("price: ")

    @pytest.mark.parametrize("payload", [None, [], "name=Widget", 42])
    def test_non_object_payload(self, payload):
        with pytest.raises(ValidationError) as exc_info:
            validate_create(payload)

        assert _fields(exc_info) == ["body"]


class TestValidateUpdate:
    def test_only_sent_fields_are_changes(self):
        update = validate_update({"price": 5})

        assert update.changes() == {"price": Decimal("5")}

    def test_empty_update_has_no_changes(self):
        assert validate_update({}).changes() == {}

    def test_unknown_fields_are_ignored_by_default(self):
        update = validate_update({"name": "Renamed", "colour": "red"})

        assert update.changes() == {"name": "Renamed"}

    def test_unknown_fields_rejected_in_strict_mode(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_update({"name": "Renamed", "colour": "red"}, strict=True)

        assert _fields(exc_info) == ["colour"]

    def test_explicit_null_is_not_the_same_as_absent(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_update({"description": None})

        assert _fields(exc_info) == ["description"]

    def test_is_active_must_be_boolean(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_update({"isActive": "yes"})

        assert _fields(exc_info) == ["isActive"]

    def test_all_violations_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_update({"name": "", "price": -1, "categoryId": -3})

        assert set(_fields(exc_info)) == {"name", "price", "categoryId"}


class TestValidateStockAndCategory:
    def test_stock_defaults_to_delta(self):
        stock = validate_stock_update({"quantity": -3})

        assert stock.quantity == -3
        assert stock.absolute is False

    def test_stock_absolute_mode(self):
        assert validate_stock_update({"quantity": 7, "mode": "absolute"}).absolute

    def test_stock_mode_must_be_known(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_stock_update({"quantity": 1, "mode": "multiply"})

        assert _fields(exc_info) == ["mode"]

    def test_stock_quantity_required(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_stock_update({})

        assert _fields(exc_info) == ["quantity"]

    def test_category_name_length(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_category_create({"name": "A"})

        assert _fields(exc_info) == ["name"]
