from __future__ import annotations

import pytest

from sheetload.errors import ValidationError
from sheetload.services.identifiers import (
    normalize_and_validate,
    normalize_identifier,
    validate_identifier,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Order ID", "order_id"),
        ("OrderID", "order_id"),
        ("customerName", "customer_name"),
        ("HTTPStatus", "http_status"),
        ("Дата продажу", "data_prodazhu"),
        ("Продажі 2024", "prodazhi_2024"),
        ("  amount (USD) ", "amount_usd"),
        ("already_snake", "already_snake"),
        ("Crème brûlée", "creme_brulee"),
    ],
)
def test_normalize_identifier(raw: str, expected: str) -> None:
    assert normalize_identifier(raw) == expected


def test_normalize_identifier_is_idempotent() -> None:
    for raw in ("Order ID", "Дата продажу", "HTTPStatus2024"):
        once = normalize_identifier(raw)
        assert normalize_identifier(once) == once


def test_normalize_identifier_drops_punctuation_only_text() -> None:
    assert normalize_identifier("--- !!! ---") == ""


def test_validate_identifier_rejects_characters_outside_allow_list() -> None:
    assert validate_identifier("sales_2024") == "sales_2024"
    with pytest.raises(ValidationError):
        validate_identifier("Sales")
    with pytest.raises(ValidationError):
        validate_identifier("drop table; --")


def test_normalize_and_validate_rejects_empty_result() -> None:
    with pytest.raises(ValidationError) as excinfo:
        normalize_and_validate("???", role="column")
    assert "column" in str(excinfo.value)
    assert excinfo.value.code == 100
