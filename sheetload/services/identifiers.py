from __future__ import annotations

import re

from unidecode import unidecode

from sheetload.errors import ValidationError

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_WORD = re.compile(r"[A-Za-z0-9]+")
_ALLOWED_IDENTIFIER = re.compile(r"^[a-z0-9_]+$")


def normalize_identifier(raw: str) -> str:
    """Map arbitrary sheet text onto a lowercase snake_case ASCII identifier.

    "Дата продажу" -> "data_prodazhu", "OrderID" -> "order_id".
    Characters without a transliteration act as word separators.
    """
    ascii_text = unidecode(raw, errors="replace", replace_str=" ")
    ascii_text = _ACRONYM_BOUNDARY.sub(r"\1_\2", ascii_text)
    ascii_text = _CASE_BOUNDARY.sub(r"\1_\2", ascii_text)
    return "_".join(word.lower() for word in _WORD.findall(ascii_text))


def validate_identifier(name: str, *, role: str = "identifier") -> str:
    if not _ALLOWED_IDENTIFIER.match(name):
        raise ValidationError(f"{role} {name!r} does not normalize to a usable SQL identifier")
    return name


def normalize_and_validate(raw: str, *, role: str = "identifier") -> str:
    normalized = normalize_identifier(raw)
    if not normalized:
        raise ValidationError(f"{role} {raw!r} does not normalize to a usable SQL identifier")
    return validate_identifier(normalized, role=role)
