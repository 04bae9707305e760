"""Static supplier assignment used by the reorder advisor."""

from __future__ import annotations

from typing import Optional


AMAZON = "Amazon"
BOD = "BOD"
STAPLES = "Staples"
CIUSS = "CIUSS"

# Evaluation order of the advisor loop.
SUPPLIERS: tuple[str, ...] = (AMAZON, BOD, STAPLES, CIUSS)

# Suppliers with minimum-order habits; orders are checked against history first.
RESTRICTED_SUPPLIERS = frozenset({BOD, STAPLES, CIUSS})


def classify_supplier(name: Optional[str], category: Optional[str]) -> str:
    """Return the supplier for an item. Rules are checked top to bottom, first match wins."""
    name = name or ""
    category = category or ""

    if name.startswith("#") and category == "Entretien":
        return BOD
    if category == "Papeterie":
        return STAPLES
    if category == "Infirmerie":
        return CIUSS
    return AMAZON
