"""
Low-stock threshold resolution.

Precedence is item -> category -> global: the first value that is not None wins.
Values are never averaged or combined.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


DEFAULT_GLOBAL_THRESHOLD = 5


class StockStatus(str, Enum):
    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"
    IN_STOCK = "in_stock"


def effective_threshold(
    item_threshold: Optional[int],
    category_threshold: Optional[int],
    global_threshold: int,
) -> int:
    if item_threshold is not None:
        return item_threshold
    if category_threshold is not None:
        return category_threshold
    return global_threshold


def is_out_of_stock(stock: Optional[int]) -> bool:
    return (stock or 0) == 0


def is_low_stock(stock: Optional[int], threshold: int) -> bool:
    # True at stock 0 too; use stock_status() when the two must not overlap.
    return (stock or 0) <= threshold


def stock_status(stock: Optional[int], threshold: int) -> StockStatus:
    if is_out_of_stock(stock):
        return StockStatus.OUT_OF_STOCK
    if is_low_stock(stock, threshold):
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK
