"""Bags: payload, integrity engine, validation and reporting."""

from bagsmith.bag.bag import Bag, BagState
from bagsmith.bag.payload import Payload
from bagsmith.bag.report import BagReport
from bagsmith.bag.validation import ValidationResult, validate_bag

__all__ = [
    "Bag",
    "BagState",
    "Payload",
    "BagReport",
    "ValidationResult",
    "validate_bag",
]
