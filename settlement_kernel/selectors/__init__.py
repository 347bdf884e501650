"""Read-only selectors for the settlement kernel."""

from settlement_kernel.selectors.base import BaseSelector
from settlement_kernel.selectors.contract_selector import (
    ContractDetail,
    ContractInfo,
    ContractSelector,
)

__all__ = [
    "BaseSelector",
    "ContractSelector",
    "ContractInfo",
    "ContractDetail",
]
