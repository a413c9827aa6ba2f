# Services package initialization
# This file makes the services directory a Python package
# and allows importing service modules

from . import contract_expiry
from . import contract_service
from . import conflict_detector
from . import scheduling_service

__all__ = [
    "conflict_detector",
    "contract_expiry",
    "contract_service",
    "scheduling_service",
]
