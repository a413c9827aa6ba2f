# Controllers package initialization
# This file makes the controllers directory a Python package
# and allows importing controller modules

from . import contract_controller, schedule_controller

__all__ = ["contract_controller", "schedule_controller"]
