# Repositories package initialization
# SQLAlchemy implementations of the domain interfaces

from .booking_repo import BookingRepository
from .contract_repo import ContractRepository
from .membership_repo import MembershipRepository
from .resource_checker import SqlResourceExistenceChecker
from .unit_of_work import SqlAlchemyUnitOfWork

__all__ = [
    "BookingRepository",
    "ContractRepository",
    "MembershipRepository",
    "SqlResourceExistenceChecker",
    "SqlAlchemyUnitOfWork",
]
