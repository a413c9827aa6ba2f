from typing import Optional

from sqlalchemy import select

from gymcore.db.base import Membership as DbMembership
from gymcore.domain.entities import Membership as DomainMembership
from gymcore.domain.interfaces import IMembershipReader


class MembershipRepository(IMembershipReader):
    """Read-only view of the membership catalog."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, membership_id: int) -> Optional[DomainMembership]:
        db_membership = self.db.get(DbMembership, membership_id)
        return self._to_domain(db_membership) if db_membership else None

    def get_by_code(self, code: str) -> Optional[DomainMembership]:
        db_membership = self.db.execute(
            select(DbMembership).where(DbMembership.code == code)
        ).scalar_one_or_none()
        return self._to_domain(db_membership) if db_membership else None

    def _to_domain(self, db_membership: DbMembership) -> DomainMembership:
        return DomainMembership(
            id=db_membership.id,
            code=db_membership.code,
            name=db_membership.name,
            validity_days=db_membership.validity_days,
            price=db_membership.price,
            is_active=db_membership.is_active,
        )
