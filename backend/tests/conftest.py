"""
Central pytest configuration for the gym back office tests.

This file provides common fixtures, test markers, and setup for both unit
and integration tests. Integration fixtures run against a fresh in-memory
SQLite database per test.
"""

import os

# Test environment configuration (set early so import-time settings use it)
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["TESTING"] = "true"
os.environ["LOG_TO_FILE"] = "0"
os.environ["TZ"] = "UTC"

from dataclasses import dataclass  # noqa: E402
from decimal import Decimal  # noqa: E402
from functools import partial  # noqa: E402

import pytest  # noqa: E402

from gymcore.db import base as models  # noqa: E402
from gymcore.db.session import Base, build_engine, make_sessionmaker  # noqa: E402
from gymcore.repositories.unit_of_work import SqlAlchemyUnitOfWork  # noqa: E402
from tests.config.markers import *  # noqa: E402,F401,F403
from tests.factories.repository_factories import BASE_TIME  # noqa: E402


@dataclass
class SeedData:
    """Ids of the reference rows created by the ``seed`` fixture."""

    trainer_id: int
    other_trainer_id: int
    inactive_trainer_id: int
    client_id: int
    other_client_id: int
    inactive_client_id: int
    membership_id: int
    renewal_membership_id: int
    inactive_membership_id: int


@pytest.fixture
def fixed_now():
    """Reference instant used as the service clock: 2025-03-10 08:00 UTC."""
    return BASE_TIME


@pytest.fixture
def clock(fixed_now):
    return lambda: fixed_now


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with all tables created."""
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def uow_factory(session_factory):
    return partial(SqlAlchemyUnitOfWork, session_factory)


def seed_reference_data(session_factory) -> SeedData:
    """Trainers, clients and memberships shared by integration tests."""
    with session_factory() as db:
        trainer = models.Trainer(name="Trainer One", is_active=True)
        other_trainer = models.Trainer(name="Trainer Two", is_active=True)
        inactive_trainer = models.Trainer(name="Retired Trainer", is_active=False)
        client = models.Client(name="Client One", email="c1@example.com", is_active=True)
        other_client = models.Client(name="Client Two", email="c2@example.com", is_active=True)
        inactive_client = models.Client(name="Gone Client", is_active=False)
        membership = models.Membership(
            code="M1", name="Monthly", validity_days=30, price=Decimal("100000")
        )
        renewal_membership = models.Membership(
            code="M2", name="Quarterly", validity_days=90, price=Decimal("50000")
        )
        inactive_membership = models.Membership(
            code="OLD", name="Legacy", validity_days=30, price=Decimal("1"), is_active=False
        )
        db.add_all(
            [
                trainer,
                other_trainer,
                inactive_trainer,
                client,
                other_client,
                inactive_client,
                membership,
                renewal_membership,
                inactive_membership,
            ]
        )
        db.commit()
        return SeedData(
            trainer_id=trainer.id,
            other_trainer_id=other_trainer.id,
            inactive_trainer_id=inactive_trainer.id,
            client_id=client.id,
            other_client_id=other_client.id,
            inactive_client_id=inactive_client.id,
            membership_id=membership.id,
            renewal_membership_id=renewal_membership.id,
            inactive_membership_id=inactive_membership.id,
        )


@pytest.fixture
def seed(session_factory) -> SeedData:
    return seed_reference_data(session_factory)
