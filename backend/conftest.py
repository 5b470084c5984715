"""Shared fixtures: in-memory database, a small catalog, and a router wired to both."""
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bizops.agent.router import FlowRouter
from bizops.agent.session_store import SessionStore
from bizops.agent.tokens import PageTokenCodec
from bizops.agent.turn import Sender
from bizops.db.base import Base
from bizops.models import Client, Product, User

CHAT_ID = "1001"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog(db):
    seller = User(telegram_id=CHAT_ID, name="Sam Seller", role="seller")
    db.add(seller)
    db.flush()

    apple = Product(name="Apple juice", price=Decimal("2.00"), category="Drinks", external_id="AJ-1", stock=10)
    biscuits = Product(name="Biscuits", price=Decimal("5.00"), category="Snacks", external_id="BI-1", stock=5)
    corner = Client(
        name="Corner Market", contact="555-0101", address="12 Main St",
        category="Retail", route="North", owner_id=seller.id,
    )
    sunrise = Client(
        name="Sunrise Kiosk", contact=None, address="3 Beach Ave",
        category="Kiosk", route="South City", owner_id=seller.id,
    )
    db.add_all([apple, biscuits, corner, sunrise])
    db.commit()

    return SimpleNamespace(
        seller=seller.id,
        apple=apple.id,
        biscuits=biscuits.id,
        corner=corner.id,
        sunrise=sunrise.id,
    )


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def codec():
    return PageTokenCodec(limit=64)


@pytest.fixture
def router(store, session_factory, codec):
    return FlowRouter(store=store, session_factory=session_factory, codec=codec)


@pytest.fixture
def sender():
    return Sender(telegram_id=CHAT_ID, name="Sam Seller", username="sam")


@pytest.fixture
def chat_id():
    return CHAT_ID
