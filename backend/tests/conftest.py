"""
Shared fixtures: a file-backed SQLite database per test, seeded accounts,
an auction factory and an HTTP client bound to the app.
"""
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from auction_house.config import get_settings
from auction_house.database import Base, get_db, get_session_maker
from auction_house.models import AccountType, Auction
from auction_house.services.auth import AuthService
from auction_house.utils.money import to_money
from auction_house.utils.timeutils import utcnow


class TickingClock:
    """Deterministic clock that advances one second per call"""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "auction_house_test.db"


@pytest_asyncio.fixture
async def engine(db_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", connect_args={"timeout": 30})
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(get_settings(), "upload_dir", str(path))
    return path


async def _register(db, email, account_type, first_name, last_name):
    return await AuthService(db).create_user(
        email=email,
        password="password123",
        first_name=first_name,
        last_name=last_name,
        account_type=account_type.value,
        agree_to_terms=True,
    )


@pytest_asyncio.fixture
async def seller(db):
    return await _register(db, "seller@example.com", AccountType.SELLER, "Sam", "Seller")


@pytest_asyncio.fixture
async def other_seller(db):
    return await _register(db, "other.seller@example.com", AccountType.SELLER, "Olga", "Owner")


@pytest_asyncio.fixture
async def buyer(db):
    return await _register(db, "buyer@example.com", AccountType.BUYER, "Bea", "Buyer")


@pytest_asyncio.fixture
async def second_buyer(db):
    return await _register(db, "second.buyer@example.com", AccountType.BUYER, "Carl", "Customer")


@pytest.fixture
def make_auction(db, seller):
    """
    Insert an auction directly, bypassing the create-time start checks so
    tests can build upcoming and already ended auctions.
    """
    async def _make(
        starting_price="50.00",
        starts_in=timedelta(hours=-1),
        ends_in=timedelta(days=1),
        seller_id=None,
        **fields,
    ) -> Auction:
        now = utcnow()
        values = dict(
            seller_id=seller_id or seller.id,
            title="Vintage camera",
            description="A working rangefinder camera in good condition",
            category="Electronics",
            condition="Used",
            location="Berlin",
            shipping_info="Ships worldwide",
            tags="camera,vintage",
            starting_price=to_money(starting_price),
            current_price=to_money(starting_price),
            start_time=now + starts_in,
            end_time=now + ends_in,
            is_active=True,
            is_featured=False,
            status="Active",
            view_count=0,
            created_at=now,
        )
        values.update(fields)
        auction = Auction(**values)
        db.add(auction)
        await db.commit()
        return auction

    return _make


def auth_headers(user) -> dict:
    token = AuthService(None).create_access_token(user)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(session_maker, upload_dir):
    from auction_house.main import app

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_maker] = lambda: session_maker

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def ticking_clock():
    return TickingClock
