"""
Shared fixtures: an in-memory SQLite database and sample documents.
"""

import hashlib
import os
from datetime import datetime

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import studiobase.models  # noqa: F401
from studiobase.database import Base, enable_sqlite_savepoints, get_db
from studiobase.models.base import new_object_id


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)
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


@pytest_asyncio.fixture
async def client(session_maker):
    from studiobase.main import app

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@pytest.fixture
def user_id():
    return new_object_id()


@pytest.fixture
def other_user_id():
    return new_object_id()


@pytest.fixture
def release_data(user_id):
    return {
        "creator": user_id,
        "name": "Side A",
        "type": "single",
        "releaseDate": datetime(2030, 1, 1),
        "tracks": [new_object_id(), new_object_id()],
    }


@pytest.fixture
def script_data(user_id):
    return {
        "user": user_id,
        "title": "  The Long Take  ",
        "filmmaker": "R. Lopez",
        "script": {
            "fileName": "long-take.pdf",
            "fileSize": 48213,
            "fileType": "application/pdf",
            "fileUrl": "https://cdn.example.com/scripts/long-take.pdf",
            "storageKey": "scripts/long-take.pdf",
            "contentHash": sha256(b"long take draft 3"),
        },
    }


@pytest.fixture
def photo_data(user_id):
    return {
        "user": user_id,
        "title": "Harbor at dawn",
        "photographer": "M. Chen",
        "category": "landscape",
        "image": {
            "fileName": "harbor.jpg",
            "fileSize": 2_400_112,
            "fileType": "image/jpeg",
            "fileUrl": "https://cdn.example.com/photos/harbor.jpg",
            "storageKey": "photos/harbor.jpg",
            "contentHash": sha256(b"harbor raw bytes"),
        },
        "width": 6000,
        "height": 4000,
        "settings": {"iso": 100, "aperture": "f/8", "shutterSpeed": "1/125", "focalLength": "35mm"},
    }


@pytest.fixture
def checkout_data(other_user_id):
    return {
        "recipient": other_user_id,
        "donor": None,
        "donorEmail": "a@b.c",
        "amount": 500,
        "currency": "USD",
        "stripeSessionId": "cs_1",
    }
