"""Database fixtures for dbgraphql tests (shared)."""

import pytest
from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dbgraphql import DBGraphQL
from .models import Category, Comment, Post, User


async def seed_populated_db(session: AsyncSession):
    """Create and commit the sample rows used across tests and demos."""
    users = [
        User(id=1, username="alice"),
        User(id=2, username="bob"),
        User(id=3, username="carol"),
    ]
    categories = [
        Category(id=1, title="news", parent_id=None),
        Category(id=2, title="tech", parent_id=1),
        Category(id=3, title="python", parent_id=2),
    ]
    session.add_all(users + categories)
    await session.flush()
    base = datetime(2024, 1, 1, 12, 0, 0)
    posts = [
        Post(id=1, title="First Post", body="Hello world!", users_id=1, categories_id=1,
             published=True, rating=4.5, created_at=base),
        Post(id=2, title="GraphQL is Great", body="I love GraphQL!", users_id=1, categories_id=2,
             published=True, rating=5.0, created_at=base + timedelta(days=1)),
        Post(id=3, title="SQLAlchemy Tips", body="Some useful tips...", users_id=2, categories_id=3,
             published=False, rating=3.0, created_at=base + timedelta(days=2)),
        Post(id=4, title="Python Best Practices", body="Here are some tips...", users_id=2, categories_id=3,
             published=True, rating=None, created_at=base + timedelta(days=3)),
        Post(id=5, title="Getting Started", body="A beginner's guide", users_id=3, categories_id=1,
             published=False, rating=2.0, created_at=base + timedelta(days=4)),
    ]
    comments = [
        Comment(id=1, body="Nice", author_id=2, approver_id=1),
        Comment(id=2, body="Thanks", author_id=1, approver_id=3),
        Comment(id=3, body="Pending", author_id=3, approver_id=None),
    ]
    session.add_all(posts + comments)
    await session.commit()
    return {"users": users, "categories": categories, "posts": posts, "comments": comments}


@pytest.fixture(scope="function")
async def populated_db(engine):
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        return await seed_populated_db(session)


@pytest.fixture(scope="function")
async def api(engine, populated_db):
    """A connected facade over the populated test database."""
    db2g = DBGraphQL('blog', engine)
    await db2g.connect()
    return db2g


@pytest.fixture(scope="function")
def executable(api):
    return api.make_executable_schema()
