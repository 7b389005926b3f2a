"""Shared fixtures and helpers for storefront tests."""

from typing import Optional

import pytest_asyncio
from libs.auth.models import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_IDS, ROLE_STAFF
from libs.auth.security import create_access_token
from tests.factories import CategoryFactory, CustomerFactory, ProductFactory, UserFactory

ROLE_NAMES = {role_id: name for name, role_id in ROLE_IDS.items()}


def auth_headers_for(user) -> dict:
    """Bearer headers carrying a real access token for `user`."""
    token = create_access_token(
        user.id, user.email, user.role_id, ROLE_NAMES[user.role_id]
    )
    return {"Authorization": f"Bearer {token}"}


async def make_account(db, role: str = ROLE_CUSTOMER, with_customer: bool = True, **overrides):
    """Insert a user (and a customer profile for customers) and return both."""
    user = UserFactory.create(role=role, **overrides)
    db.add(user)
    await db.flush()

    customer: Optional[object] = None
    if with_customer and role == ROLE_CUSTOMER:
        customer = CustomerFactory.create(user_id=user.id)
        db.add(customer)
    await db.commit()
    return user, customer


@pytest_asyncio.fixture
async def customer_account(db_session):
    return await make_account(db_session)


@pytest_asyncio.fixture
async def customer_headers(customer_account) -> dict:
    user, _ = customer_account
    return auth_headers_for(user)


@pytest_asyncio.fixture
async def admin_user(db_session):
    user, _ = await make_account(db_session, role=ROLE_ADMIN)
    return user


@pytest_asyncio.fixture
async def admin_headers(admin_user) -> dict:
    return auth_headers_for(admin_user)


@pytest_asyncio.fixture
async def staff_user(db_session):
    user, _ = await make_account(db_session, role=ROLE_STAFF)
    return user


@pytest_asyncio.fixture
async def staff_headers(staff_user) -> dict:
    return auth_headers_for(staff_user)


@pytest_asyncio.fixture
async def category(db_session):
    category = CategoryFactory.create()
    db_session.add(category)
    await db_session.commit()
    return category


@pytest_asyncio.fixture
async def product(db_session, category):
    product = ProductFactory.create(category_id=category.id)
    db_session.add(product)
    await db_session.commit()
    return product
