"""
Pytest fixtures for the order flow API tests.

Provides a fresh SQLite database per test, seeded parties and users, token
headers and an HTTP client bound to the ASGI app.
"""
import os
import tempfile

_tmpdir = tempfile.mkdtemp(prefix="orderflow-tests-")
os.environ["DB_TYPE"] = "sqlite"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["TRANSLATE_API_URL"] = ""
os.environ.pop("RESEND_API_KEY", None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.future import select  # noqa: E402

from main import app  # noqa: E402
from orderflow.core.db import AsyncSessionLocal, drop_models, engine, init_models  # noqa: E402
from orderflow.core.security import create_access_token, hash_password, user_claims  # noqa: E402
from orderflow.models.audit_models import AuditLogEntry  # noqa: E402
from orderflow.models.notification_models import Notification  # noqa: E402
from orderflow.models.order_models import CatalogProduct, Order, OrderItem, OrderProduct  # noqa: E402
from orderflow.models.user_models import Client, Manufacturer, User, UserRole  # noqa: E402

PASSWORD = "Password123!"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest_asyncio.fixture
async def db_session():
    """Fresh schema for every test."""
    await drop_models()
    await init_models()
    async with AsyncSessionLocal() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_session):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def seed(db_session):
    """A manufacturer, a client, one user per role and a catalog product."""
    manufacturer = Manufacturer(name="Acme Textiles", email="factory@acme.com")
    party = Client(name="Beta Apparel", email="buyer@beta.com")
    catalog = CatalogProduct(title="Hoodie")
    db_session.add_all([manufacturer, party, catalog])
    await db_session.flush()

    def make_user(email, role, **kwargs):
        return User(email=email, name=email.split("@")[0].title(), password_hash=PASSWORD_HASH, role=role, **kwargs)

    users = {
        "super_admin": make_user("root@acme.com", UserRole.super_admin.value),
        "admin": make_user("admin@acme.com", UserRole.admin.value),
        "order_creator": make_user("creator@acme.com", UserRole.order_creator.value),
        "manufacturer": make_user("maker@acme.com", UserRole.manufacturer.value, manufacturer_id=manufacturer.id),
        "client": make_user("buyer@beta.com", UserRole.client.value, client_id=party.id),
    }
    db_session.add_all(users.values())
    await db_session.commit()
    return {"manufacturer": manufacturer, "client": party, "catalog": catalog, "users": users}


def auth_headers(user) -> dict:
    token = create_access_token(user_claims(user), token_version=user.token_version)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers(seed):
    return {name: auth_headers(user) for name, user in seed["users"].items()}


async def make_order(db_session, seed, *product_states, created_by="admin", **order_fields):
    """
    Order with one product per ``(product_status, routed_to)`` pair. Returns
    the order id and the product ids in order.
    """
    number = await db_session.scalar(select(Order.id).order_by(Order.id.desc()).limit(1))
    order_number = f"ORD-{(number or 0) + 1:04d}"
    order = Order(
        order_number=order_number,
        client_id=seed["client"].id,
        manufacturer_id=seed["manufacturer"].id,
        created_by=seed["users"][created_by].id,
        **order_fields,
    )
    for position, (status, routed_to) in enumerate(product_states or [("pending", "admin")], start=1):
        order.products.append(OrderProduct(
            product_id=seed["catalog"].id,
            product_order_number=f"{order_number}-P{position:02d}",
            product_status=status,
            routed_to=routed_to,
            items=[OrderItem(variant_combo="M / Black", quantity=10)],
        ))
    db_session.add(order)
    await db_session.commit()
    return order.id, [p.id for p in order.products]


async def audit_rows(target_type=None, target_id=None, action_type=None):
    async with AsyncSessionLocal() as session:
        query = select(AuditLogEntry)
        if target_type:
            query = query.where(AuditLogEntry.target_type == target_type)
        if target_id is not None:
            query = query.where(AuditLogEntry.target_id == target_id)
        if action_type:
            query = query.where(AuditLogEntry.action_type == action_type)
        result = await session.execute(query.order_by(AuditLogEntry.id))
        return result.scalars().all()


async def notifications_for(user_id):
    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(Notification).where(Notification.user_id == user_id).order_by(Notification.id)
        )
        return result.scalars().all()


async def fetch(model, pk):
    async with AsyncSessionLocal() as session:
        return await session.get(model, pk)
