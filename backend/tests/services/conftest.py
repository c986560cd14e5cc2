"""Service test fixtures — async DB, FastAPI test client and authenticated users.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager patched for the readiness probe, which bypasses get_db
    - login() seeds a user + auth session and sends its cookie on every request

Design Decisions:
    - SQLite in-memory with StaticPool: fast, no external dependency, every
      session sees the same database
    - Cookie sent as a raw header: independent of cookie-jar domain matching
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from erp.db.base import Base
from erp.db.session import create_engine_for, create_session_factory
from erp.infrastructure.database import get_db, DatabaseSessionManager
import erp.infrastructure.database as db_module
import erp.models  # noqa: F401
from erp.main import app
from erp.models.auth_session import AuthSession
from erp.models.deal import Deal, DealProduct
from erp.models.mobile_unit import MobileUnit
from erp.models.room import Room
from erp.models.trainer import Trainer
from erp.models.user import User
from erp.services.auth_context import hash_session_token


@pytest.fixture
async def test_engine():
    engine = create_engine_for("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return create_session_factory(test_engine)


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


async def create_user_with_token(
    db, role: str, email: str | None = None, active: bool = True,
    expires_in: timedelta = timedelta(hours=8),
) -> tuple[User, str]:
    user = User(
        id=uuid.uuid4(),
        first_name=role.capitalize(),
        last_name="Tester",
        name=f"{role.capitalize()} Tester",
        email=email or f"{role}-{uuid.uuid4().hex[:6]}@gep.test",
        role=role,
        active=active,
    )
    token = uuid.uuid4().hex
    db.add(user)
    db.add(AuthSession(
        user_id=user.id,
        token_hash=hash_session_token(token),
        expires_at=datetime.now(timezone.utc) + expires_in,
    ))
    await db.commit()
    return user, token


@pytest.fixture
def login(client, test_db):
    """Authenticate the client as a new user of the given role."""
    async def _login(role: str = "admin", email: str | None = None) -> User:
        user, token = await create_user_with_token(test_db, role, email)
        client.headers["Cookie"] = f"erp_session={token}"
        return user
    return _login


@pytest.fixture
async def admin(login):
    return await login("admin")


@pytest.fixture
async def catalog(test_db):
    """Trainers T1/T2, room R1, units U1/U2 and deal D1 with three product lines.

    D1 products:
      - P-FORM  code form-incendios, quantity 2 (applicable)
      - P-PREV  code prev-revision, quantity 5 (prevention → one session)
      - P-OTHER code material-extintor (not applicable)
    """
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    test_db.add_all([
        Trainer(trainer_id="T1", name="Ana", activo=True),
        Trainer(trainer_id="T2", name="Bruno", activo=True),
        Room(sala_id="R1", name="Aula 1", sede="GEP Arganda"),
        MobileUnit(unidad_id="U1", name="Camión 1", matricula="1234ABC", tipo=["camion"], sede=["GEP Arganda"]),
        MobileUnit(unidad_id="U2", name="Camión 2", matricula="5678DEF", tipo=["camion"], sede=["GEP Sabadell"]),
        MobileUnit(unidad_id="0000", name="Sin unidad", matricula="0000", tipo=["virtual"], sede=["GEP Arganda"]),
        Deal(
            deal_id="D1",
            title="Formación incendios",
            organization_name="ACME",
            pipeline_label="Formación Abierta",
            sede_label="GEP Arganda",
            training_address="Calle Mayor 1",
            products=[
                DealProduct(id="P-FORM", name="Incendios básico", code="form-incendios", quantity=2, created_at=base),
                DealProduct(id="P-PREV", name="Revisión", code="prev-revision", quantity=5, created_at=base + timedelta(seconds=1)),
                DealProduct(id="P-OTHER", name="Extintor", code="material-extintor", quantity=3, created_at=base + timedelta(seconds=2)),
            ],
        ),
    ])
    await test_db.commit()
    return {"deal_id": "D1", "product_id": "P-FORM"}


@pytest.fixture
def user_token(test_db):
    """Seed a user with an auth session; returns (user, raw token)."""
    async def _create(role: str = "admin", **kwargs) -> tuple[User, str]:
        return await create_user_with_token(test_db, role, **kwargs)
    return _create
