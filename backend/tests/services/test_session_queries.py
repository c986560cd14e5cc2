"""Session Queries — per-deal pages, calendar range, availability and conflicts.

Tests:
    - Deal listing groups sessions per applicable product with pagination
    - Drifted automatic statuses are persisted when listed
    - Range queries require both bounds and cap the window
    - Availability reports locked resources and schedule-available trainers
    - Conflict lookup accepts comma-separated resource ids
"""

from datetime import date

from sqlalchemy import select

from erp.models.trainer_availability import TrainerAvailability
from erp.models.training_session import TrainingSession

START = "2026-03-10T08:00:00Z"
END = "2026-03-10T14:00:00Z"


async def _plan(client, **overrides) -> dict:
    body = {
        "deal_id": "D1", "deal_product_id": "P-FORM",
        "fecha_inicio_utc": START, "fecha_fin_utc": END,
        "sala_id": "R1", "trainer_ids": ["T1"], "unidad_movil_ids": ["U1"],
    }
    body.update(overrides)
    res = await client.post("/api/v1/sessions", json=body)
    assert res.status_code == 201, res.json()
    return res.json()["session"]


# ─── Deal listing ────────────────────────────────────────────────

async def test_list_groups_by_applicable_product(client, admin, catalog):
    await client.post("/api/v1/sessions/generate-from-deal", json={"deal_id": "D1"})
    res = await client.get("/api/v1/sessions", params={"deal_id": "D1", "limit": "1"})
    assert res.status_code == 200
    groups = res.json()["groups"]
    assert [g["product"]["id"] for g in groups] == ["P-FORM", "P-PREV"]
    assert len(groups[0]["sessions"]) == 1
    assert groups[0]["pagination"] == {"page": 1, "limit": 1, "total": 2}


async def test_list_second_page_and_limit_cap(client, admin, catalog):
    await client.post("/api/v1/sessions/generate-from-deal", json={"deal_id": "D1"})
    res = await client.get("/api/v1/sessions", params={
        "deal_id": "D1", "product_id": "P-FORM", "page": "2", "limit": "1",
    })
    group = res.json()["groups"][0]
    assert group["sessions"][0]["nombre_cache"] == "Incendios básico #2"

    capped = await client.get("/api/v1/sessions", params={"deal_id": "D1", "limit": "500"})
    assert capped.json()["groups"][0]["pagination"]["limit"] == 30


async def test_list_requires_deal_id(client, admin):
    res = await client.get("/api/v1/sessions")
    assert res.status_code == 400
    assert res.json()["message"] == "deal_id es obligatorio"


async def test_list_unknown_product_is_404(client, admin, catalog):
    res = await client.get("/api/v1/sessions", params={"deal_id": "D1", "product_id": "P-OTHER"})
    assert res.status_code == 404


async def test_listing_persists_drifted_status(client, admin, catalog, test_db):
    await client.post("/api/v1/sessions/generate-from-deal", json={"deal_id": "D1"})
    result = await test_db.execute(
        select(TrainingSession).where(TrainingSession.deal_product_id == "P-PREV"),
    )
    stale = result.scalar_one()
    stale.estado = "PLANIFICADA"
    await test_db.commit()

    res = await client.get("/api/v1/sessions", params={"deal_id": "D1", "product_id": "P-PREV"})
    assert res.json()["groups"][0]["sessions"][0]["estado"] == "BORRADOR"

    await test_db.refresh(stale)
    assert stale.estado == "BORRADOR"


# ─── Range ───────────────────────────────────────────────────────

async def test_range_returns_overlapping_sessions(client, admin, catalog):
    session = await _plan(client)
    res = await client.get("/api/v1/sessions/range", params={
        "start": "2026-03-10T14:00:00Z", "end": "2026-03-11",
    })
    assert res.status_code == 200
    rows = res.json()["sessions"]
    assert [r["id"] for r in rows] == [session["id"]]
    assert rows[0]["deal_title"] == "Formación incendios"
    assert rows[0]["product_code"] == "form-incendios"
    assert rows[0]["sala_name"] == "Aula 1"


async def test_range_filters(client, admin, catalog):
    await _plan(client)
    params = {"start": "2026-03-01", "end": "2026-03-31"}
    by_trainer = await client.get("/api/v1/sessions/range", params={**params, "trainer_id": "T2"})
    assert by_trainer.json()["sessions"] == []
    by_status = await client.get("/api/v1/sessions/range", params={**params, "estado": "borrador,cancelada"})
    assert by_status.json()["sessions"] == []
    planned = await client.get("/api/v1/sessions/range", params={**params, "estado": "PLANIFICADA", "unit_id": "U1"})
    assert len(planned.json()["sessions"]) == 1


async def test_range_requires_both_bounds(client, admin):
    res = await client.get("/api/v1/sessions/range", params={"start": "2026-03-01"})
    assert res.status_code == 400
    assert res.json()["message"] == "Los parámetros start y end son obligatorios"


async def test_range_rejects_inverted_and_long_windows(client, admin):
    inverted = await client.get("/api/v1/sessions/range", params={"start": "2026-03-02", "end": "2026-03-01"})
    assert inverted.status_code == 400
    too_long = await client.get("/api/v1/sessions/range", params={"start": "2026-01-01", "end": "2026-06-01"})
    assert too_long.status_code == 400
    assert "120" in too_long.json()["message"]


async def test_range_rejects_unknown_status(client, admin):
    res = await client.get("/api/v1/sessions/range", params={
        "start": "2026-03-01", "end": "2026-03-02", "estado": "pausada",
    })
    assert res.status_code == 400
    assert res.json()["message"] == "Estado inválido"


# ─── Availability ────────────────────────────────────────────────

async def test_availability_lists_locked_resources(client, admin, catalog):
    session = await _plan(client)
    res = await client.get("/api/v1/sessions/availability", params={
        "start": "2026-03-10T12:00:00Z", "end": "2026-03-10T18:00:00Z",
    })
    assert res.status_code == 200
    availability = res.json()["availability"]
    assert availability["trainers"] == ["T1"]
    assert availability["rooms"] == ["R1"]
    assert availability["units"] == ["U1"]
    assert availability["availableTrainers"] == ["T1", "T2"]

    excluded = await client.get("/api/v1/sessions/availability", params={
        "start": "2026-03-10T12:00:00Z", "exclude_session_id": session["id"],
    })
    assert excluded.json()["availability"]["trainers"] == []


async def test_availability_honours_schedule_overrides(client, admin, catalog, test_db):
    test_db.add(TrainerAvailability(trainer_id="T2", date=date(2026, 3, 10), available=False))
    await test_db.commit()
    res = await client.get("/api/v1/sessions/availability", params={"start": "2026-03-10"})
    assert res.json()["availability"]["availableTrainers"] == ["T1"]


async def test_availability_requires_start(client, admin):
    res = await client.get("/api/v1/sessions/availability")
    assert res.status_code == 400
    assert res.json()["message"] == "El parámetro start es obligatorio"


# ─── Conflicts ───────────────────────────────────────────────────

async def test_conflicts_lookup(client, admin, catalog):
    session = await _plan(client)
    res = await client.get("/api/v1/sessions/conflicts", params={
        "start": START, "end": END,
        "trainer_ids": "T1,T2", "room_ids": "R9,R1", "unit_ids": "0000",
    })
    assert res.status_code == 200
    conflicts = res.json()["conflicts"]
    assert [(c["resource_type"], c["resource_id"]) for c in conflicts] == [
        ("formador", "T1"), ("sala", "R1"),
    ]

    excluded = await client.get("/api/v1/sessions/conflicts", params={
        "start": START, "trainer_ids": "T1", "exclude_session_id": session["id"],
    })
    assert excluded.json()["conflicts"] == []
