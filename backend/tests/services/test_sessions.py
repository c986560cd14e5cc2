"""Session Routes — create, update, delete and generation of training sessions.

Tests:
    - Status computed automatically or forced to BORRADOR
    - Overlapping bookings of a trainer, room or unit → 409 RESOURCE_UNAVAILABLE
    - Cancelled sessions and always-available units never block
    - Status transitions follow the session state rules
    - Sessions of a product stay numbered "{name} #n" after every write
    - generate-from-deal syncs session counts with applicable products
    - Audit entries recorded for creations and updates
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import select

from erp.models.audit_log import AuditLog
from erp.models.product import Product, Variant
from erp.models.training_session import TrainingSession

START = "2026-03-10T08:00:00Z"
END = "2026-03-10T14:00:00Z"


def _body(**overrides) -> dict:
    body = {
        "deal_id": "D1",
        "deal_product_id": "P-FORM",
        "fecha_inicio_utc": START,
        "fecha_fin_utc": END,
        "sala_id": "R1",
        "trainer_ids": ["T1"],
        "unidad_movil_ids": ["U1"],
    }
    body.update(overrides)
    return body


async def _create(client, **overrides) -> dict:
    res = await client.post("/api/v1/sessions", json=_body(**overrides))
    assert res.status_code == 201, res.json()
    return res.json()["session"]


# ─── Create ──────────────────────────────────────────────────────

async def test_create_planned_session(client, admin, catalog):
    session = await _create(client)
    assert session["estado"] == "PLANIFICADA"
    assert session["nombre_cache"] == "Incendios básico #1"
    assert session["direccion"] == "Calle Mayor 1"
    assert session["fecha_inicio_utc"] == START
    assert session["trainer_ids"] == ["T1"]


async def test_create_without_resources_is_draft(client, admin, catalog):
    session = await _create(
        client, sala_id=None, trainer_ids=[], unidad_movil_ids=[],
        fecha_inicio_utc=None, fecha_fin_utc=None,
    )
    assert session["estado"] == "BORRADOR"
    assert session["fecha_inicio_utc"] is None


async def test_force_draft(client, admin, catalog):
    session = await _create(client, force_estado_borrador="true")
    assert session["estado"] == "BORRADOR"


async def test_end_before_start_rejected(client, admin, catalog):
    res = await client.post("/api/v1/sessions", json=_body(
        fecha_inicio_utc=END, fecha_fin_utc=START,
    ))
    assert res.status_code == 400
    assert res.json()["message"] == "La fecha de fin no puede ser anterior al inicio"


async def test_product_of_another_deal_is_404(client, admin, catalog):
    res = await client.post("/api/v1/sessions", json=_body(deal_product_id="nope"))
    assert res.status_code == 404
    assert res.json()["message"] == "Producto del presupuesto no encontrado"


async def test_unknown_trainer_rejected(client, admin, catalog):
    res = await client.post("/api/v1/sessions", json=_body(trainer_ids=["TX"]))
    assert res.status_code == 400
    assert res.json()["message"] == "Formador no encontrado: TX"


async def test_invalid_downtime_rejected(client, admin, catalog):
    res = await client.post("/api/v1/sessions", json=_body(tiempo_parada="7"))
    assert res.status_code == 400
    assert res.json()["message"] == "Tiempo de parada fuera de rango"


async def test_create_records_audit(client, admin, catalog, test_db):
    session = await _create(client, tiempo_parada="1,5")
    assert session["tiempo_parada"] == 1.5
    result = await test_db.execute(
        select(AuditLog).where(AuditLog.entity_id == session["id"]),
    )
    entry = result.scalar_one()
    assert entry.action == "session.created"
    assert entry.user_id == admin.id
    assert "nombre_cache" not in entry.after


# ─── Conflicts ───────────────────────────────────────────────────

async def test_overlapping_trainer_conflicts(client, admin, catalog):
    first = await _create(client)
    res = await client.post("/api/v1/sessions", json=_body(
        sala_id=None, unidad_movil_ids=[],
        fecha_inicio_utc="2026-03-10T14:00:00Z", fecha_fin_utc="2026-03-10T16:00:00Z",
    ))
    assert res.status_code == 409
    body = res.json()
    assert body["error_code"] == "RESOURCE_UNAVAILABLE"
    assert body["conflicts"][0]["resource_type"] == "formador"
    assert body["conflicts"][0]["resource_id"] == "T1"
    assert body["conflicts"][0]["conflicts"][0]["session_id"] == first["id"]


async def test_room_and_unit_conflicts_reported_in_order(client, admin, catalog):
    await _create(client)
    res = await client.post("/api/v1/sessions", json=_body(trainer_ids=["T2"]))
    assert res.status_code == 409
    kinds = [c["resource_type"] for c in res.json()["conflicts"]]
    assert kinds == ["sala", "unidad_movil"]


async def test_always_available_unit_is_shared(client, admin, catalog):
    await _create(client, sala_id=None, trainer_ids=[], unidad_movil_ids=["0000"])
    await _create(client, sala_id=None, trainer_ids=[], unidad_movil_ids=["0000"])


async def test_cancelled_session_frees_resources(client, admin, catalog):
    first = await _create(client)
    res = await client.patch(f"/api/v1/sessions/{first['id']}", json={"estado": "CANCELADA"})
    assert res.status_code == 200
    assert res.json()["session"]["estado"] == "CANCELADA"
    await _create(client)


async def test_variant_blocks_its_trainer(client, admin, catalog, test_db):
    test_db.add(Product(id="PR1", name="Curso abierto", code="form-abierto", hora_inicio="09:00", hora_fin="11:00"))
    test_db.add(Variant(
        id="V1", product_id="PR1", trainer_id="T2",
        date=datetime(2026, 3, 10, tzinfo=timezone.utc),
    ))
    await test_db.commit()

    res = await client.post("/api/v1/sessions", json=_body(trainer_ids=["T2"], sala_id=None, unidad_movil_ids=[]))
    assert res.status_code == 409
    detail = res.json()["conflicts"][0]["conflicts"][0]
    assert detail["kind"] == "variant"
    assert detail["variant_id"] == "V1"
    assert detail["inicio"] == "2026-03-10T08:00:00Z"


# ─── Update ──────────────────────────────────────────────────────

async def test_moving_a_session_does_not_conflict_with_itself(client, admin, catalog):
    session = await _create(client)
    res = await client.patch(f"/api/v1/sessions/{session['id']}", json={
        "fecha_fin_utc": "2026-03-10T15:00:00Z",
    })
    assert res.status_code == 200
    assert res.json()["session"]["fecha_fin_utc"] == "2026-03-10T15:00:00Z"


async def test_removing_trainers_drifts_to_draft(client, admin, catalog, test_db):
    session = await _create(client)
    res = await client.patch(f"/api/v1/sessions/{session['id']}", json={"trainer_ids": []})
    assert res.status_code == 200
    assert res.json()["session"]["estado"] == "BORRADOR"
    assert res.json()["session"]["trainer_ids"] == []

    result = await test_db.execute(
        select(AuditLog).where(AuditLog.action == "session.updated"),
    )
    entry = result.scalar_one()
    assert entry.before["trainer_ids"] == ["T1"]
    assert entry.after["trainer_ids"] == []


async def test_replacing_trainers(client, admin, catalog):
    session = await _create(client)
    res = await client.patch(f"/api/v1/sessions/{session['id']}", json={"trainer_ids": ["T2", "T1"]})
    assert res.json()["session"]["trainer_ids"] == ["T1", "T2"]


async def test_planning_a_draft_by_hand_is_rejected(client, admin, catalog):
    session = await _create(client, sala_id=None)
    res = await client.patch(f"/api/v1/sessions/{session['id']}", json={"estado": "PLANIFICADA"})
    assert res.status_code == 400
    assert res.json()["message"] == "Estado no editable"


async def test_finalizing_a_draft_is_rejected(client, admin, catalog):
    session = await _create(client, sala_id=None)
    res = await client.patch(f"/api/v1/sessions/{session['id']}", json={"estado": "FINALIZADA"})
    assert res.status_code == 400
    assert res.json()["message"] == "La sesión debe estar planificada para cambiar el estado"


async def test_resending_draft_status_on_a_draft_is_rejected(client, admin, catalog):
    session = await _create(client, sala_id=None)
    res = await client.patch(f"/api/v1/sessions/{session['id']}", json={"estado": "BORRADOR"})
    assert res.status_code == 400
    assert res.json()["message"] == "La sesión debe estar planificada para cambiar el estado"


async def test_suspended_session_keeps_status_on_edit(client, admin, catalog):
    session = await _create(client)
    await client.patch(f"/api/v1/sessions/{session['id']}", json={"estado": "SUSPENDIDA"})
    res = await client.patch(f"/api/v1/sessions/{session['id']}", json={"direccion": "Otra calle"})
    assert res.json()["session"]["estado"] == "SUSPENDIDA"
    assert res.json()["session"]["direccion"] == "Otra calle"


async def test_patch_missing_session_is_404(client, admin, catalog):
    res = await client.patch(f"/api/v1/sessions/{uuid4()}", json={"direccion": "x"})
    assert res.status_code == 404
    assert res.json()["message"] == "Sesión no encontrada"


async def test_comercial_can_plan_sessions(client, login, catalog):
    await login("comercial")
    await _create(client)


async def test_formador_cannot_write_sessions(client, login, catalog):
    await login("formador")
    res = await client.post("/api/v1/sessions", json=_body())
    assert res.status_code == 403


# ─── Delete and numbering ────────────────────────────────────────

async def test_delete_renumbers_siblings(client, admin, catalog):
    first = await _create(client, sala_id=None, trainer_ids=[], unidad_movil_ids=[])
    second = await _create(client, sala_id=None, trainer_ids=[], unidad_movil_ids=[])
    assert second["nombre_cache"] == "Incendios básico #2"

    res = await client.delete(f"/api/v1/sessions/{first['id']}")
    assert res.status_code == 200
    assert (await client.get(f"/api/v1/sessions/{first['id']}")).status_code == 404

    remaining = await client.get(f"/api/v1/sessions/{second['id']}")
    assert remaining.json()["session"]["nombre_cache"] == "Incendios básico #1"


# ─── Generation ──────────────────────────────────────────────────

async def test_generate_from_deal(client, admin, catalog):
    res = await client.post("/api/v1/sessions/generate-from-deal", json={"deal_id": "D1"})
    assert res.status_code == 200
    assert res.json() == {"ok": True, "count": 3, "created": 3, "deleted": 0}

    again = await client.post("/api/v1/sessions/generate-from-deal", json={"deal_id": "D1"})
    assert again.json()["created"] == 0

    listed = await client.get("/api/v1/sessions/by-deal", params={"deal_id": "D1"})
    names = sorted(s["nombre_cache"] for s in listed.json()["sessions"])
    assert names == ["Incendios básico #1", "Incendios básico #2", "Revisión #1"]


async def test_generate_removes_extra_sessions(client, admin, catalog):
    for _ in range(3):
        await _create(client, sala_id=None, trainer_ids=[], unidad_movil_ids=[])
    res = await client.post("/api/v1/sessions/generate-from-deal", json={"deal_id": "D1"})
    assert res.json()["deleted"] == 1
    assert res.json()["count"] == 3


async def test_generate_unknown_deal_is_404(client, admin):
    res = await client.post("/api/v1/sessions/generate-from-deal", json={"deal_id": "nope"})
    assert res.status_code == 404


async def test_generated_sessions_are_undated_drafts(client, admin, catalog, test_db):
    await client.post("/api/v1/sessions/generate-from-deal", json={"deal_id": "D1"})
    result = await test_db.execute(select(TrainingSession))
    sessions = result.scalars().all()
    assert {s.estado for s in sessions} == {"BORRADOR"}
    assert all(s.fecha_inicio_utc is None for s in sessions)
    assert {s.direccion for s in sessions} == {"Calle Mayor 1"}
