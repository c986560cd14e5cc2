"""Product Routes — catalogue products and open-enrolment variants.

Tests:
    - Products created and patched with HH:MM hours; only admins write
    - Variants occupy their date between the product hours (Madrid)
    - A variant clashing with a session or another variant → 409 RESOURCE_UNAVAILABLE
    - Editing a variant never conflicts with itself
    - Unknown resources → 400; PATCH without changes → 400
    - Calendar listing by date range; deletion frees the slot
"""

from sqlalchemy import select

from erp.models.audit_log import AuditLog


async def _product(client, **overrides) -> dict:
    body = {"id": "PR1", "name": "Curso abierto", "code": "form-abierto",
            "hora_inicio": "9:00", "hora_fin": "11:00"}
    body.update(overrides)
    res = await client.post("/api/v1/products", json=body)
    assert res.status_code == 201, res.json()
    return res.json()["product"]


async def _variant(client, date="2026-03-10", **overrides) -> dict:
    body = {"date": date, "trainer_ids": ["T1"], "sala_id": "R1"}
    body.update(overrides)
    res = await client.post("/api/v1/products/PR1/variants", json=body)
    assert res.status_code == 201, res.json()
    return res.json()["variant"]


# ─── Products ────────────────────────────────────────────────────

async def test_create_product_normalises_hours(client, admin):
    product = await _product(client)
    assert product["hora_inicio"] == "09:00"
    assert product["hora_fin"] == "11:00"
    assert product["variants"] == []


async def test_invalid_hour_is_rejected(client, admin):
    res = await client.post("/api/v1/products", json={"name": "X", "hora_inicio": "25:00"})
    assert res.status_code == 400
    assert res.json()["message"] == "El campo hora_inicio debe tener el formato HH:MM"


async def test_patch_product(client, admin):
    await _product(client)
    res = await client.patch("/api/v1/products/PR1", json={"hora_fin": "12:30"})
    assert res.status_code == 200
    assert res.json()["product"]["hora_fin"] == "12:30"

    again = await client.patch("/api/v1/products/PR1", json={"hora_fin": "12:30"})
    assert again.status_code == 400


async def test_comercial_reads_but_cannot_write_products(client, admin, login):
    await _product(client)
    await login("comercial")
    assert (await client.get("/api/v1/products")).status_code == 200
    res = await client.post("/api/v1/products/PR1/variants", json={"date": "2026-03-10"})
    assert res.status_code == 403
    res = await client.post("/api/v1/products", json={"name": "Otro"})
    assert res.status_code == 403


# ─── Variants ────────────────────────────────────────────────────

async def test_create_variant_occupies_product_hours(client, admin, catalog, test_db):
    await _product(client)
    variant = await _variant(client)
    assert variant["name"] == "Curso abierto"
    assert variant["trainer_id"] == "T1"
    assert variant["trainer_ids"] == ["T1"]
    assert variant["inicio"] == "2026-03-10T08:00:00Z"
    assert variant["fin"] == "2026-03-10T10:00:00Z"

    product = (await client.get("/api/v1/products/PR1")).json()["product"]
    assert [v["id"] for v in product["variants"]] == [variant["id"]]

    result = await test_db.execute(
        select(AuditLog).where(AuditLog.action == "variant.created"),
    )
    assert result.scalar_one().entity_id == variant["id"]


async def test_variant_clashing_with_session_conflicts(client, admin, catalog):
    await _product(client)
    res = await client.post("/api/v1/sessions", json={
        "deal_id": "D1", "deal_product_id": "P-FORM",
        "fecha_inicio_utc": "2026-03-10T08:00:00Z", "fecha_fin_utc": "2026-03-10T14:00:00Z",
        "trainer_ids": ["T1"], "unidad_movil_ids": ["U1"], "sala_id": "R1",
    })
    assert res.status_code == 201

    res = await client.post("/api/v1/products/PR1/variants", json={
        "date": "2026-03-10", "trainer_ids": ["T1"],
    })
    assert res.status_code == 409
    body = res.json()
    assert body["error_code"] == "RESOURCE_UNAVAILABLE"
    assert body["conflicts"][0]["resource_id"] == "T1"
    assert body["conflicts"][0]["conflicts"][0]["kind"] == "session"


async def test_variant_clashing_with_variant_conflicts(client, admin, catalog):
    await _product(client)
    first = await _variant(client)
    res = await client.post("/api/v1/products/PR1/variants", json={
        "date": "2026-03-10", "sala_id": "R1",
    })
    assert res.status_code == 409
    detail = res.json()["conflicts"][0]
    assert detail["resource_type"] == "sala"
    assert detail["conflicts"][0]["variant_id"] == first["id"]


async def test_editing_variant_does_not_conflict_with_itself(client, admin, catalog):
    await _product(client)
    variant = await _variant(client)
    res = await client.patch(f"/api/v1/products/variants/{variant['id']}", json={
        "trainer_ids": ["T1", "T2"], "name": "Edición marzo",
    })
    assert res.status_code == 200
    updated = res.json()["variant"]
    assert updated["trainer_ids"] == ["T1", "T2"]
    assert updated["trainer_id"] == "T1"
    assert updated["name"] == "Edición marzo"


async def test_moving_variant_onto_booked_day_conflicts(client, admin, catalog):
    await _product(client)
    await _variant(client, date="2026-03-10")
    later = await _variant(client, date="2026-03-11", trainer_ids=["T2"])
    res = await client.patch(f"/api/v1/products/variants/{later['id']}", json={"date": "2026-03-10"})
    assert res.status_code == 409
    assert res.json()["conflicts"][0]["resource_id"] == "R1"


async def test_variant_patch_without_changes_is_400(client, admin, catalog):
    await _product(client)
    variant = await _variant(client)
    res = await client.patch(f"/api/v1/products/variants/{variant['id']}", json={"sala_id": "R1"})
    assert res.status_code == 400
    assert res.json()["message"] == "No se han proporcionado cambios"


async def test_variant_with_unknown_trainer_is_400(client, admin, catalog):
    await _product(client)
    res = await client.post("/api/v1/products/PR1/variants", json={
        "date": "2026-03-10", "trainer_ids": ["T-404"],
    })
    assert res.status_code == 400
    assert res.json()["message"] == "Formador no encontrado: T-404"


async def test_missing_variant_is_404(client, admin):
    res = await client.patch("/api/v1/products/variants/nope", json={"name": "X"})
    assert res.status_code == 404
    assert res.json()["message"] == "Variante no encontrada"


async def test_calendar_lists_variants_in_range(client, admin, catalog):
    await _product(client)
    first = await _variant(client, date="2026-03-10")
    await _variant(client, date="2026-03-12", trainer_ids=[], sala_id=None)
    res = await client.get("/api/v1/products/variants", params={
        "start": "2026-03-10", "end": "2026-03-11",
    })
    assert res.status_code == 200
    assert [v["id"] for v in res.json()["variants"]] == [first["id"]]

    bad = await client.get("/api/v1/products/variants", params={"start": "mal"})
    assert bad.status_code == 400


async def test_deleting_variant_frees_its_resources(client, admin, catalog):
    await _product(client)
    variant = await _variant(client)
    res = await client.delete(f"/api/v1/products/variants/{variant['id']}")
    assert res.status_code == 200
    await _variant(client)
