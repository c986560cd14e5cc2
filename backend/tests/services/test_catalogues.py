"""Catalogue Routes — trainers, rooms and mobile units.

Tests:
    - Any authenticated user reads; writes need the matching route permission
    - Client ids honoured, otherwise generated
    - search filters case-insensitively by name
    - Duplicates → 409; PATCH without changes → 400
"""


async def test_create_trainer_with_client_id(client, admin):
    res = await client.post("/api/v1/trainers", json={
        "trainer_id": "T-100", "name": " Marta ", "email": "marta@gep.es",
    })
    assert res.status_code == 201
    trainer = res.json()["trainer"]
    assert trainer["trainer_id"] == "T-100"
    assert trainer["name"] == "Marta"
    assert trainer["activo"] is True


async def test_create_trainer_generates_id(client, admin):
    res = await client.post("/api/v1/trainers", json={"name": "Iker"})
    assert res.status_code == 201
    assert len(res.json()["trainer"]["trainer_id"]) == 36


async def test_duplicate_trainer_id_conflicts(client, admin):
    await client.post("/api/v1/trainers", json={"trainer_id": "T-1", "name": "A"})
    res = await client.post("/api/v1/trainers", json={"trainer_id": "T-1", "name": "B"})
    assert res.status_code == 409


async def test_search_trainers(client, admin, catalog):
    res = await client.get("/api/v1/trainers", params={"search": "AN"})
    assert [t["trainer_id"] for t in res.json()["trainers"]] == ["T1"]


async def test_patch_trainer(client, admin, catalog):
    res = await client.patch("/api/v1/trainers/T1", json={"activo": "inactivo", "phone": " 600 "})
    assert res.status_code == 200
    trainer = res.json()["trainer"]
    assert trainer["activo"] is False
    assert trainer["phone"] == "600"

    again = await client.patch("/api/v1/trainers/T1", json={"activo": False})
    assert again.status_code == 400


async def test_missing_trainer_is_404(client, admin):
    res = await client.get("/api/v1/trainers/nope")
    assert res.status_code == 404


async def test_comercial_reads_but_cannot_write_trainers(client, login, catalog):
    await login("comercial")
    assert (await client.get("/api/v1/trainers")).status_code == 200
    res = await client.post("/api/v1/trainers", json={"name": "X"})
    assert res.status_code == 403


async def test_people_can_manage_trainers(client, login):
    await login("people")
    res = await client.post("/api/v1/trainers", json={"name": "Nuevo"})
    assert res.status_code == 201


async def test_room_lifecycle(client, login):
    await login("logistica")
    res = await client.post("/api/v1/rooms", json={"name": "Aula Norte", "sede": "gep sabadell"})
    assert res.status_code == 201
    room = res.json()["room"]
    assert room["sede"] == "GEP Sabadell"

    dup = await client.post("/api/v1/rooms", json={"name": "Aula Norte", "sede": "GEP Arganda"})
    assert dup.status_code == 409

    bad = await client.patch(f"/api/v1/rooms/{room['sala_id']}", json={"sede": "Madrid"})
    assert bad.status_code == 400
    assert bad.json()["message"] == "Sede inválida"

    ok = await client.patch(f"/api/v1/rooms/{room['sala_id']}", json={"sede": "In company"})
    assert ok.json()["room"]["sede"] == "In company"


async def test_mobile_unit_lifecycle(client, login):
    await login("logistica")
    res = await client.post("/api/v1/mobile-units", json={
        "unidad_id": "U-9", "name": "Furgón", "matricula": "9999XYZ",
        "tipo": ["furgon"], "sede": "GEP Arganda, GEP Sabadell",
    })
    assert res.status_code == 201
    assert res.json()["unit"]["sede"] == ["GEP Arganda", "GEP Sabadell"]

    listed = await client.get("/api/v1/mobile-units", params={"search": "9999"})
    assert [u["unidad_id"] for u in listed.json()["units"]] == ["U-9"]

    res = await client.patch("/api/v1/mobile-units/U-9", json={"tipo": []})
    assert res.status_code == 400
    assert res.json()["message"] == "El tipo es obligatorio"


async def test_comercial_cannot_create_rooms(client, login):
    await login("comercial")
    res = await client.post("/api/v1/rooms", json={"name": "Aula", "sede": "GEP Arganda"})
    assert res.status_code == 403
