from conftest import auth
from shiftdesk.models.models import Building


def _payload(supervisor_id, code="B-1", coordinators=None, name="North Tower"):
    return {
        "name": name,
        "code": code,
        "area": "North",
        "supervisor_id": supervisor_id,
        "coordinators": coordinators or [],
    }


def test_create_requires_admin_supervisor_and_unique_code(client, admin, make_user):
    manager = make_user(is_manager=True)
    r = client.post("/api/admin/buildings", json=_payload(manager.id), headers=auth(admin))
    assert r.status_code == 400

    r = client.post("/api/admin/buildings", json=_payload(admin.id), headers=auth(admin))
    assert r.status_code == 200
    assert r.json()["supervisor"]["id"] == admin.id

    dup = client.post("/api/admin/buildings", json=_payload(admin.id), headers=auth(admin))
    assert dup.status_code == 400

    assert client.post("/api/admin/buildings", json=_payload(admin.id, code="B-2"), headers=auth(manager)).status_code == 403


def test_coordinators_are_replaced_on_update(client, admin, catalog, make_user):
    c1 = make_user(is_manager=True)
    c2 = make_user(is_manager=True)
    created = client.post(
        "/api/admin/buildings",
        json=_payload(
            admin.id,
            coordinators=[
                {"coordinator_id": c1.id, "shift_type_id": catalog["morning"]},
                {"coordinator_id": c2.id, "shift_type_id": catalog["evening"]},
            ],
        ),
        headers=auth(admin),
    ).json()
    assert [(c["coordinator_id"], c["shift_type_id"]) for c in created["coordinators"]] == [
        (c1.id, catalog["morning"]),
        (c2.id, catalog["evening"]),
    ]

    r = client.put(
        f"/api/admin/buildings/{created['id']}",
        json=_payload(admin.id, coordinators=[{"coordinator_id": c2.id, "shift_type_id": catalog["morning"]}], name="North Tower 2"),
        headers=auth(admin),
    )
    assert r.status_code == 200
    body = r.json()
    assert body["name"] == "North Tower 2"
    assert [(c["coordinator_id"], c["shift_type_id"]) for c in body["coordinators"]] == [(c2.id, catalog["morning"])]

    assert client.put("/api/admin/buildings/999", json=_payload(admin.id), headers=auth(admin)).status_code == 404
    # keeping its own code is fine, taking another building's code is not
    assert client.put(f"/api/admin/buildings/{created['id']}", json=_payload(admin.id, code="HQ-01"), headers=auth(admin)).status_code == 400


def test_delete_blocked_by_assignments(client, admin, catalog, inspectors, make_shift):
    make_shift([inspectors[0].id])
    assert client.delete(f"/api/admin/buildings/{catalog['building']}", headers=auth(admin)).status_code == 400

    empty = client.post("/api/admin/buildings", json=_payload(admin.id, code="EMPTY"), headers=auth(admin)).json()
    assert client.delete(f"/api/admin/buildings/{empty['id']}", headers=auth(admin)).status_code == 200
    assert client.delete(f"/api/admin/buildings/{empty['id']}", headers=auth(admin)).status_code == 404


def test_list_open_to_authenticated_users(client, catalog, inspectors):
    r = client.get("/api/admin/buildings", headers=auth(inspectors[0]))
    assert r.status_code == 200
    assert [b["code"] for b in r.json()] == ["HQ-01"]


def test_with_shifts_tree_and_visibility(client, admin, catalog, inspectors, make_user, make_shift):
    other_admin = make_user(is_admin=True)
    client.post("/api/admin/buildings", json=_payload(other_admin.id, code="OTHER", name="Annex"), headers=auth(admin))
    shift = make_shift([inspectors[0].id])

    tree = client.get("/api/buildings/with-shifts", headers=auth(admin)).json()["buildings"]
    assert {b["code"] for b in tree} == {"HQ-01", "OTHER"}
    hq = next(b for b in tree if b["code"] == "HQ-01")
    assert [s["id"] for s in hq["shifts"]] == [shift["id"]]
    first_inspector = hq["shifts"][0]["inspector_groups"][0]["inspectors"][0]
    assert first_inspector["status"] == "PENDING"
    assert first_inspector["is_primary"] is True

    # a non-admin sees buildings they supervise and unsupervised ones only
    visible = client.get("/api/buildings/with-shifts", headers=auth(inspectors[0])).json()["buildings"]
    assert visible == []


def test_unsupervised_buildings_are_visible_to_everyone(client, db, catalog, inspectors):
    db.add(Building(name="Orphan", code="ORPHAN", area="", supervisor_id=None))
    db.commit()
    visible = client.get("/api/buildings/with-shifts", headers=auth(inspectors[0])).json()["buildings"]
    assert [b["code"] for b in visible] == ["ORPHAN"]
    assert visible[0]["supervisor"] is None
    assert visible[0]["shifts"] == []
