from conftest import auth
from shiftdesk.models.models import GroupInspector, ShiftType


def _respond(client, shift_id, inspector, body, as_user=None):
    return client.post(
        f"/api/shifts/{shift_id}/inspectors/{inspector.id}/response",
        json=body,
        headers=auth(as_user or inspector),
    )


def _statuses(shift, inspector_id):
    return [
        (i["status"], i["rejection_reason"])
        for g in shift["inspector_groups"]
        for i in g["inspectors"]
        if i["inspector_id"] == inspector_id
    ]


def test_accept_marks_every_binding_of_that_inspector(client, admin, catalog, inspectors):
    payload = {
        "building_id": catalog["building"],
        "week": "2024-W12",
        "inspector_groups": [
            {"role_id": catalog["lead"], "inspectors": [{"inspector_id": inspectors[0].id, "is_primary": True}], "days": []},
            {"role_id": catalog["backup"], "inspectors": [{"inspector_id": inspectors[0].id}, {"inspector_id": inspectors[1].id}], "days": []},
        ],
    }
    shift = client.post("/api/admin/shifts", json=payload, headers=auth(admin)).json()

    r = _respond(client, shift["id"], inspectors[0], {"action": "ACCEPT"})
    assert r.status_code == 200
    body = r.json()
    assert _statuses(body, inspectors[0].id) == [("ACCEPTED", None), ("ACCEPTED", None)]
    assert _statuses(body, inspectors[1].id) == [("PENDING", None)]
    assert body["my_status"] == "ACCEPTED"
    # assignment-level status is left to the admin
    assert body["status"] == "PENDING"


def test_reject_requires_reason_and_changes_nothing(client, db, inspectors, make_shift):
    shift = make_shift([inspectors[0].id])
    for body in ({"action": "REJECT"}, {"action": "REJECT", "rejection_reason": "   "}):
        r = _respond(client, shift["id"], inspectors[0], body)
        assert r.status_code == 400
    rows = db.query(GroupInspector).all()
    assert [(g.status, g.rejection_reason, g.response_at) for g in rows] == [("PENDING", None, None)]


def test_reject_with_reason(client, inspectors, make_shift):
    shift = make_shift([inspectors[0].id, inspectors[1].id])
    r = _respond(client, shift["id"], inspectors[1], {"action": "REJECT", "rejection_reason": "On vacation"})
    assert r.status_code == 200
    assert _statuses(r.json(), inspectors[1].id) == [("REJECTED", "On vacation")]
    assert _statuses(r.json(), inspectors[0].id) == [("PENDING", None)]


def test_cannot_respond_for_someone_else(client, admin, inspectors, make_shift):
    shift = make_shift([inspectors[0].id])
    r = _respond(client, shift["id"], inspectors[0], {"action": "ACCEPT"}, as_user=inspectors[1])
    assert r.status_code == 403
    # not even an admin
    r = _respond(client, shift["id"], inspectors[0], {"action": "ACCEPT"}, as_user=admin)
    assert r.status_code == 403


def test_unbound_inspector_gets_404(client, inspectors, make_shift):
    shift = make_shift([inspectors[0].id])
    assert _respond(client, shift["id"], inspectors[1], {"action": "ACCEPT"}).status_code == 404
    assert _respond(client, 9999, inspectors[1], {"action": "ACCEPT"}).status_code == 404


def test_unknown_action_is_422(client, inspectors, make_shift):
    shift = make_shift([inspectors[0].id])
    assert _respond(client, shift["id"], inspectors[0], {"action": "MAYBE"}).status_code == 422


def test_last_response_wins(client, inspectors, make_shift):
    shift = make_shift([inspectors[0].id])
    _respond(client, shift["id"], inspectors[0], {"action": "REJECT", "rejection_reason": "Sick"})
    r = _respond(client, shift["id"], inspectors[0], {"action": "ACCEPT"})
    assert _statuses(r.json(), inspectors[0].id) == [("ACCEPTED", None)]


def test_weekly_schedule_scenario(client, db, admin, catalog, make_user):
    """Admin schedules inspector 7 for Monday of 2024-W12 on shift type 3; the inspector accepts."""
    # pad ids so the scenario uses shift type 3 and inspector 7
    db.add(ShiftType(name="Night", start_time="22:00", end_time="06:00"))
    db.commit()
    assert db.query(ShiftType).order_by(ShiftType.id.desc()).first().id == 3
    while True:
        inspector = make_user(is_inspector=True)
        if inspector.id >= 7:
            break
    assert inspector.id == 7

    created = client.post(
        "/api/admin/shifts",
        json={
            "building_id": catalog["building"],
            "week": "2024-W12",
            "inspector_groups": [
                {
                    "role_id": catalog["lead"],
                    "inspectors": [{"inspector_id": 7, "is_primary": True}],
                    "days": [{"day_of_week": 1, "shift_type_id": 3}],
                }
            ],
        },
        headers=auth(admin),
    )
    assert created.status_code == 200
    shift_id = created.json()["id"]

    notes = client.get("/api/notifications", headers=auth(inspector)).json()
    assert len(notes) == 1
    assert notes[0]["metadata"]["shift_id"] == shift_id

    mine = client.get("/api/shifts", headers=auth(inspector)).json()
    assert [s["id"] for s in mine] == [shift_id]
    assert mine[0]["inspector_groups"][0]["days"] == [
        {"day_of_week": 1, "shift_type_id": 3, "shift_type": {"id": 3, "name": "Night", "start_time": "22:00", "end_time": "06:00"}}
    ]

    r = client.post(f"/api/shifts/{shift_id}/inspectors/7/response", json={"action": "ACCEPT"}, headers=auth(inspector))
    assert r.status_code == 200
    assert _statuses(r.json(), 7) == [("ACCEPTED", None)]
    assert r.json()["inspector_groups"][0]["inspectors"][0]["response_at"] is not None
