from conftest import auth
from shiftdesk.models.models import Building, BuildingCoordinator, Notification, Request
from shiftdesk.services.notifications import create_notification


def test_admin_routes_require_admin(client, make_user):
    employee = make_user()
    assert client.get("/api/admin/users").status_code == 401
    assert client.get("/api/admin/users", headers=auth(employee)).status_code == 403


def test_create_update_and_list_by_category(client, admin):
    r = client.post(
        "/api/admin/users",
        json={"username": "mona@shiftdesk.io", "password": "secret123", "full_name": "Mona", "is_manager": True},
        headers=auth(admin),
    )
    assert r.status_code == 200
    mona = r.json()
    assert mona["is_manager"] is True

    dup = client.post(
        "/api/admin/users",
        json={"username": "mona@shiftdesk.io", "password": "secret123", "full_name": "Mona 2"},
        headers=auth(admin),
    )
    assert dup.status_code == 400

    managers = client.get("/api/admin/users/managers", headers=auth(admin)).json()
    assert [u["id"] for u in managers] == [mona["id"]]

    r = client.put(
        f"/api/admin/users/{mona['id']}",
        json={"is_manager": False, "is_inspector": True, "full_name": "Mona I."},
        headers=auth(admin),
    )
    assert r.status_code == 200
    assert r.json()["full_name"] == "Mona I."

    inspectors = client.get("/api/admin/users/inspectors", headers=auth(admin)).json()
    assert [u["id"] for u in inspectors] == [mona["id"]]
    assert client.get("/api/admin/users/managers", headers=auth(admin)).json() == []


def test_employees_are_users_without_flags(client, admin, make_user):
    plain = make_user(full_name="Plain")
    make_user(is_inspector=True)
    employees = client.get("/api/admin/users/employees", headers=auth(admin)).json()
    assert [u["id"] for u in employees] == [plain.id]


def test_update_unknown_user_is_404(client, admin):
    r = client.put("/api/admin/users/9999", json={"full_name": "X"}, headers=auth(admin))
    assert r.status_code == 404


def test_update_to_taken_username_is_rejected(client, admin, make_user):
    a = make_user(username="a@shiftdesk.io")
    make_user(username="b@shiftdesk.io")
    r = client.put(f"/api/admin/users/{a.id}", json={"username": "b@shiftdesk.io"}, headers=auth(admin))
    assert r.status_code == 400


def test_delete_guards(client, admin, inspectors, make_shift):
    assert client.delete(f"/api/admin/users/{admin.id}", headers=auth(admin)).status_code == 400

    make_shift([inspectors[0].id])
    assert client.delete(f"/api/admin/users/{inspectors[0].id}", headers=auth(admin)).status_code == 400

    assert client.delete(f"/api/admin/users/{inspectors[1].id}", headers=auth(admin)).status_code == 200
    assert client.delete(f"/api/admin/users/{inspectors[1].id}", headers=auth(admin)).status_code == 404


def test_user_directory_for_any_authenticated_user(client, make_user):
    u = make_user(full_name="Zed")
    r = client.get("/api/users", headers=auth(u))
    assert r.status_code == 200
    assert r.json() == [{"id": u.id, "username": u.username, "full_name": "Zed"}]


def test_delete_applies_cascade_and_set_null_rules(client, db, admin, make_user):
    supervisor = make_user(is_admin=True)
    employee = make_user()
    building = client.post(
        "/api/admin/buildings",
        json={
            "name": "East Wing",
            "code": "EW-1",
            "supervisor_id": supervisor.id,
            "coordinators": [{"coordinator_id": employee.id}],
        },
        headers=auth(admin),
    ).json()
    client.post(
        "/api/requests",
        json={"type": "LEAVE", "start_date": "2024-03-18", "end_date": "2024-03-19", "reason": "Trip"},
        headers=auth(employee),
    )
    employee_id, supervisor_id = employee.id, supervisor.id
    create_notification(db, employee_id, message="hello")
    db.commit()

    assert client.delete(f"/api/admin/users/{employee_id}", headers=auth(admin)).status_code == 200
    assert client.delete(f"/api/admin/users/{supervisor_id}", headers=auth(admin)).status_code == 200

    db.expire_all()
    assert db.query(Notification).filter(Notification.user_id == employee_id).count() == 0
    assert db.query(Request).filter(Request.requester_id == employee_id).count() == 0
    assert db.query(BuildingCoordinator).filter(BuildingCoordinator.building_id == building["id"]).count() == 0
    assert db.query(Building).filter(Building.id == building["id"]).one().supervisor_id is None
