"""
HTTP level tests through the Flask test client.
"""

from datetime import datetime, timedelta
from io import BytesIO

import pytest
from openpyxl import load_workbook
from sqlalchemy.exc import OperationalError

from conftest import item_payload
from inventrack import db
from inventrack import inventory as inventory_routes
from inventrack import inventory_service
from inventrack.models import ChangeLog, ItemRequest
from inventrack.time_helpers import utcnow


class TestAuth:

    def test_register_and_login(self, app):
        client = app.test_client()
        resp = client.post("/auth/register", json={"username": "alice", "password": "pw", "role": "IT"})
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["user"]["username"] == "alice"
        assert "password" not in str(body)

        resp = client.post("/auth/login", json={"username": "alice", "password": "pw", "role": "IT"})
        assert resp.status_code == 200
        assert resp.get_json()["permissions"]["can_add_item"] is True

        me = client.get("/auth/me").get_json()
        assert me["user"]["role"] == "IT"

    def test_duplicate_username_and_role(self, app):
        client = app.test_client()
        client.post("/auth/register", json={"username": "alice", "password": "pw", "role": "IT"})
        resp = client.post("/auth/register", json={"username": "alice", "password": "x", "role": "IT"})
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "conflict"

    def test_same_username_other_role_is_distinct(self, app):
        client = app.test_client()
        client.post("/auth/register", json={"username": "alice", "password": "pw", "role": "IT"})
        resp = client.post("/auth/register", json={"username": "alice", "password": "pw2", "role": "Manager"})
        assert resp.status_code == 201
        resp = client.post("/auth/login", json={"username": "alice", "password": "pw", "role": "Manager"})
        assert resp.status_code == 401

    def test_unknown_role_rejected(self, app):
        resp = app.test_client().post("/auth/register", json={"username": "x", "password": "pw", "role": "CEO"})
        assert resp.status_code == 400

    def test_missing_fields(self, app):
        resp = app.test_client().post("/auth/login", json={"username": "x"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "validation_error"

    def test_wrong_password(self, app, login):
        login("alice", "IT")
        resp = app.test_client().post("/auth/login", json={"username": "alice", "password": "nope", "role": "IT"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "unauthorized"

    def test_seeded_admin(self, login):
        client = login("admin", "Admin", password="admin-pw", register=False)
        assert client.get("/auth/me").get_json()["permissions"]["can_view_changelog"] is True

    def test_logout(self, login):
        client = login("alice", "IT")
        assert client.post("/auth/logout").status_code == 200
        assert client.get("/items").status_code == 401

    def test_anonymous_gets_json_401(self, app):
        resp = app.test_client().get("/items")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "unauthorized"


class TestItems:

    def test_end_to_end_ownership(self, login):
        alice = login("alice", "IT")
        bob = login("bob", "IT")
        admin = login("admin", "Admin", password="admin-pw", register=False)

        resp = alice.post("/items", json=item_payload())
        assert resp.status_code == 201
        item = resp.get_json()
        assert item["added_by"] == "alice"

        resp = alice.post("/items", json=item_payload(name="Other"))
        assert resp.status_code == 409

        resp = bob.put(f"/items/{item['id']}", json=item_payload(name="Bob's now"))
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "forbidden"

        resp = alice.put(f"/items/{item['id']}", json=item_payload(name="Laptop 2"))
        assert resp.status_code == 200
        assert resp.get_json()["name"] == "Laptop 2"
        assert resp.get_json()["edited_by"] == "alice"

        resp = bob.delete(f"/items/{item['id']}")
        assert resp.status_code == 403

        resp = admin.delete(f"/items/{item['id']}")
        assert resp.status_code == 200
        assert admin.get("/items").get_json() == []

    def test_manager_cannot_add(self, login):
        mgr = login("mona", "Manager")
        assert mgr.post("/items", json=item_payload()).status_code == 403

    def test_validation_error(self, login):
        alice = login("alice", "IT")
        resp = alice.post("/items", json=item_payload(brand=""))
        assert resp.status_code == 400
        assert "brand" in resp.get_json()["message"]

    def test_unknown_item(self, login):
        admin = login("admin", "Admin", password="admin-pw", register=False)
        assert admin.put("/items/77", json=item_payload()).status_code == 404
        assert admin.delete("/items/77").status_code == 404
        assert admin.get("/items/77").status_code == 404

    def test_list_visible_to_every_role(self, login):
        alice = login("alice", "IT")
        alice.post("/items", json=item_payload())
        audit = login("aud", "Audit")
        items = audit.get("/items").get_json()
        assert [i["serialNumber"] for i in items] == ["SN1"]

    def test_owner_deletes_own(self, login):
        alice = login("alice", "IT")
        item = alice.post("/items", json=item_payload()).get_json()
        resp = alice.delete(f"/items/{item['id']}")
        assert resp.status_code == 200
        assert resp.get_json() == {"deleted": item["id"]}
        assert alice.get("/items").get_json() == []

    @pytest.mark.parametrize("role", ["Manager", "Supervisor", "Audit"])
    def test_read_only_roles_cannot_change(self, login, role):
        alice = login("alice", "IT")
        item = alice.post("/items", json=item_payload()).get_json()
        other = login("x" + role.lower(), role)
        resp = other.put(f"/items/{item['id']}", json=item_payload(name="Changed"))
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "forbidden"
        assert other.delete(f"/items/{item['id']}").status_code == 403
        assert alice.get(f"/items/{item['id']}").get_json()["name"] == "Laptop"

    def test_storage_failure_is_opaque(self, login, monkeypatch):
        alice = login("alice", "IT")

        def boom(cls, *args, **kwargs):
            raise OperationalError("INSERT INTO changelog", {}, Exception("disk I/O error"))
        monkeypatch.setattr(ChangeLog, "record", classmethod(boom))

        resp = alice.post("/items", json=item_payload())
        assert resp.status_code == 500
        body = resp.get_json()
        assert body["error"] == "storage_failure"
        assert "disk" not in body["message"]
        assert "INSERT" not in body["message"]
        assert alice.get("/items").get_json() == []

    def test_unexpected_error_is_json(self, login, monkeypatch):
        alice = login("alice", "IT")

        def boom():
            raise RuntimeError("secret detail")
        monkeypatch.setattr(inventory_service, "list_items", boom)

        resp = alice.get("/items")
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "internal_error", "message": "Internal error."}

    def test_wrong_method_is_json(self, login):
        alice = login("alice", "IT")
        resp = alice.patch("/items")
        assert resp.status_code == 405
        assert resp.get_json()["error"] == "method_not_allowed"


class TestExport:

    def test_csv_columns_and_footer(self, login):
        alice = login("alice", "IT")
        alice.post("/items", json=item_payload(employeeUser="carol"))
        resp = alice.get("/items/export")
        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert "attachment; filename=inventory_" in resp.headers["Content-Disposition"]
        text = resp.data.decode("utf-8-sig")
        lines = text.splitlines()
        assert lines[0] == "Name,Brand,Serial Number,Date Added,Added By,Assigned To"
        assert lines[1] == "Laptop,Dell,SN1,2024-01-01,alice,carol"
        assert "Prepared By:,alice" in text
        assert "Manager Approval:" in text
        assert "Audit Checked:" in text

    def test_xlsx(self, login):
        alice = login("alice", "IT")
        alice.post("/items", json=item_payload())
        resp = alice.get("/items/export.xlsx")
        assert resp.status_code == 200
        ws = load_workbook(BytesIO(resp.data)).active
        rows = list(ws.iter_rows(values_only=True))
        assert rows[0][:3] == ("Name", "Brand", "Serial Number")
        assert rows[1][2] == "SN1"

    def test_filename_uses_app_timezone(self, login, monkeypatch):
        alice = login("alice", "IT")
        alice.post("/items", json=item_payload())
        fixed = datetime(2031, 5, 6, 7, 8, 9)
        monkeypatch.setattr(inventory_routes, "now_local", lambda: fixed)

        resp = alice.get("/items/export.csv")
        assert "inventory_20310506_070809.csv" in resp.headers["Content-Disposition"]
        assert "Export Date:,2031-05-06" in resp.data.decode("utf-8-sig")
        resp = alice.get("/items/export.xlsx")
        assert "inventory_20310506_070809.xlsx" in resp.headers["Content-Disposition"]


class TestRequests:

    def test_submit_approve_archive(self, app, login):
        sup = login("sam", "Supervisor")
        mgr = login("mona", "Manager")

        resp = sup.post("/requests", json={"item_name": "Mouse", "brand": "Logitech", "quantity": 5, "reason": "Broken"})
        assert resp.status_code == 201
        req = resp.get_json()
        assert req["status"] == "Pending"
        assert req["requested_by"] == "sam"

        resp = sup.put(f"/requests/{req['id']}", json={"status": "Approved"})
        assert resp.status_code == 403

        resp = mgr.put(f"/requests/{req['id']}", json={"status": "Approved"})
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "Approved"

        resp = mgr.put(f"/requests/{req['id']}", json={"status": "Rejected"})
        assert resp.status_code == 409

        # simulate five days passing
        with app.app_context():
            r = db.session.get(ItemRequest, req["id"])
            r.request_date = utcnow() - timedelta(days=5, minutes=1)
            db.session.commit()
        result = app.archive_sweep_job()
        assert result["archived"] == 1

        assert mgr.get("/requests").get_json() == []
        archived = mgr.get("/requests/archive").get_json()
        assert [a["id"] for a in archived] == [req["id"]]
        assert archived[0]["status"] == "Approved"
        assert archived[0]["archived_at"]

    def test_missing_status(self, login):
        mgr = login("mona", "Manager")
        req = mgr.post("/requests", json={"item_name": "Desk", "brand": "Ikea", "quantity": 1, "reason": "x"}).get_json()
        assert mgr.put(f"/requests/{req['id']}", json={}).status_code == 400

    def test_unknown_request(self, login):
        mgr = login("mona", "Manager")
        assert mgr.put("/requests/999", json={"status": "Approved"}).status_code == 404

    def test_bad_quantity(self, login):
        it = login("alice", "IT")
        resp = it.post("/requests", json={"item_name": "Desk", "brand": "Ikea", "quantity": 0, "reason": "x"})
        assert resp.status_code == 400

    def test_oversized_quantity(self, login):
        it = login("alice", "IT")
        resp = it.post("/requests", json={"item_name": "Desk", "brand": "Ikea", "quantity": 10**20, "reason": "x"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "validation_error"
        assert it.get("/requests").get_json() == []

    def test_decision_from_disallowed_role(self, login):
        sup = login("sam", "Supervisor")
        req = sup.post("/requests", json={"item_name": "Desk", "brand": "Ikea", "quantity": 1, "reason": "x"}).get_json()
        resp = sup.put(f"/requests/{req['id']}", json={"status": "bogus"})
        assert resp.status_code == 403

    def test_archive_hidden_for_audit(self, login):
        audit = login("aud", "Audit")
        assert audit.get("/requests/archive").status_code == 403


class TestAdmin:

    def test_changelog_admin_only(self, login):
        alice = login("alice", "IT")
        alice.post("/items", json=item_payload())
        assert alice.get("/admin/changelog").status_code == 403

        admin = login("admin", "Admin", password="admin-pw", register=False)
        logs = admin.get("/admin/changelog?entity=Item").get_json()
        assert logs[0]["action"] == "create"
        assert logs[0]["username"] == "alice"

    def test_users_list(self, login):
        login("alice", "IT")
        admin = login("admin", "Admin", password="admin-pw", register=False)
        users = admin.get("/admin/users").get_json()
        assert {(u["username"], u["role"]) for u in users} == {("admin", "Admin"), ("alice", "IT")}
        assert all("password_hash" not in u for u in users)
