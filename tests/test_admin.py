def test_admin_cannot_act_on_self(client, admin, auth):
    headers = auth(admin)
    admin_id = str(admin["_id"])

    res = client.put(f"/api/admins/{admin_id}/status", json={"is_blocked": True}, headers=headers)
    assert res.status_code == 403
    assert res.json()["message"] == "You cannot block/unblock yourself"

    res = client.delete(f"/api/admins/{admin_id}", headers=headers)
    assert res.status_code == 403

    res = client.put(f"/api/admins/{admin_id}", json={"is_super_admin": False}, headers=headers)
    assert res.status_code == 403
    assert res.json()["message"] == "You cannot change your own super admin status"

    res = client.put(f"/api/admins/{admin_id}", json={"first_name": "Rooted"}, headers=headers)
    assert res.status_code == 200
    assert res.json()["admin"]["first_name"] == "Rooted"


def test_blocking_admin_records_note_and_locks_out(client, db, admin, make_account, auth):
    target = make_account("admin", email="ops@example.com")
    target_headers = auth(target)
    assert client.get("/api/users/me", headers=target_headers).status_code == 200

    res = client.put(f"/api/admins/{target['_id']}/status", json={"is_blocked": True}, headers=auth(admin))
    assert res.status_code == 200
    notes = res.json()["admin"]["status_notes"]
    assert len(notes) == 1
    assert notes[0]["action"] == "blocked"
    assert notes[0]["performed_by"] == str(admin["_id"])

    assert client.get("/api/users/me", headers=target_headers).status_code == 403
    res = client.post("/api/users/login", json={"email": "ops@example.com", "password": "secret123"})
    assert res.status_code == 403

    res = client.put(f"/api/admins/{target['_id']}/status", json={"is_blocked": False, "reason": "Cleared"}, headers=auth(admin))
    notes = res.json()["admin"]["status_notes"]
    assert [n["action"] for n in notes] == ["blocked", "unblocked"]
    assert notes[1]["reason"] == "Cleared"


def test_create_and_update_admin(client, admin, auth):
    headers = auth(admin)
    body = {
        "first_name": "Ops",
        "last_name": "Lead",
        "email": "ops@example.com",
        "password": "secret123",
        "permissions": ["manage_orders"],
    }
    res = client.post("/api/admins", json=body, headers=headers)
    assert res.status_code == 201
    created = res.json()["admin"]
    assert created["permissions"] == ["manage_orders"]
    assert created["created_by"] == str(admin["_id"])
    assert "password_hash" not in created

    assert client.post("/api/admins", json=body, headers=headers).status_code == 409

    res = client.put(f"/api/admins/{created['id']}", json={"email": "root@example.com"}, headers=headers)
    assert res.status_code == 409

    res = client.put(f"/api/admins/{created['id']}", json={"permissions": ["manage_orders", "manage_reviews"]}, headers=headers)
    assert res.json()["admin"]["permissions"] == ["manage_orders", "manage_reviews"]

    res = client.post("/api/admins", json={**body, "email": "x@example.com", "permissions": ["launch_rockets"]}, headers=headers)
    assert res.status_code == 400


def test_reset_admin_password(client, admin, make_account, auth):
    target = make_account("admin", email="ops@example.com")
    res = client.put(f"/api/admins/{target['_id']}/reset-password", json={"new_password": "fresh-pass"}, headers=auth(admin))
    assert res.status_code == 200
    assert client.post("/api/users/login", json={"email": "ops@example.com", "password": "fresh-pass"}).status_code == 200


def test_admin_stats_and_listing(client, admin, make_account, auth):
    make_account("admin")
    blocked = make_account("admin", is_blocked=True)
    make_account("customer")

    data = client.get("/api/admins", headers=auth(admin)).json()
    assert data["pagination"]["total_items"] == 3
    stats = data["stats"]
    assert stats["total"] == 3
    assert stats["blocked"] == 1
    assert stats["active"] == 2
    assert stats["super_admins"] == 1
    assert stats["new_this_month"] == 3

    data = client.get("/api/admins", params={"status": "blocked"}, headers=auth(admin)).json()
    assert [a["email"] for a in data["admins"]] == [blocked["email"]]

    assert client.get(f"/api/admins/{admin['_id']}", headers=auth(admin)).status_code == 200
    assert client.get("/api/admins/not-an-id", headers=auth(admin)).status_code == 404


def test_admin_routes_need_manage_admins(client, make_account, customer, auth):
    scoped = make_account("admin", permissions=["manage_products"])
    assert client.get("/api/admins", headers=auth(scoped)).status_code == 403
    assert client.get("/api/admins", headers=auth(customer)).status_code == 403


def test_customer_soft_delete(client, db, admin, customer, other_customer, auth):
    headers = auth(admin)
    res = client.delete(f"/api/customers/{customer['_id']}", headers=headers)
    assert res.status_code == 200

    stored = db["user"].find_one({"_id": customer["_id"]})
    assert stored["is_deleted"] is True
    assert stored["deleted_by"] == str(admin["_id"])

    listing = client.get("/api/customers", headers=headers).json()
    assert [c["email"] for c in listing["customers"]] == ["bob@example.com"]
    assert listing["stats"]["total"] == 1

    assert client.get(f"/api/customers/{customer['_id']}", headers=headers).status_code == 404
    res = client.post("/api/users/login", json={"email": "alice@example.com", "password": "secret123"})
    assert res.status_code == 404


def test_block_customer(client, admin, customer, auth):
    res = client.put(
        f"/api/customers/{customer['_id']}/status",
        json={"is_blocked": True, "reason": "Chargebacks"},
        headers=auth(admin),
    )
    assert res.status_code == 200
    assert res.json()["customer"]["is_blocked"] is True
    assert res.json()["customer"]["status_notes"][0]["reason"] == "Chargebacks"

    stats = client.get("/api/customers/stats", headers=auth(admin)).json()["stats"]
    assert stats["blocked"] == 1
    assert stats["active_percentage"] == 0


def test_customer_routes_need_permission(client, customer, make_account, auth):
    assert client.get("/api/customers", headers=auth(customer)).status_code == 403
    scoped = make_account("admin", permissions=["manage_customers"])
    assert client.get("/api/customers", headers=auth(scoped)).status_code == 200


def test_account_search_is_literal(client, admin, customer, auth):
    res = client.get("/api/customers", params={"search": "("}, headers=auth(admin))
    assert res.status_code == 200
    assert res.json()["customers"] == []

    res = client.get("/api/customers", params={"search": "alice@"}, headers=auth(admin))
    assert [c["email"] for c in res.json()["customers"]] == ["alice@example.com"]
