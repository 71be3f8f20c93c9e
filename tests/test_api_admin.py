def test_health(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.get_json()["data"] == {"status": "ok"}


def test_login_and_verify(client, admin):
    r = client.post("/api/v1/auth/login", json={"username": "admin", "password": "wrong"})
    assert r.status_code == 401

    r = client.post("/api/v1/auth/login", json={"username": "admin", "password": "secret", "remember": True})
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["username"] == "admin"
    token = data["token"]

    r = client.post("/api/v1/auth/verify", json={"token": token})
    v = r.get_json()["data"]
    assert v["valid"] is True
    assert v["user_id"] == admin.id
    assert v["username"] == "admin"

    r = client.post("/api/v1/auth/verify", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200

    r = client.post("/api/v1/auth/verify", json={"token": "garbage"})
    assert r.status_code == 401

    r = client.get("/api/v1/templates", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200


def test_login_requires_fields(client):
    r = client.post("/api/v1/auth/login", json={"username": "admin"})
    assert r.status_code == 422


def test_employees_crud_soft_delete(client, auth_headers):
    r = client.post("/api/v1/employees", headers=auth_headers, json={
        "name": "Zhao Min", "employee_no": "E100", "department": "Ops", "join_date": "2023-01-09",
    })
    assert r.status_code == 201
    emp = r.get_json()["data"]
    assert emp["status"] == "active"
    assert emp["join_date"] == "2023-01-09"

    r = client.post("/api/v1/employees", headers=auth_headers, json={"name": "Dup", "employee_no": "E100"})
    assert r.status_code == 409

    r = client.put(f"/api/v1/employees/{emp['id']}", headers=auth_headers, json={"position": "Lead"})
    assert r.get_json()["data"]["position"] == "Lead"
    assert r.get_json()["data"]["department"] == "Ops"

    r = client.put(f"/api/v1/employees/{emp['id']}", headers=auth_headers, json={"status": "retired"})
    assert r.status_code == 422

    assert client.delete(f"/api/v1/employees/{emp['id']}", headers=auth_headers).status_code == 200
    r = client.get(f"/api/v1/employees/{emp['id']}", headers=auth_headers)
    assert r.status_code == 404
    assert r.get_json()["error"]["code"] == "EMPLOYEE_NOT_FOUND"
    r = client.get("/api/v1/employees", headers=auth_headers)
    assert r.get_json()["data"] == []


def test_employee_status_filter(client, auth_headers, employee):
    r = client.get("/api/v1/employees?status=active", headers=auth_headers)
    assert [e["employee_no"] for e in r.get_json()["data"]] == ["E001"]
    r = client.get("/api/v1/employees?status=inactive", headers=auth_headers)
    assert r.get_json()["data"] == []


def test_template_delete_disables_when_referenced(client, auth_headers, employee):
    r = client.post("/api/v1/templates", headers=auth_headers, json={
        "name": "Monthly", "fields": {"basic_salary": {"name": "Basic", "type": "number"}},
    })
    assert r.status_code == 201
    tpl = r.get_json()["data"]
    assert tpl["fields"]["basic_salary"]["type"] == "number"

    spare = client.post("/api/v1/templates", headers=auth_headers, json={"name": "Spare"}).get_json()["data"]

    client.post("/api/v1/payrolls", headers=auth_headers, json={
        "employee_id": employee.id, "template_id": tpl["id"], "period": "2024-08",
        "payroll_data": {"basic_salary": 1000},
    })

    r = client.delete(f"/api/v1/templates/{tpl['id']}", headers=auth_headers)
    assert r.get_json()["data"]["disabled"] is True
    r = client.delete(f"/api/v1/templates/{spare['id']}", headers=auth_headers)
    assert r.get_json()["data"]["deleted"] is True

    r = client.get("/api/v1/templates", headers=auth_headers)
    assert r.get_json()["data"] == []
    r = client.get(f"/api/v1/templates/{tpl['id']}", headers=auth_headers)
    assert r.get_json()["data"]["is_active"] is False


def test_client_ip(client):
    r = client.get("/api/v1/client-ip", headers={
        "X-Real-IP": "203.0.113.5",
        "User-Agent": "Mozilla/5.0 (Linux; Android 14; Pixel 8)",
    })
    data = r.get_json()["data"]
    assert data["ip"] == "203.0.113.5"
    assert data["device_info"] == "Android device"


def test_client_ip_local(client):
    r = client.get("/api/v1/client-ip", environ_base={"REMOTE_ADDR": "127.0.0.1"})
    assert r.get_json()["data"]["ip"] == "local"
    assert r.get_json()["data"]["device_info"] == "Unknown device"


def test_unknown_signature_file(client):
    assert client.get("/uploads/signatures/nope.png").status_code == 404


def test_create_admin_command(app):
    from payroll_api.models.admin_user import AdminUser

    runner = app.test_cli_runner()
    result = runner.invoke(args=["create-admin", "--username", "ops", "--password", "pw123"])
    assert result.exit_code == 0, result.output
    assert "created" in result.output
    assert AdminUser.query.filter_by(username="ops").one().check_password("pw123")


def test_unknown_route_uses_error_envelope(client):
    r = client.get("/api/v1/no-such-thing")
    assert r.status_code == 404
    body = r.get_json()
    assert body["success"] is False
    assert body["error"]["code"] == "HTTP_ERROR"
    assert "detail" not in body["error"]
