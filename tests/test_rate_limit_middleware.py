from io import BytesIO

import app.main as main_mod
import app.routers.admin as admin_mod
import app.routers.auth as auth_mod
from app.services.csv_importer import ImportSummary


def test_login_rate_limit_blocks_excess_requests(monkeypatch, client):
    monkeypatch.setattr(main_mod.settings, "rate_limit_login_per_min", 2)
    monkeypatch.setattr(auth_mod, "get_by_username", lambda db, username: None)

    payload = {"username": "admin", "password": "bad"}
    r1 = client.post("/api/admin/auth/login", json=payload)
    r2 = client.post("/api/admin/auth/login", json=payload)
    r3 = client.post("/api/admin/auth/login", json=payload)

    assert r1.status_code == 401
    assert r2.status_code == 401
    assert r3.status_code == 429
    assert int(r3.headers["Retry-After"]) >= 1


def test_csv_upload_rate_limit(monkeypatch, admin_client):
    monkeypatch.setattr(main_mod.settings, "rate_limit_csv_upload_per_min", 1)
    monkeypatch.setattr(admin_mod, "import_csv_file", lambda db, path: ImportSummary())

    def _upload():
        return admin_client.post(
            "/api/admin/upload-csv",
            files={"file": ("p.csv", BytesIO(b"name,category\n"), "text/csv")},
        )

    assert _upload().status_code == 200
    assert _upload().status_code == 429


def test_unlimited_paths_are_not_counted(monkeypatch, client):
    monkeypatch.setattr(main_mod.settings, "rate_limit_login_per_min", 1)
    for _ in range(5):
        assert client.get("/health/live").status_code == 200
