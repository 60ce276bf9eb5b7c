import pytest

import app.scripts.create_admin as create_admin
import app.scripts.ensure_tables as ensure_tables
import app.scripts.import_csv as import_csv
from app.services.csv_importer import CsvParseError, ImportSummary


class _DB:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class _Admin:
    def __init__(self, admin_id=1, username="admin"):
        self.id = admin_id
        self.username = username


def test_ensure_tables_reports_created(monkeypatch, capsys):
    monkeypatch.setattr(ensure_tables, "ensure_tables_exist", lambda: ["profiles", "tags"])
    ensure_tables.main()
    assert "profiles, tags" in capsys.readouterr().out


def test_create_admin_requires_arguments(monkeypatch):
    monkeypatch.setattr(create_admin.sys, "argv", ["prog", "admin"])
    with pytest.raises(SystemExit):
        create_admin.main()


def test_create_admin_creates_new_account(monkeypatch, capsys):
    db = _DB()
    created = []
    monkeypatch.setattr(create_admin, "ensure_tables_exist", lambda: [])
    monkeypatch.setattr(create_admin, "SessionLocal", lambda: db)
    monkeypatch.setattr(create_admin, "get_by_username", lambda db, username: None)
    monkeypatch.setattr(
        create_admin,
        "create",
        lambda db, username, password: created.append((username, password)) or _Admin(username=username),
    )
    monkeypatch.setattr(create_admin.sys, "argv", ["prog", "root", "s3cret"])
    create_admin.main()
    assert created == [("root", "s3cret")]
    assert db.closed is True
    assert "Created admin root" in capsys.readouterr().out


def test_create_admin_resets_existing_password(monkeypatch, capsys):
    reset = []
    monkeypatch.setattr(create_admin, "ensure_tables_exist", lambda: [])
    monkeypatch.setattr(create_admin, "SessionLocal", _DB)
    monkeypatch.setattr(create_admin, "get_by_username", lambda db, username: _Admin(admin_id=3))
    monkeypatch.setattr(create_admin, "set_password", lambda db, admin_id, password: reset.append(admin_id))
    monkeypatch.setattr(create_admin.sys, "argv", ["prog", "admin", "new-pass"])
    create_admin.main()
    assert reset == [3]
    assert "Password reset" in capsys.readouterr().out


def test_import_csv_missing_file(tmp_path):
    assert import_csv.main([str(tmp_path / "missing.csv")]) == 1


def test_import_csv_keeps_source_and_reports(monkeypatch, tmp_path, capsys):
    path = tmp_path / "profiles.csv"
    path.write_text("name,category\nA,Music\n")
    calls = {}

    def _fake_import(db, p, defaults=None, delete_file=True):
        calls["delete_file"] = delete_file
        calls["status"] = defaults.status
        summary = ImportSummary(success_count=1)
        summary.add_error(3, "Missing required fields (name, category)")
        return summary

    monkeypatch.setattr(import_csv, "setup_logging", lambda: None)
    monkeypatch.setattr(import_csv, "init_db", lambda: None)
    monkeypatch.setattr(import_csv, "SessionLocal", _DB)
    monkeypatch.setattr(import_csv, "import_csv_file", _fake_import)

    rc = import_csv.main([str(path), "--status", "draft"])

    out = capsys.readouterr().out
    assert rc == 2
    assert calls == {"delete_file": False, "status": "draft"}
    assert "1 profiles created, 1 errors" in out
    assert "row 3" in out
    assert path.exists()


def test_import_csv_parse_error(monkeypatch, tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("")
    monkeypatch.setattr(import_csv, "setup_logging", lambda: None)
    monkeypatch.setattr(import_csv, "init_db", lambda: None)
    monkeypatch.setattr(import_csv, "SessionLocal", _DB)
    monkeypatch.setattr(
        import_csv,
        "import_csv_file",
        lambda db, p, defaults=None, delete_file=True: (_ for _ in ()).throw(CsvParseError("No columns")),
    )
    assert import_csv.main([str(path)]) == 1
