import json
from datetime import datetime, timezone

from backend.app import storage
from backend.app.models import AnalysisProject, AuditEntry, User


def _project(**kw):
    defaults = dict(owner_id="u1", owner_email="ana@orgao.gov.br", name="Pregão 12/2025")
    defaults.update(kw)
    return AnalysisProject(**defaults)


class TestUsers:
    def test_first_boot_seeds_and_persists_bootstrap_admin(self, data_dir):
        users = storage.load_users()

        assert [u.id for u in users] == [storage.BOOTSTRAP_ADMIN_ID]
        assert users[0].role == "admin"
        assert users[0].email == "admin"
        stored = json.loads((data_dir / "govtech_users.json").read_text(encoding="utf-8"))
        assert stored[0]["id"] == "admin-1"

    def test_saved_users_are_loaded_back(self):
        users = storage.load_users() + [User(name="Ana", email="ana@x.com", password="secret1")]
        storage.save_users(users)

        assert storage.load_users() == users

    def test_corrupt_users_entry_falls_back_to_seed(self, data_dir):
        data_dir.mkdir(parents=True)
        (data_dir / "govtech_users.json").write_text("{not json", encoding="utf-8")

        users = storage.load_users()

        assert [u.id for u in users] == ["admin-1"]
        assert (data_dir / "govtech_users.json.corrupt").read_text(encoding="utf-8") == "{not json"

    def test_missing_bootstrap_admin_is_restored(self):
        storage.save_users([User(name="Ana", email="ana@x.com", password="secret1")])

        users = storage.load_users()

        assert users[0].id == "admin-1"
        assert len(users) == 2


class TestProjects:
    def test_missing_entry_is_empty(self):
        assert storage.load_projects() == []

    def test_corrupt_entry_is_empty_and_does_not_raise(self, data_dir):
        data_dir.mkdir(parents=True)
        (data_dir / "govtech_projects.json").write_text("[{\"broken\": ", encoding="utf-8")

        assert storage.load_projects() == []
        assert (data_dir / "govtech_projects.json.corrupt").read_text(encoding="utf-8") == "[{\"broken\": "
        storage.save_projects([_project()])
        assert (data_dir / "govtech_projects.json.corrupt").exists()

    def test_wrong_shape_is_empty(self, data_dir):
        data_dir.mkdir(parents=True)
        (data_dir / "govtech_projects.json").write_text("{\"id\": 1}", encoding="utf-8")

        assert storage.load_projects() == []

    def test_round_trip_revives_dates(self):
        created = datetime(2025, 3, 14, 15, 9, 26, tzinfo=timezone.utc)
        stamp = datetime(2025, 3, 15, 8, 0, 0, tzinfo=timezone.utc)
        project = _project(
            create_date=created,
            history=[AuditEntry(type="CHAT_LOG", title="Conversa", content="oi", timestamp=stamp)],
        )
        storage.save_projects([project])

        loaded = storage.load_projects()[0]

        assert isinstance(loaded.create_date, datetime)
        assert loaded.create_date.replace(microsecond=0) == created
        assert loaded.history[0].timestamp.replace(microsecond=0) == stamp

    def test_dates_are_stored_as_iso_strings(self, data_dir):
        project = _project(create_date=datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
        storage.save_projects([project])

        raw = json.loads((data_dir / "govtech_projects.json").read_text(encoding="utf-8"))

        assert raw[0]["create_date"].startswith("2025-01-02T03:04:05")
        assert raw[0]["history"] == []

    def test_loading_twice_is_idempotent(self):
        storage.save_projects([_project(), _project(name="Edital 2")])

        assert storage.load() == storage.load()
