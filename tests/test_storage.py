"""
Tests for seed file loading and the database round trip.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# ruff: noqa: E402
from clinic.core.errors import StorageError
from clinic.core.schedule import get_available_slots
from clinic.core.storage import load_schedule_data, load_seed_file, seed_database
from clinic.database import repository


class TestSeedFile:
    def test_bundled_seed_loads(self):
        data = load_seed_file(project_root / "data" / "clinic_seed.json")

        assert len(data.providers) == 3
        assert data.plan("plan-dentist-2wk").cycle_unit == "weeks", "Week(s) label should be normalised"
        assert data.template("tmpl-full-downtown").duration_minutes == 480
        northside = data.template("tmpl-full-northside")
        assert [s.start_time for s in northside.day_segments["Wed"]] == ["08:00", "13:00"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(StorageError):
            load_seed_file(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            load_seed_file(path)

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(StorageError):
            load_seed_file(path)

    def test_invalid_entity(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text('{"plans": [{"id": "p", "effective_date": "2026-01-05", "cycle_length": 0}]}', encoding="utf-8")
        with pytest.raises(StorageError):
            load_seed_file(path)


class TestDatabaseRoundTrip:
    def test_snapshot_survives_round_trip(self, seeded_db, schedule_data):
        loaded = load_schedule_data(seeded_db)

        assert {p.id for p in loaded.providers} == {p.id for p in schedule_data.providers}
        assert loaded.assignment("asg-c-feb").end_date == schedule_data.assignment("asg-c-feb").end_date
        assert loaded.template("tpl-day") == schedule_data.template("tpl-day")

    def test_engine_result_unchanged_after_round_trip(self, seeded_db, schedule_data):
        loaded = load_schedule_data(seeded_db)
        assert get_available_slots("prov-a", "2026-01-07", 60, loaded) == get_available_slots(
            "prov-a", "2026-01-07", 60, schedule_data
        )

    def test_seed_is_idempotent(self, seeded_db, schedule_data):
        counts = seed_database(seeded_db, schedule_data)
        assert counts["providers"] == 3
        assert len(repository.providers.list(seeded_db)) == 3

    def test_repository_get_and_delete(self, seeded_db):
        assert repository.locations.get(seeded_db, "loc-a").name == "Downtown"
        assert repository.bookings.delete(seeded_db, "bk-1") is True
        assert repository.bookings.delete(seeded_db, "bk-1") is False
        assert repository.bookings.get(seeded_db, "bk-1") is None
