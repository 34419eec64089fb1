"""
Tests for youni/database/seed.py (RIASEC backfill and search reindex).
"""

from unittest.mock import MagicMock

from youni.database import seed
from youni.database.models import Occupation
from youni.database.seed import backfill_riasec_codes, reindex_occupations


def riasec_of(db, code):
    return db.query(Occupation).filter(Occupation.code == code).one().riasec_code


class TestBackfillRiasecCodes:
    def test_classifies_missing_codes(self, db, make_occupation):
        make_occupation("19-1021.00", title="Biochemists", description="Conduct scientific research")
        make_occupation("25-2021.00", title="Teachers", interests="teaching and helping people")

        report = backfill_riasec_codes(db)

        assert (report.total, report.updated, report.skipped) == (2, 2, 0)
        assert riasec_of(db, "19-1021.00") == "I"
        assert riasec_of(db, "25-2021.00") == "S"

    def test_no_keyword_hits_defaults_to_realistic(self, db, make_occupation):
        make_occupation("45-2093.00", title="Farmworkers", description="")
        backfill_riasec_codes(db)
        assert riasec_of(db, "45-2093.00") == "R"

    def test_existing_codes_are_left_alone(self, db, make_occupation):
        make_occupation("19-1021.00", title="Biochemists", description="research", riasec_code="E")
        report = backfill_riasec_codes(db)
        assert report.total == 0
        assert riasec_of(db, "19-1021.00") == "E"

    def test_idempotent(self, db, make_occupation):
        make_occupation("19-1021.00", title="Biochemists", description="research")
        first = backfill_riasec_codes(db)
        second = backfill_riasec_codes(db)
        assert first.updated == 1
        assert second.total == 0
        assert riasec_of(db, "19-1021.00") == "I"

    def test_force_recomputes_everything(self, db, make_occupation):
        make_occupation("19-1021.00", title="Biochemists", description="research", riasec_code="E")
        report = backfill_riasec_codes(db, force=True)
        assert report.updated == 1
        assert riasec_of(db, "19-1021.00") == "I"

    def test_failure_on_one_row_skips_it(self, db, make_occupation, monkeypatch):
        make_occupation("11-1011.00", title="Chief Executives", description="leadership")
        make_occupation("19-1021.00", title="Biochemists", description="research")
        real = seed.classify_occupation

        def flaky(interests, title, description):
            if title == "Chief Executives":
                raise TypeError("unserialisable interests")
            return real(interests, title, description)

        monkeypatch.setattr(seed, "classify_occupation", flaky)
        report = backfill_riasec_codes(db)

        assert (report.total, report.updated, report.skipped) == (2, 1, 1)
        assert riasec_of(db, "11-1011.00") is None
        assert riasec_of(db, "19-1021.00") == "I"

    def test_empty_table(self, db):
        report = backfill_riasec_codes(db)
        assert (report.total, report.updated, report.skipped) == (0, 0, 0)


class TestReindexOccupations:
    def test_indexes_all_rows_into_recreated_collection(self, db, make_occupation, monkeypatch):
        make_occupation("19-1021.00")
        make_occupation("25-2021.00")
        store = MagicMock()
        store.index_occupations.side_effect = lambda rows: len(list(rows))
        calls = []

        def fake_get_vector_store(recreate=False):
            calls.append(recreate)
            return store

        monkeypatch.setattr("youni.rag.get_vector_store", fake_get_vector_store)

        assert reindex_occupations(db) == 2
        assert calls == [True]
