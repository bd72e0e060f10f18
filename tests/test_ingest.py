"""Tests for CSV ingestion — per-field parse-with-default."""
import io

import pytest


class TestParseHelpers:

    @pytest.mark.parametrize("raw,expected", [
        ("135", 135.0), (" 102.5 ", 102.5), (80, 80.0),
        ("", None), ("   ", None), (None, None), ("heavy", None), ("nan", None), ("inf", None),
    ])
    def test_parse_float(self, raw, expected):
        from liftlog.ingest import _parse_float
        assert _parse_float(raw) == expected

    def test_parse_int_truncates(self):
        from liftlog.ingest import _parse_int
        assert _parse_int("8") == 8
        assert _parse_int("8.0") == 8
        assert _parse_int("") is None


class TestNormalizeRow:

    def test_missing_fields_default(self):
        from liftlog.ingest import normalize_row
        row = normalize_row({"title": "Push", "start_time": "2024-01-01"})
        assert row["exercise_title"] == ""
        assert row["weight_lbs"] is None
        assert row["reps"] is None

    def test_negative_values_become_missing(self):
        from liftlog.ingest import normalize_row
        row = normalize_row({"title": "Push", "weight_lbs": "-5", "weight_kg": "-1", "reps": "-3"})
        assert row["weight_lbs"] is None
        assert row["weight_kg"] is None
        assert row["reps"] is None

    def test_non_numeric_weight_is_missing_not_fatal(self):
        from liftlog.ingest import normalize_row
        row = normalize_row({"title": "Push", "weight_lbs": "BW", "reps": "10"})
        assert row["weight_lbs"] is None
        assert row["reps"] == 10


class TestReadWorkoutCsv:

    def test_quoted_headers_and_blank_cells(self):
        from liftlog.ingest import read_workout_csv
        csv = (
            '"title","start_time","exercise_title","weight_kg","reps","rpe"\n'
            '"Leg Day","2024-01-01 10:00","Squat (Barbell)",100,5,\n'
        )
        rows = read_workout_csv(io.StringIO(csv))
        assert len(rows) == 1
        assert rows[0]["title"] == "Leg Day"
        assert rows[0]["weight_kg"] == 100.0
        assert rows[0]["rpe"] is None
        assert rows[0]["weight_lbs"] is None

    def test_drops_rows_without_title_or_date(self, caplog):
        from liftlog.ingest import read_workout_csv
        csv = (
            "title,start_time,exercise_title,weight_lbs,reps\n"
            ",,Bench Press (Barbell),135,5\n"
            "Push,2024-01-01,Bench Press (Barbell),135,5\n"
        )
        with caplog.at_level("WARNING", logger="liftlog.ingest"):
            rows = read_workout_csv(io.StringIO(csv))
        assert len(rows) == 1
        assert "Dropped 1 rows" in caplog.text

    def test_missing_file_raises(self, tmp_path):
        from liftlog.ingest import read_workout_csv
        with pytest.raises(FileNotFoundError):
            read_workout_csv(tmp_path / "nope.csv")

    def test_uploaded_bytes_buffer(self):
        from liftlog.ingest import read_workout_csv
        from liftlog.sessions import build_sessions
        upload = io.BytesIO(
            b"title,start_time,exercise_title,weight_lbs,reps\n"
            b"Push,2024-01-01 10:00,Bench Press (Barbell),175,5\n"
            b"Push,2024-01-08 10:00,Bench Press (Barbell),180,5\n"
        )
        sessions = build_sessions(read_workout_csv(upload))
        assert len(sessions) == 2
        assert sessions[0].exercises["Bench Press (Barbell)"][0].weight_lbs == 180.0
