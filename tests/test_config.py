"""Tests for configuration constants and the muscle-mapping loader."""
import json

import pytest


class TestThresholds:
    """Heuristic constants stay consistent with each other."""

    def test_training_age_cutoffs_ordered(self):
        from liftlog.config import TRAINING_AGE_THRESHOLDS
        assert 0 < TRAINING_AGE_THRESHOLDS["novice"] < TRAINING_AGE_THRESHOLDS["intermediate"]

    def test_every_level_has_rates_and_ceiling(self):
        from liftlog.config import CEILING_MULTIPLIERS, WEEKLY_GAIN_RATES
        for level in ("novice", "intermediate", "advanced"):
            assert CEILING_MULTIPLIERS[level] > 1
            assert WEEKLY_GAIN_RATES[level]["base"] > 0
            assert WEEKLY_GAIN_RATES[level]["variance"] > 0

    def test_brzycki_limit_below_pole(self):
        from liftlog.config import BRZYCKI_MAX_REPS
        assert 1.0278 - 0.0278 * BRZYCKI_MAX_REPS > 0


class TestLoadMuscleMapping:

    def test_packaged_mapping(self):
        from liftlog.config import load_muscle_mapping
        mapping = load_muscle_mapping()
        assert "Bench Press (Barbell)" in mapping["exercises"]
        assert "Chest" in mapping["radarGroups"]
        for alias, canonical in mapping["muscleAliases"].items():
            assert canonical in mapping["radarGroups"], alias

    def test_defaults_for_missing_sections(self, tmp_path):
        from liftlog.config import load_muscle_mapping
        path = tmp_path / "m.json"
        path.write_text(json.dumps({"exercises": {"Squat": {"primary": ["Quads"]}}}))
        mapping = load_muscle_mapping(str(path))
        assert mapping["exercises"]["Squat"] == {"primary": ["Quads"], "secondary": []}
        assert mapping["radarGroups"] == []
        assert mapping["muscleAliases"] == {}

    @pytest.mark.parametrize("doc", [[], {"radarGroups": []}, {"exercises": []}, {"exercises": {"X": "Chest"}}])
    def test_malformed(self, tmp_path, doc):
        from liftlog.config import load_muscle_mapping
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(doc))
        with pytest.raises(ValueError):
            load_muscle_mapping(str(path))
