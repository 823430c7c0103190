import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from tracker.episode_schema import issues_for, validate_episode
from tracker.errors import ValidationFailed
from tracker.vocabulary import PainLocation, Symptom


def _candidate(**overrides):
    data = {
        "start_time": "2025-01-01T10:00:00Z",
        "severity": 5,
        "pain_location": ["forehead"],
    }
    data.update(overrides)
    return data


def _paths(candidate):
    return [issue.path for issue in issues_for(candidate)]


def test_complete_episode_is_valid():
    form = validate_episode(
        _candidate(
            end_time="2025-01-01T14:00:00Z",
            severity=7,
            pain_location=["forehead", "temples"],
            symptoms=["nausea", "light_sensitivity"],
            triggers=["stress", "lack_of_sleep"],
            medications=[
                {
                    "name": "Ibuprofen",
                    "dosage": "400mg",
                    "time_taken": "2025-01-01T10:30:00Z",
                    "effectiveness": 3,
                }
            ],
            notes="Test episode",
            contributing_factors={
                "hours_of_sleep": 6,
                "water_intake_oz": 64,
                "weather_conditions": "Rainy",
                "stress_level": 8,
            },
        )
    )
    assert form.pain_location == [PainLocation.forehead, PainLocation.temples]
    assert form.symptoms[1] is Symptom.light_sensitivity
    assert form.medications[0].effectiveness == 3


def test_minimal_episode_defaults_empty_lists():
    form = validate_episode(_candidate(pain_location=["back_of_head"]))
    assert form.symptoms == []
    assert form.triggers == []
    assert form.medications == []
    assert form.end_time is None


@pytest.mark.parametrize("severity", range(-1, 13))
def test_severity_accepted_only_between_1_and_10(severity):
    accepted = not issues_for(_candidate(severity=severity))
    assert accepted is (1 <= severity <= 10)


@pytest.mark.parametrize("severity, message", [(0, "Minimum severity is 1"), (11, "Maximum severity is 10")])
def test_severity_bound_messages(severity, message):
    (issue,) = issues_for(_candidate(severity=severity))
    assert issue.path == "severity"
    assert issue.message == message


@pytest.mark.parametrize("bad", [5.5, "7", True, None])
def test_wrong_typed_severity_is_an_issue_not_a_crash(bad):
    assert _paths(_candidate(severity=bad)) == ["severity"]


def test_missing_start_time_rejected():
    data = _candidate()
    del data["start_time"]
    (issue,) = issues_for(data)
    assert issue.path == "start_time"
    assert issue.message == "Start time is required"
    assert _paths(_candidate(start_time="")) == ["start_time"]


def test_pain_location_must_not_be_empty():
    (issue,) = issues_for(_candidate(pain_location=[]))
    assert issue.path == "pain_location"
    assert issue.message == "Select at least one pain location"
    assert issues_for(_candidate(pain_location=["neck"])) == []


def test_unknown_tags_rejected_with_their_position():
    assert _paths(_candidate(pain_location=["ear"])) == ["pain_location.0"]
    assert _paths(_candidate(symptoms=["nausea", "sneezing"])) == ["symptoms.1"]
    assert _paths(_candidate(triggers=["moon_phase"])) == ["triggers.0"]


def test_every_violation_is_reported():
    candidate = _candidate(
        severity=0,
        pain_location=[],
        medications=[{"name": "", "dosage": "", "time_taken": "x", "effectiveness": 6}],
    )
    with pytest.raises(ValidationFailed) as info:
        validate_episode(candidate)
    paths = {issue.path for issue in info.value.issues}
    assert paths == {
        "severity",
        "pain_location",
        "medications.0.name",
        "medications.0.dosage",
        "medications.0.effectiveness",
    }
    messages = {issue.path: issue.message for issue in info.value.issues}
    assert messages["medications.0.name"] == "Medication name is required"
    assert messages["medications.0.dosage"] == "Dosage is required"


def test_medication_time_taken_required():
    meds = [{"name": "Sumatriptan", "dosage": "50mg", "time_taken": ""}]
    assert _paths(_candidate(medications=meds)) == ["medications.0.time_taken"]


def test_contributing_factor_ranges():
    ok = {"hours_of_sleep": 7.5, "water_intake_oz": 0, "stress_level": 1}
    assert issues_for(_candidate(contributing_factors=ok)) == []

    bad = {"hours_of_sleep": 24.5, "water_intake_oz": -1, "stress_level": 11}
    assert set(_paths(_candidate(contributing_factors=bad))) == {
        "contributing_factors.hours_of_sleep",
        "contributing_factors.water_intake_oz",
        "contributing_factors.stress_level",
    }


def test_blank_end_time_means_absent():
    assert validate_episode(_candidate(end_time="  ")).end_time is None


def test_non_mapping_candidate_is_reported():
    issues = issues_for("not an episode")
    assert len(issues) == 1
    assert issues[0].path == ""
