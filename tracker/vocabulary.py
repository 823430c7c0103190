"""Closed tag vocabularies used by episodes and feedback."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Type

__all__ = [
    "Vocabulary",
    "PainLocation",
    "Symptom",
    "Trigger",
    "FeedbackType",
    "FeedbackStatus",
]


class Vocabulary(str, Enum):
    """Base for the string enums stored as plain tags."""

    @classmethod
    def is_member(cls, value: object) -> bool:
        return isinstance(value, str) and value in cls._value2member_map_

    @classmethod
    def parse(cls, value: object) -> "Vocabulary":
        if isinstance(value, cls):
            return value
        if not cls.is_member(value):
            raise ValueError(f"Unknown {cls.__name__}: {value!r}")
        return cls(value)

    @classmethod
    def ordinal(cls, member: "Vocabulary") -> int:
        """Position of ``member`` in declaration order."""
        return list(cls).index(member)

    @property
    def label(self) -> str:
        return _LABELS[type(self)][self]


class PainLocation(Vocabulary):
    forehead = "forehead"
    temples = "temples"
    back_of_head = "back_of_head"
    top_of_head = "top_of_head"
    left_side = "left_side"
    right_side = "right_side"
    eyes = "eyes"
    jaw = "jaw"
    neck = "neck"


class Symptom(Vocabulary):
    nausea = "nausea"
    vomiting = "vomiting"
    light_sensitivity = "light_sensitivity"
    sound_sensitivity = "sound_sensitivity"
    smell_sensitivity = "smell_sensitivity"
    visual_disturbances = "visual_disturbances"
    aura = "aura"
    dizziness = "dizziness"
    fatigue = "fatigue"
    confusion = "confusion"
    irritability = "irritability"


class Trigger(Vocabulary):
    stress = "stress"
    lack_of_sleep = "lack_of_sleep"
    weather_change = "weather_change"
    bright_lights = "bright_lights"
    loud_noises = "loud_noises"
    strong_smells = "strong_smells"
    alcohol = "alcohol"
    caffeine = "caffeine"
    dehydration = "dehydration"
    skipped_meal = "skipped_meal"
    hormonal_changes = "hormonal_changes"
    exercise = "exercise"
    screen_time = "screen_time"


class FeedbackType(Vocabulary):
    feedback = "feedback"
    feature_request = "feature_request"


class FeedbackStatus(Vocabulary):
    new = "new"
    reviewed = "reviewed"
    planned = "planned"
    implemented = "implemented"
    wont_fix = "wont_fix"


_LABELS: Dict[Type[Vocabulary], Dict[Vocabulary, str]] = {
    PainLocation: {
        PainLocation.forehead: "Forehead",
        PainLocation.temples: "Temples",
        PainLocation.back_of_head: "Back of Head",
        PainLocation.top_of_head: "Top of Head",
        PainLocation.left_side: "Left Side",
        PainLocation.right_side: "Right Side",
        PainLocation.eyes: "Eyes",
        PainLocation.jaw: "Jaw",
        PainLocation.neck: "Neck",
    },
    Symptom: {
        Symptom.nausea: "Nausea",
        Symptom.vomiting: "Vomiting",
        Symptom.light_sensitivity: "Light Sensitivity",
        Symptom.sound_sensitivity: "Sound Sensitivity",
        Symptom.smell_sensitivity: "Smell Sensitivity",
        Symptom.visual_disturbances: "Visual Disturbances",
        Symptom.aura: "Aura",
        Symptom.dizziness: "Dizziness",
        Symptom.fatigue: "Fatigue",
        Symptom.confusion: "Confusion",
        Symptom.irritability: "Irritability",
    },
    Trigger: {
        Trigger.stress: "Stress",
        Trigger.lack_of_sleep: "Lack of Sleep",
        Trigger.weather_change: "Weather Change",
        Trigger.bright_lights: "Bright Lights",
        Trigger.loud_noises: "Loud Noises",
        Trigger.strong_smells: "Strong Smells",
        Trigger.alcohol: "Alcohol",
        Trigger.caffeine: "Caffeine",
        Trigger.dehydration: "Dehydration",
        Trigger.skipped_meal: "Skipped Meal",
        Trigger.hormonal_changes: "Hormonal Changes",
        Trigger.exercise: "Exercise",
        Trigger.screen_time: "Screen Time",
    },
    FeedbackType: {
        FeedbackType.feedback: "Feedback",
        FeedbackType.feature_request: "Feature Request",
    },
    FeedbackStatus: {
        FeedbackStatus.new: "New",
        FeedbackStatus.reviewed: "Reviewed",
        FeedbackStatus.planned: "Planned",
        FeedbackStatus.implemented: "Implemented",
        FeedbackStatus.wont_fix: "Won't Fix",
    },
}


def _check_exhaustive() -> None:
    for vocab, labels in _LABELS.items():
        missing = set(vocab) - set(labels)
        if missing:
            raise RuntimeError(
                f"{vocab.__name__} members without a label: "
                + ", ".join(sorted(m.value for m in missing))
            )


_check_exhaustive()
