"""Shared enums and types for the assessment core."""

from enum import StrEnum


class FactCategory(StrEnum):
    DEVICE = "device"
    SOFTWARE = "software"
    BEHAVIOR = "behavior"
    KNOWLEDGE = "knowledge"
    ENVIRONMENT = "environment"
    COMPLIANCE = "compliance"


class Resolution(StrEnum):
    """How a conflict between an existing and a new fact was settled."""

    KEEP_HIGHEST_CONFIDENCE = "keep-highest-confidence"
    KEEP_NEWEST = "keep-newest"
    MANUAL_REVIEW = "manual-review"


class StatusCategory(StrEnum):
    SHIELDS_UP = "shields-up"
    TO_DO = "to-do"
    ROOM_FOR_IMPROVEMENT = "room-for-improvement"


class Difficulty(StrEnum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Phase(StrEnum):
    ONBOARDING = "onboarding"
    ASSESSMENT = "assessment"
