"""Personas: named context buckets for posts."""
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from ..dates import LocalDatetime

MAX_NAME_LENGTH = 30


class PersonaColor(str, Enum):
    BLUE = "blue"
    PURPLE = "purple"
    PINK = "pink"
    RED = "red"
    ORANGE = "orange"
    YELLOW = "yellow"
    GREEN = "green"
    TEAL = "teal"
    INDIGO = "indigo"
    GRAY = "gray"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def hex_value(self) -> str:
        return _COLOR_HEX[self]


_COLOR_HEX = {
    PersonaColor.BLUE: "007AFF",
    PersonaColor.PURPLE: "5856D6",
    PersonaColor.PINK: "FF2D55",
    PersonaColor.RED: "FF3B30",
    PersonaColor.ORANGE: "FF9500",
    PersonaColor.YELLOW: "FFCC00",
    PersonaColor.GREEN: "34C759",
    PersonaColor.TEAL: "5AC8FA",
    PersonaColor.INDIGO: "5856D6",
    PersonaColor.GRAY: "8E8E93",
}


class PersonaIcon(str, Enum):
    PERSON = "person.fill"
    PERSON_CIRCLE = "person.circle.fill"
    PERSON_BUBBLE = "person.bubble.fill"
    BRIEFCASE = "briefcase.fill"
    LAPTOP = "laptopcomputer"
    DESKTOP = "desktopcomputer"
    HEART = "heart.fill"
    FIGURE_WALK = "figure.walk"
    FIGURE_RUN = "figure.run"
    DUMBBELL = "dumbbell.fill"
    PAINT_PALETTE = "paintpalette.fill"
    MUSIC = "music.note"
    BOOK = "book.fill"
    CAMERA = "camera.fill"
    HOUSE = "house.fill"
    HEART_TEXT = "heart.text.square.fill"
    LEAF = "leaf.fill"
    GLOBE = "globe.americas.fill"
    AIRPLANE = "airplane"
    MOUNTAIN = "mountain.2.fill"
    FORK = "fork.knife"
    CUP = "cup.and.saucer.fill"
    BRAIN = "brain.head.profile"
    SPARKLES = "sparkles"
    MOON = "moon.stars.fill"
    GAME_CONTROLLER = "gamecontroller.fill"
    PARTY = "party.popper.fill"
    STAR = "star.fill"

    @property
    def display_name(self) -> str:
        return self.value.replace(".", " ").replace("fill", "").strip().title()


class PersonaPreset(str, Enum):
    PERSONAL = "personal"
    WORK = "work"
    FITNESS = "fitness"
    CREATIVE = "creative"
    FAMILY = "family"
    TRAVEL = "travel"

    @property
    def persona_name(self) -> str:
        return self.value.capitalize()

    @property
    def color(self) -> PersonaColor:
        return _PRESETS[self][0]

    @property
    def icon(self) -> PersonaIcon:
        return _PRESETS[self][1]

    @property
    def description(self) -> str:
        return _PRESETS[self][2]


_PRESETS = {
    PersonaPreset.PERSONAL: (PersonaColor.BLUE, PersonaIcon.PERSON_CIRCLE, "Your everyday life and thoughts"),
    PersonaPreset.WORK: (PersonaColor.GRAY, PersonaIcon.BRIEFCASE, "Career, projects, and professional growth"),
    PersonaPreset.FITNESS: (PersonaColor.GREEN, PersonaIcon.DUMBBELL, "Workouts, health, and wellness journey"),
    PersonaPreset.CREATIVE: (PersonaColor.PURPLE, PersonaIcon.PAINT_PALETTE, "Art, music, writing, and creative projects"),
    PersonaPreset.FAMILY: (PersonaColor.PINK, PersonaIcon.HEART_TEXT, "Family moments and relationships"),
    PersonaPreset.TRAVEL: (PersonaColor.TEAL, PersonaIcon.AIRPLANE, "Adventures, trips, and exploration"),
}


class Persona(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str = Field(max_length=MAX_NAME_LENGTH)
    color: PersonaColor = PersonaColor.BLUE
    icon: PersonaIcon = PersonaIcon.PERSON
    description: Optional[str] = None
    created_at: LocalDatetime = Field(default_factory=datetime.now)
    is_default: bool = False
    user_id: UUID

    class Config:
        validate_assignment = True

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Persona name cannot be empty")
        return value.strip()

    @classmethod
    def from_preset(cls, preset: PersonaPreset, user_id: UUID, is_default: bool = False) -> "Persona":
        return cls(
            name=preset.persona_name,
            color=preset.color,
            icon=preset.icon,
            description=preset.description,
            is_default=is_default,
            user_id=user_id,
        )

    @property
    def symbol_name(self) -> str:
        return self.icon.value

