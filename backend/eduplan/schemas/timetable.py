from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DAY_VALUES = {
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
}

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def unavailable_slot_key(day: str, slot_id: str) -> str:
    return f"{day}-{slot_id}"


class TimeSlot(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(min_length=1, max_length=64)
    day: str | None = None
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    name: str = ""
    type: Literal["class", "break"] = "class"
    division_id: str | None = Field(default=None, alias="divisionId")

    @field_validator("day")
    @classmethod
    def normalize_day(cls, value: str | None) -> str | None:
        if value is None:
            return None
        day = value.strip()
        if not day:
            return None
        if day not in DAY_VALUES:
            raise ValueError("Invalid day value")
        return day

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_time_order(self) -> "TimeSlot":
        if self.end_minutes <= self.start_minutes:
            raise ValueError("endTime must be after startTime")
        return self

    @property
    def start_minutes(self) -> int:
        return parse_time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return parse_time_to_minutes(self.end_time)

    @property
    def is_break(self) -> bool:
        return self.type == "break"


class Allocation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    teacher_id: str = Field(min_length=1, alias="teacherId")
    subject_id: str = Field(min_length=1, alias="subjectId")
    grade_id: str = Field(min_length=1, alias="gradeId")
    section_id: str = Field(min_length=1, alias="sectionId")
    periods_per_week: int = Field(gt=0, le=100, alias="periodsPerWeek")
    division_id: str | None = Field(default=None, alias="divisionId")
    major_name: str | None = Field(default=None, alias="majorName")
    group_name: str | None = Field(default=None, alias="groupName")
    school_id: str | None = Field(default=None, alias="schoolId")

    @property
    def class_key(self) -> tuple[str, str]:
        return (self.grade_id, self.section_id)


class TimetableEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str | None = None
    teacher_id: str = Field(min_length=1, alias="teacherId")
    subject_id: str = Field(alias="subjectId")
    grade: str
    section: str
    day: str = Field(min_length=1)
    time_slot_id: str = Field(min_length=1, alias="timeSlotId")
    division_id: str = Field(default="", alias="divisionId")
    school_id: str | None = Field(default=None, alias="schoolId")

    @field_validator("division_id", mode="before")
    @classmethod
    def default_division(cls, value: str | None) -> str:
        return value or ""


class TeacherConstraint(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    unavailable_slots: list[str] = Field(default_factory=list, alias="unavailableSlots")

    @field_validator("unavailable_slots")
    @classmethod
    def strip_keys(cls, value: list[str]) -> list[str]:
        return [item.strip() for item in value if item and item.strip()]

    def blocks(self, day: str, slot_id: str) -> bool:
        return unavailable_slot_key(day, slot_id) in self.unavailable_slots


class TeacherAvailability(TeacherConstraint):
    teacher_id: str = Field(min_length=1, alias="uid")
    name: str | None = None


class Division(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    name: str | None = None
    major_id: str | None = Field(default=None, alias="majorId")
    group_ids: list[str] = Field(default_factory=list, alias="groupIds")
