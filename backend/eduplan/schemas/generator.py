from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from eduplan.schemas.timetable import (
    DAY_VALUES,
    Allocation,
    Division,
    TeacherAvailability,
    TimeSlot,
    TimetableEntry,
)

GenerationScope = Literal["global", "major", "group", "division"]
GenerationJobStatus = Literal["pending", "processing", "completed", "error"]


class GenerationSettingsBase(BaseModel):
    daily_cap: int = Field(default=7, ge=1, le=24)
    time_budget_seconds: float = Field(default=480.0, ge=0.0, le=3600.0)
    max_iterations: int = Field(default=1000, ge=1, le=100_000)
    max_iterations_large: int = Field(default=100, ge=1, le=100_000)
    large_input_threshold: int = Field(default=500, ge=1, le=1_000_000)
    random_seed: int | None = Field(default=None, ge=0, le=2_000_000_000)

    def iteration_cap(self, total_lessons: int) -> int:
        if total_lessons > self.large_input_threshold:
            return min(self.max_iterations_large, self.max_iterations)
        return self.max_iterations


class GenerationFailure(BaseModel):
    reason: str


class GenerationResult(BaseModel):
    schedule: list[TimetableEntry] = Field(default_factory=list)
    failures: list[GenerationFailure] = Field(default_factory=list)
    placed_count: int = 0
    total_lessons: int = 0
    iterations: int = 0
    runtime_ms: int = 0


class GenerateTimetableRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    allocations: list[Allocation] = Field(default_factory=list)
    time_slots: list[TimeSlot] = Field(default_factory=list, alias="timeSlots")
    existing_entries: list[TimetableEntry] = Field(default_factory=list, alias="existingEntries")
    working_days: list[str] | None = Field(default=None, alias="workingDays")
    scope: GenerationScope = "global"
    scope_id: str | None = Field(default=None, alias="scopeId")
    divisions: list[Division] | None = None
    teachers: list[TeacherAvailability] = Field(default_factory=list)
    school_id: str | None = Field(default=None, alias="schoolId")
    strict_scope: bool | None = Field(default=None, alias="strictScope")
    settings_override: GenerationSettingsBase | None = Field(default=None, alias="settingsOverride")

    @field_validator("working_days")
    @classmethod
    def validate_working_days(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        days = [day.strip() for day in value if day and day.strip()]
        invalid = sorted({day for day in days if day not in DAY_VALUES})
        if invalid:
            raise ValueError(f"Invalid working day value(s): {', '.join(invalid)}")
        return days

    @model_validator(mode="after")
    def validate_unique_slot_ids(self) -> "GenerateTimetableRequest":
        seen: set[tuple[str | None, str]] = set()
        duplicates: set[str] = set()
        for slot in self.time_slots:
            key = (slot.division_id, slot.id)
            if key in seen:
                duplicates.add(slot.id)
            seen.add(key)
        if duplicates:
            raise ValueError(f"Duplicate time slot ids: {', '.join(sorted(duplicates))}")
        return self


class GenerateTimetableResponse(GenerationResult):
    scope: GenerationScope = "global"
    scope_id: str | None = None
    allocation_count: int = 0
    warnings: list[str] = Field(default_factory=list)
    settings_used: GenerationSettingsBase = Field(default_factory=GenerationSettingsBase)


class EntryValidation(BaseModel):
    valid: bool
    error: str | None = None


class ScheduleConflict(BaseModel):
    entry: TimetableEntry
    other: TimetableEntry | None = None
    error: str


class ScheduleValidation(BaseModel):
    valid: bool
    conflicts: list[ScheduleConflict] = Field(default_factory=list)


class ValidateScheduleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    time_slots: list[TimeSlot] = Field(default_factory=list, alias="timeSlots")
    existing_entries: list[TimetableEntry] = Field(default_factory=list, alias="existingEntries")
    entries: list[TimetableEntry] = Field(default_factory=list)
    teachers: list[TeacherAvailability] = Field(default_factory=list)
    daily_cap: int | None = Field(default=None, ge=1, le=24, alias="dailyCap")
    editing_entry_id: str | None = Field(default=None, alias="editingEntryId")


class GenerationProgress(BaseModel):
    current: int = 0
    total: int = 0


class GenerationJobOut(BaseModel):
    id: str
    status: GenerationJobStatus
    progress: GenerationProgress = Field(default_factory=GenerationProgress)
    result: list[TimetableEntry] | None = None
    failures: list[GenerationFailure] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None
    created_at: datetime
    updated_at: datetime
