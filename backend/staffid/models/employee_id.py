"""Models for employee-ID generation, directory records and sync results."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Serialized with camelCase keys to match the directory documents."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IdContext(_CamelModel):
    """Inputs for rendering one ID instance."""

    sequence: int = Field(default=1, ge=1)
    department: str | None = None
    employee_type: str | None = None
    location: str | None = None


class ConflictReport(_CamelModel):
    has_conflict: bool = True
    original_id: str
    resolved_id: str


class GenerationResult(_CamelModel):
    employee_id: str
    strategy: str
    conflict: ConflictReport | None = None


class SyncResult(_CamelModel):
    fixed: int = 0
    errors: list[str] = []


class DirectoryEntry(_CamelModel):
    """One employee record of an organization's directory."""

    id: str
    employee_id: str | None = None
    name: str | None = None
    email: str | None = None
    department: str | None = None
    employee_type: str | None = None
    location: str | None = None

    @property
    def stored_id(self) -> str:
        return self.employee_id or self.id

    def id_context(self) -> IdContext:
        return IdContext(
            department=self.department,
            employee_type=self.employee_type,
            location=self.location,
        )


class CreateEmployeeRequest(_CamelModel):
    name: str = Field(..., min_length=1)
    email: str | None = None
    department: str | None = None
    employee_type: str | None = None
    location: str | None = None


class CreateEmployeeResponse(_CamelModel):
    employee: DirectoryEntry
    generation: GenerationResult


class FormatRequest(_CamelModel):
    format: str


class ParseRequest(_CamelModel):
    format: str
    employee_id: str


class FormatValidation(_CamelModel):
    valid: bool
    errors: list[str] = []
    preview: str | None = None
    examples: list[str] = []


class OrganizationFormat(_CamelModel):
    format: str
    is_default: bool
    preview: str


class PlaceholderHelp(_CamelModel):
    placeholder: str
    description: str
    example: str


class IdStatus(_CamelModel):
    total_employees: int = 0
    mismatches: int = 0
    status: str = Field(default="healthy", pattern=r"^(healthy|has_mismatches|error)$")


class SyncState(_CamelModel):
    state: str = Field(default="idle", pattern=r"^(idle|syncing|completed|error)$")
    result: SyncResult | None = None
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


