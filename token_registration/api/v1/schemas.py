from datetime import datetime

from pydantic import BaseModel, Field


class SelectionSchema(BaseModel):
    class_category: str
    activity_id: str
    activity_name: str


class SessionSchema(BaseModel):
    activity_id: str
    branch: str | None = None
    class_category: str
    activity_name: str
    total_slot: int
    booked_slot: int = 0
    available_slot: int


class ExistingRegistrationSchema(BaseModel):
    activity_name: str
    token: int


class MemberSchema(BaseModel):
    member_id: str
    branch: str
    name: str
    birthdate: str = ""
    parent_name: str = ""
    contact: str = ""
    registration_status: str | None = None
    existing_registrations: list[ExistingRegistrationSchema] = Field(default_factory=list)


class RegistrationStatusSchema(BaseModel):
    is_open: bool
    message: str
    last_checked: datetime | None = None


class CategoryCountSchema(BaseModel):
    category: str
    count: int
    max_reached: bool


class OutcomeSchema(BaseModel):
    kind: str
    idempotency_key: str
    tracking_id: str | None = None
    conflicts: list[str] = Field(default_factory=list)
    reason: str | None = None
    attempts: int = 1
    message: str


class SelectMemberRequestSchema(BaseModel):
    member: MemberSchema
    branch: str | None = None


class PickRequestSchema(BaseModel):
    activity_id: str


class LiveRequestSchema(BaseModel):
    enabled: bool


class SubmitRequestSchema(BaseModel):
    new_series: bool = False
    wait: bool = True


class FormViewSchema(BaseModel):
    form_id: str
    member: MemberSchema | None = None
    branch: str | None = None
    live: bool
    last_updated: datetime | None = None
    schedule_error: str | None = None
    slots: list[SelectionSchema | None]
    category_counts: list[CategoryCountSchema]
    progress_text: str
    can_add_more: bool
    is_valid: bool
    available_categories: list[str]
    sessions: list[SessionSchema]
    phase: str
    progress_message: str | None = None
    outcome: OutcomeSchema | None = None
    submit_blocker: str | None = None
    cleared_by_conflict: list[int] = Field(default_factory=list)


class SubmitResponseSchema(BaseModel):
    started: bool
    blocked_reason: str | None = None
    idempotency_key: str | None = None
    phase: str
    outcome: OutcomeSchema | None = None
