# flowzone/models.py

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Optional
import re
import uuid

from pydantic import AfterValidator, BaseModel, Field, PlainSerializer, field_validator, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def normalise_datetime(value: datetime) -> datetime:
    """Naive values are taken as UTC; sub-second precision is dropped."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0)


def to_iso(value: datetime) -> str:
    # One fixed-width format so stored timestamps sort and compare as strings
    return normalise_datetime(value).strftime("%Y-%m-%dT%H:%M:%SZ")


UtcDatetime = Annotated[
    datetime,
    AfterValidator(normalise_datetime),
    PlainSerializer(to_iso, return_type=str, when_used="json"),
]


def new_id() -> str:
    return str(uuid.uuid4())


def _not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


NonBlankStr = Annotated[str, AfterValidator(_not_blank)]


# -----------------------
# User Model
# -----------------------
class User(BaseModel):
    userId: str = Field(default_factory=new_id)
    email: str
    displayName: str = ""
    password: str = ""  # bcrypt hash; empty for Google-only accounts
    googleId: Optional[str] = None
    createdAt: UtcDatetime = Field(default_factory=utcnow)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not re.fullmatch(r"[^@\s]+@[^@\s]+\.[^@\s]+", v):
            raise ValueError("invalid email address")
        return v


# -----------------------
# Task Models
# -----------------------
class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class Task(BaseModel):
    id: str = Field(default_factory=new_id)
    userId: str
    title: NonBlankStr
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.pending
    priority: TaskPriority = TaskPriority.medium
    dueDate: Optional[UtcDatetime] = None
    estimatedTime: Optional[int] = Field(default=None, ge=0)  # minutes
    actualTime: int = Field(default=0, ge=0)  # minutes
    tags: List[str] = []
    createdAt: UtcDatetime = Field(default_factory=utcnow)
    updatedAt: UtcDatetime = Field(default_factory=utcnow)


class SubTask(BaseModel):
    id: str = Field(default_factory=new_id)
    taskId: str
    userId: str
    title: NonBlankStr
    completed: bool = False
    createdAt: UtcDatetime = Field(default_factory=utcnow)


# -----------------------
# Calendar Event Model
# -----------------------
class CalendarEvent(BaseModel):
    id: str = Field(default_factory=new_id)
    userId: str
    googleEventId: Optional[str] = None
    title: NonBlankStr
    description: str = ""
    startTime: UtcDatetime
    endTime: UtcDatetime
    location: Optional[str] = None
    isAllDay: bool = False
    recurrence: Optional[str] = None
    attendees: List[str] = []
    taskId: Optional[str] = None  # linked task, if any
    createdAt: UtcDatetime = Field(default_factory=utcnow)
    updatedAt: UtcDatetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def check_range(self):
        if self.isAllDay:
            self.startTime = self.startTime.replace(hour=0, minute=0, second=0)
            self.endTime = self.endTime.replace(hour=23, minute=59, second=59)
        if self.endTime < self.startTime:
            raise ValueError("End time cannot be before start time")
        return self


# -----------------------
# Chat Models
# -----------------------
class ChatSession(BaseModel):
    id: str = Field(default_factory=new_id)
    userId: str
    title: NonBlankStr = "New Conversation"
    lastMessageTimestamp: UtcDatetime = Field(default_factory=utcnow)
    createdAt: UtcDatetime = Field(default_factory=utcnow)


class ChatMessage(BaseModel):
    id: str = Field(default_factory=new_id)
    sessionId: str
    userId: str
    content: NonBlankStr
    isUser: bool = True
    timestamp: UtcDatetime = Field(default_factory=utcnow)


# -----------------------
# Notification Model
# -----------------------
class NotificationType(str, Enum):
    task = "task"
    event = "event"
    system = "system"


class Notification(BaseModel):
    id: str = Field(default_factory=new_id)
    userId: str
    title: NonBlankStr
    message: str
    type: NotificationType = NotificationType.system
    read: bool = False
    relatedItemId: Optional[str] = None
    createdAt: UtcDatetime = Field(default_factory=utcnow)


# -----------------------
# User Preference Model
# -----------------------
class Theme(str, Enum):
    light = "light"
    dark = "dark"


def _check_clock(value: str) -> str:
    if not re.fullmatch(r"([01]\d|2[0-3]):[0-5]\d", value):
        raise ValueError("time must be HH:MM (24h)")
    return value


ClockTime = Annotated[str, AfterValidator(_check_clock)]


class WorkHours(BaseModel):
    start: ClockTime = "09:00"
    end: ClockTime = "17:00"


class NotificationSettings(BaseModel):
    email: bool = True
    browser: bool = True
    taskReminders: bool = True
    eventReminders: bool = True


class UserPreference(BaseModel):
    userId: str
    theme: Theme = Theme.light
    workHours: WorkHours = Field(default_factory=WorkHours)
    workDays: List[int] = [1, 2, 3, 4, 5]  # 0 is Sunday
    focusTime: int = Field(default=25, gt=0)  # minutes
    breakTime: int = Field(default=5, gt=0)  # minutes
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    createdAt: UtcDatetime = Field(default_factory=utcnow)
    updatedAt: UtcDatetime = Field(default_factory=utcnow)

    @field_validator("workDays")
    @classmethod
    def check_work_days(cls, v: List[int]) -> List[int]:
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("work days must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))
