import enum
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class ChallengeType(str, enum.Enum):
    WEIGHT_LOSS_PERCENTAGE = "WEIGHT_LOSS_PERCENTAGE"
    TOTAL_WEIGHT_LOSS = "TOTAL_WEIGHT_LOSS"
    CONSISTENCY = "CONSISTENCY"
    ACTIVITY_BASED = "ACTIVITY_BASED"


class ChallengeStatus(str, enum.Enum):
    UPCOMING = "UPCOMING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = (ChallengeStatus.COMPLETED, ChallengeStatus.CANCELLED)
JOINABLE_STATUSES = (ChallengeStatus.UPCOMING, ChallengeStatus.ACTIVE)


class ChallengeBase(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=1000)
    type: ChallengeType
    start_date: datetime
    end_date: datetime
    target_value: Optional[float] = Field(default=None, ge=0)
    reward_points: int = Field(default=0, ge=0)

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("start_date", "end_date")
    @classmethod
    def naive_utc(cls, value):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    @field_validator("target_value", mode="before")
    @classmethod
    def blank_target(cls, value):
        if value == "":
            return None
        return value

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class ChallengeCreate(ChallengeBase):
    pass


