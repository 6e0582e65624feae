# ABOUTME: Pydantic models for movement and attack dice results (d6 + d4 system).
# ABOUTME: Movement sums both dice to pick an area; attacks deal the difference between them.

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator


class _TwoDiceRoll(BaseModel):
    d6: int = Field(ge=1, le=6)
    d4: int = Field(ge=1, le=4)
    timestamp: datetime

    @field_validator('timestamp')
    @classmethod
    def validate_timezone_aware(cls, v: datetime) -> datetime:
        """Ensure timestamp is timezone-aware"""
        if v.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")
        return v


class MovementRoll(_TwoDiceRoll):
    """Movement roll: the d6 + d4 total selects the destination area (2-10)"""

    total: int = Field(ge=2, le=10)

    @model_validator(mode='after')
    def validate_total(self):
        if self.total != self.d6 + self.d4:
            raise ValueError(
                f"total ({self.total}) must equal d6 + d4 ({self.d6 + self.d4})"
            )
        return self


class AttackRoll(_TwoDiceRoll):
    """Attack roll: damage is |d6 - d4| (0 means a miss)"""

    damage: int = Field(ge=0, le=5)

    @model_validator(mode='after')
    def validate_damage(self):
        if self.damage != abs(self.d6 - self.d4):
            raise ValueError(
                f"damage ({self.damage}) must equal |d6 - d4| ({abs(self.d6 - self.d4)})"
            )
        return self

    @property
    def is_miss(self) -> bool:
        return self.damage == 0
