# ABOUTME: Pydantic models for seated agents (autonomous or human) and their factions.
# ABOUTME: Roster entries come from seat assignment; live position/hp/equipment come from the store.

from enum import Enum

from pydantic import BaseModel, Field


class Faction(str, Enum):
    """Allegiance of a seated agent"""
    HUNTER = "hunter"
    SHADOW = "shadow"
    NEUTRAL = "neutral"


class RosterEntry(BaseModel):
    """One seat produced by the external seat assignment step"""

    id: str = Field(description="Stable agent identifier")
    name: str
    color: str
    faction: Faction
    seat: int = Field(ge=0)
    is_autonomous: bool = Field(
        default=True,
        description="True for orchestrator-driven agents, False for humans"
    )
    max_hp: int = Field(default=12, gt=0)


class Agent(BaseModel):
    """Unified actor record: roster data merged with live store values"""

    id: str
    name: str
    color: str
    faction: Faction
    position: str | None = Field(
        default=None,
        description="Current location id (None before the first move)"
    )
    hp: int = Field(ge=0)
    max_hp: int = Field(gt=0)
    is_autonomous: bool
    equipment: list[str] = Field(default_factory=list)

    @property
    def is_alive(self) -> bool:
        return self.hp > 0

    def is_ally_of(self, other: "Agent") -> bool:
        """Same faction allies, except neutrals who have no allies"""
        return self.faction == other.faction and self.faction != Faction.NEUTRAL
