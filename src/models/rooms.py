# ABOUTME: Pydantic models for board locations, room action rules, and action completion records.
# ABOUTME: RoomActionRule is a discriminated union over deterministic/probabilistic/special/none kinds.

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from src.models.cards import CardDrawResult


class DeterministicRule(BaseModel):
    """Always draw from one deck"""
    kind: Literal["deterministic"] = "deterministic"
    deck_id: str


class ProbabilisticRule(BaseModel):
    """Draw from a uniformly chosen deck"""
    kind: Literal["probabilistic"] = "probabilistic"
    deck_ids: list[str] = Field(min_length=1)


class SpecialWithFallbackRule(BaseModel):
    """Run a special action when possible, otherwise draw the fallback deck"""
    kind: Literal["special_with_fallback"] = "special_with_fallback"
    special_id: str
    deck_id: str


class NoActionRule(BaseModel):
    kind: Literal["none"] = "none"


RoomActionRule = Annotated[
    DeterministicRule | ProbabilisticRule | SpecialWithFallbackRule | NoActionRule,
    Field(discriminator="kind"),
]


class Location(BaseModel):
    """One board area; locations sharing a zone are within attack range"""

    id: str
    name: str
    zone: int = Field(ge=0)
    roll_values: list[int] = Field(default_factory=list)
    rule: RoomActionRule = Field(default_factory=NoActionRule)


class Board(BaseModel):
    """Ordered set of locations"""

    locations: list[Location]

    def get(self, location_id: str | None) -> Location | None:
        if location_id is None:
            return None
        for location in self.locations:
            if location.id == location_id:
                return location
        return None

    def for_roll(self, total: int) -> Location | None:
        for location in self.locations:
            if total in location.roll_values:
                return location
        return None

    def distance(self, a: str | None, b: str | None) -> int | None:
        """0 = same location, 1 = same zone, None = out of range"""
        loc_a, loc_b = self.get(a), self.get(b)
        if loc_a is None or loc_b is None:
            return None
        if loc_a.id == loc_b.id:
            return 0
        if loc_a.zone == loc_b.zone:
            return 1
        return None


class ActionCompletion(BaseModel):
    """Terminal record of the mandatory room action of a turn"""

    location_id: str | None
    outcome: Literal["draw", "special", "no_action"]
    deck_id: str | None = None
    special_id: str | None = None
    draw: CardDrawResult | None = None
    detail: str | None = None
    reason: str | None = Field(
        default=None,
        description="Why no legal action was available (no_action only)"
    )
