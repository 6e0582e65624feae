# ABOUTME: Pydantic models for cards, draw results, and green negotiation requests.
# ABOUTME: GreenRequest enforces the pending -> answered -> closed lifecycle.

from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from src.models.agents import Faction


class EffectKind(str, Enum):
    HEAL = "heal"
    DAMAGE = "damage"
    NONE = "none"


class CardEffect(BaseModel):
    """Hit-point effect applied when a card resolves"""

    kind: EffectKind = EffectKind.NONE
    amount: int = Field(default=0, ge=0)
    target: Literal["self", "nearest", "others"] = "self"


class GreenQuery(BaseModel):
    """Question carried by a negotiation card: 'are you <faction>?'"""

    target_faction: Faction
    on_affirm: CardEffect


class Card(BaseModel):
    """Card definition from the card catalog"""

    card_id: str
    deck_id: str
    name: str
    effect: CardEffect = Field(default_factory=CardEffect)
    equipment: str | None = Field(
        default=None,
        description="Equipment granted to the drawer, if any"
    )
    green_query: GreenQuery | None = None


class CardDrawResult(BaseModel):
    """Outcome of one card flow run"""

    deck_id: str
    card_id: str
    applied_effects: list[str] = Field(default_factory=list)
    granted_equipment: str | None = None
    negotiation_request_id: str | None = None


class RequestStatus(str, Enum):
    PENDING = "pending"
    ANSWERED = "answered"
    CLOSED = "closed"


class NegotiationAnswer(str, Enum):
    AFFIRM = "affirm"
    DENY = "deny"


class RequestTimestamps(BaseModel):
    created: datetime
    answered: datetime | None = None
    closed: datetime | None = None


class InvalidRequestTransition(Exception):
    """Raised when a green request would move backwards or skip a state"""

    pass


class GreenRequest(BaseModel):
    """Negotiation request between a sender and a receiver"""

    request_id: str
    sender_id: str
    receiver_id: str
    card_id: str
    status: RequestStatus = RequestStatus.PENDING
    answer: NegotiationAnswer | None = None
    timestamps: RequestTimestamps = Field(
        default_factory=lambda: RequestTimestamps(created=datetime.now(UTC))
    )

    def mark_answered(self, answer: NegotiationAnswer) -> None:
        if self.status != RequestStatus.PENDING:
            raise InvalidRequestTransition(
                f"Request {self.request_id} cannot be answered from {self.status.value}"
            )
        self.answer = answer
        self.status = RequestStatus.ANSWERED
        self.timestamps.answered = datetime.now(UTC)

    def mark_closed(self) -> None:
        if self.status != RequestStatus.ANSWERED:
            raise InvalidRequestTransition(
                f"Request {self.request_id} cannot be closed from {self.status.value}"
            )
        self.status = RequestStatus.CLOSED
        self.timestamps.closed = datetime.now(UTC)
