# ABOUTME: Faction heuristic deciding how an autonomous receiver answers a green negotiation card.
# ABOUTME: Deterministic table over (faction, relation) with a seeded random fallback for undecided factions.

import random
from typing import Literal

from src.models.agents import Faction
from src.models.cards import NegotiationAnswer

Relation = Literal["same", "opposing"]

# Factions missing from the table (or with a missing relation) have no
# decisive entry and fall back to a uniform random answer.
FACTION_TABLE: dict[Faction, dict[Relation, NegotiationAnswer]] = {
    Faction.HUNTER: {"same": NegotiationAnswer.AFFIRM, "opposing": NegotiationAnswer.DENY},
    Faction.SHADOW: {"same": NegotiationAnswer.AFFIRM, "opposing": NegotiationAnswer.DENY},
}


def relation_to(receiver_faction: Faction, target_faction: Faction) -> Relation:
    return "same" if receiver_faction == target_faction else "opposing"


def is_decisive(faction: Faction, relation: Relation) -> bool:
    return relation in FACTION_TABLE.get(faction, {})


def decide(faction: Faction, relation: Relation, rng: random.Random) -> NegotiationAnswer:
    """
    Answer a green card as an autonomous receiver.

    Args:
        faction: Receiver's faction
        relation: Whether the card targets the receiver's own faction
        rng: Random source used only when the table has no decisive entry

    Returns:
        AFFIRM or DENY
    """
    entry = FACTION_TABLE.get(faction, {})
    if relation in entry:
        return entry[relation]
    return rng.choice([NegotiationAnswer.AFFIRM, NegotiationAnswer.DENY])
