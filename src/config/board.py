# ABOUTME: Default board layout (areas, zones, roll values, room action rules) and card catalog.
# ABOUTME: Rules map each area to its mandatory action; decks list card ids by catalog entry.

from src.models.agents import Faction
from src.models.cards import Card, CardEffect, EffectKind, GreenQuery
from src.models.rooms import (
    Board,
    DeterministicRule,
    Location,
    ProbabilisticRule,
    SpecialWithFallbackRule,
)

# Deck whose cards open a green negotiation
NEGOTIATION_DECK = "green"

# Movement roll that lets the mover pick any other area
FREE_MOVE_ROLL = 7


def default_board() -> Board:
    """Six areas in three zones; areas sharing a zone are within attack range"""
    return Board(locations=[
        Location(
            id="hermit_cabin", name="Hermit's Cabin", zone=0, roll_values=[2, 3],
            rule=DeterministicRule(deck_id="green"),
        ),
        Location(
            id="underworld_gate", name="Underworld Gate", zone=0, roll_values=[4, 5],
            rule=ProbabilisticRule(deck_ids=["white", "black", "green"]),
        ),
        Location(
            id="church", name="Church", zone=1, roll_values=[6],
            rule=DeterministicRule(deck_id="white"),
        ),
        Location(
            id="cemetery", name="Cemetery", zone=1, roll_values=[8],
            rule=DeterministicRule(deck_id="black"),
        ),
        Location(
            id="weird_woods", name="Weird Woods", zone=2, roll_values=[9],
            rule=SpecialWithFallbackRule(special_id="weird_woods", deck_id="black"),
        ),
        Location(
            id="erstwhile_altar", name="Erstwhile Altar", zone=2, roll_values=[10],
            rule=SpecialWithFallbackRule(special_id="erstwhile_altar", deck_id="white"),
        ),
    ])


CARD_CATALOG: dict[str, Card] = {card.card_id: card for card in [
    # White deck: healing and protective equipment
    Card(card_id="holy_water", deck_id="white", name="Holy Water of Healing",
         effect=CardEffect(kind=EffectKind.HEAL, amount=2, target="self")),
    Card(card_id="first_aid", deck_id="white", name="First Aid",
         effect=CardEffect(kind=EffectKind.HEAL, amount=1, target="self")),
    Card(card_id="flare_of_judgement", deck_id="white", name="Flare of Judgement",
         effect=CardEffect(kind=EffectKind.DAMAGE, amount=2, target="others")),
    Card(card_id="talisman", deck_id="white", name="Talisman", equipment="talisman"),
    Card(card_id="fortune_brooch", deck_id="white", name="Fortune Brooch",
         equipment="fortune_brooch"),
    # Black deck: damage and weapons
    Card(card_id="bloodthirsty_spider", deck_id="black", name="Bloodthirsty Spider",
         effect=CardEffect(kind=EffectKind.DAMAGE, amount=2, target="nearest")),
    Card(card_id="dynamite", deck_id="black", name="Dynamite",
         effect=CardEffect(kind=EffectKind.DAMAGE, amount=3, target="nearest")),
    Card(card_id="vampire_bat", deck_id="black", name="Vampire Bat",
         effect=CardEffect(kind=EffectKind.DAMAGE, amount=1, target="nearest")),
    Card(card_id="chainsaw", deck_id="black", name="Chainsaw", equipment="chainsaw"),
    Card(card_id="butcher_knife", deck_id="black", name="Butcher Knife",
         equipment="butcher_knife"),
    # Green deck: negotiation cards
    Card(card_id="hunter_query", deck_id="green", name="Hunter Query",
         green_query=GreenQuery(
             target_faction=Faction.HUNTER,
             on_affirm=CardEffect(kind=EffectKind.DAMAGE, amount=1, target="self"),
         )),
    Card(card_id="shadow_query", deck_id="green", name="Shadow Query",
         green_query=GreenQuery(
             target_faction=Faction.SHADOW,
             on_affirm=CardEffect(kind=EffectKind.DAMAGE, amount=1, target="self"),
         )),
    Card(card_id="shadow_query_heavy", deck_id="green", name="Shadow Interrogation",
         green_query=GreenQuery(
             target_faction=Faction.SHADOW,
             on_affirm=CardEffect(kind=EffectKind.DAMAGE, amount=2, target="self"),
         )),
    Card(card_id="neutral_query", deck_id="green", name="Neutral Query",
         green_query=GreenQuery(
             target_faction=Faction.NEUTRAL,
             on_affirm=CardEffect(kind=EffectKind.HEAL, amount=1, target="self"),
         )),
]}


def default_decks() -> dict[str, list[str]]:
    """Initial deck contents (card ids) per deck id"""
    decks: dict[str, list[str]] = {}
    for card in CARD_CATALOG.values():
        decks.setdefault(card.deck_id, []).append(card.card_id)
    return decks
