# ABOUTME: Agent directory merging the seat-assignment roster with live store values.
# ABOUTME: Reads/writes per-agent position, hit points, and equipment under agents/{id}/ paths.

from loguru import logger

from src.models.agents import Agent, Faction, RosterEntry
from src.orchestration.exceptions import AgentNotFound
from src.store.shared_state import SharedStateStore


class AgentDirectory:
    """
    Read side for agents plus the few host-only writes the turn protocol makes.

    Roster data (name, color, faction, autonomy) is immutable; position, hp and
    equipment are read from the store every time so observers and the
    orchestrator agree on one source of truth.
    """

    def __init__(self, store: SharedStateStore, roster: list[RosterEntry]):
        self.store = store
        self._roster = {entry.id: entry for entry in roster}

    def ids(self) -> list[str]:
        return sorted(self._roster)

    def entry(self, agent_id: str) -> RosterEntry:
        try:
            return self._roster[agent_id]
        except KeyError:
            raise AgentNotFound(
                f"Agent {agent_id} not in roster. Available agents: {self.ids()}"
            ) from None

    def faction_of(self, agent_id: str) -> Faction:
        return self.entry(agent_id).faction

    def get(self, agent_id: str) -> Agent:
        entry = self.entry(agent_id)
        hp = self.store.read(f"agents/{agent_id}/hp")
        return Agent(
            id=entry.id,
            name=entry.name,
            color=entry.color,
            faction=entry.faction,
            position=self.store.read(f"agents/{agent_id}/position"),
            hp=entry.max_hp if hp is None else hp,
            max_hp=entry.max_hp,
            is_autonomous=entry.is_autonomous,
            equipment=self.store.read(f"agents/{agent_id}/equipment") or [],
        )

    def all(self) -> list[Agent]:
        return [self.get(agent_id) for agent_id in self.ids()]

    def initialize(self) -> None:
        """Seed hit points and equipment for agents the store does not know yet"""
        for agent_id, entry in self._roster.items():
            if self.store.read(f"agents/{agent_id}/hp") is None:
                self.store.write(f"agents/{agent_id}/hp", entry.max_hp)
                self.store.write(f"agents/{agent_id}/equipment", [])
        logger.info(f"Initialized {len(self._roster)} agents in room {self.store.room_id}")

    # Host-only writes

    def set_position(self, agent_id: str, location_id: str) -> None:
        self.entry(agent_id)
        self.store.write(f"agents/{agent_id}/position", location_id)

    def change_hp(self, agent_id: str, delta: int) -> int:
        """Apply a hit-point delta clamped to [0, max_hp]; returns the new value"""
        agent = self.get(agent_id)
        new_hp = max(0, min(agent.max_hp, agent.hp + delta))
        self.store.write(f"agents/{agent_id}/hp", new_hp)
        return new_hp

    def add_equipment(self, agent_id: str, item: str) -> None:
        equipment = self.get(agent_id).equipment
        self.store.write(f"agents/{agent_id}/equipment", [*equipment, item])

    def remove_equipment(self, agent_id: str, item: str) -> bool:
        equipment = self.get(agent_id).equipment
        if item not in equipment:
            return False
        equipment.remove(item)
        self.store.write(f"agents/{agent_id}/equipment", equipment)
        return True
