# ABOUTME: Deterministic attack target selection: nearest in-range, eligible agent.
# ABOUTME: Ties between equally near candidates go to the lowest agent id.

from src.models.agents import Agent
from src.models.rooms import Board
from src.orchestration.agent_directory import AgentDirectory


class AttackTargetSelector:
    """
    Candidates must be alive, not the attacker, not an ally, and in the same
    zone as the attacker. Distance is 0 in the same area and 1 elsewhere in the
    zone. Ordering key is (distance, agent id).
    """

    def __init__(self, directory: AgentDirectory, board: Board):
        self.directory = directory
        self.board = board

    def candidates(self, agent_id: str) -> list[tuple[int, Agent]]:
        attacker = self.directory.get(agent_id)
        if attacker.position is None:
            return []

        ranked = []
        for other in self.directory.all():
            if other.id == attacker.id or not other.is_alive or attacker.is_ally_of(other):
                continue
            distance = self.board.distance(attacker.position, other.position)
            if distance is None:
                continue
            ranked.append((distance, other))

        ranked.sort(key=lambda pair: (pair[0], pair[1].id))
        return ranked

    def select_target(self, agent_id: str) -> str | None:
        ranked = self.candidates(agent_id)
        return ranked[0][1].id if ranked else None

    def can_reach(self, agent_id: str, target_id: str) -> bool:
        """Whether target_id is still a valid target for agent_id"""
        return any(other.id == target_id for _, other in self.candidates(agent_id))
