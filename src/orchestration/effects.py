# ABOUTME: Applies card hit-point effects (heal/damage) to self, the nearest target, or all others.
# ABOUTME: Writes new hit points through the agent directory and mirrors them on the hit-point board.

from src.interface.presentation import PresentationChannel
from src.models.cards import CardEffect, EffectKind
from src.orchestration.agent_directory import AgentDirectory
from src.orchestration.target_selector import AttackTargetSelector


class EffectApplier:
    def __init__(
        self,
        directory: AgentDirectory,
        selector: AttackTargetSelector,
        presentation: PresentationChannel,
    ):
        self.directory = directory
        self.selector = selector
        self.presentation = presentation

    def targets_for(self, effect: CardEffect, actor_id: str) -> list[str]:
        if effect.target == "self":
            return [actor_id]
        if effect.target == "nearest":
            target = self.selector.select_target(actor_id)
            return [target] if target else []
        return [
            agent.id for agent in self.directory.all()
            if agent.id != actor_id and agent.is_alive
        ]

    def apply(self, effect: CardEffect, actor_id: str) -> list[str]:
        """
        Apply an effect on behalf of actor_id.

        Returns:
            Human-readable descriptions of what changed (empty for no-op effects)
        """
        if effect.kind == EffectKind.NONE or effect.amount == 0:
            return []

        targets = self.targets_for(effect, actor_id)
        if not targets:
            return [f"{effect.kind.value} {effect.amount}: no target"]

        delta = effect.amount if effect.kind == EffectKind.HEAL else -effect.amount
        applied = []
        for target_id in targets:
            hp = self.directory.change_hp(target_id, delta)
            self.presentation.update_board("hp", {"agent_id": target_id, "hp": hp})
            applied.append(f"{effect.kind.value} {effect.amount} -> {target_id} (hp={hp})")
        return applied
