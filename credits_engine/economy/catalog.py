from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ActionType:
    code: str
    default_cost: int


ACTION_TYPES: dict[str, ActionType] = {
    action.code: action
    for action in (
        ActionType(code="coffee", default_cost=50),
        ActionType(code="tarot", default_cost=150),
        ActionType(code="palm", default_cost=150),
        ActionType(code="dream", default_cost=5),
        ActionType(code="love", default_cost=100),
        ActionType(code="card", default_cost=75),
        ActionType(code="color", default_cost=50),
    )
}


def get_action_type(code: str) -> ActionType | None:
    return ACTION_TYPES.get(code.strip().lower())
