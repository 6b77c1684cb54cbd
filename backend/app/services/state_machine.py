from typing import Dict, FrozenSet
from app.core.exceptions import InvalidTransition
from app.models.account import AccountStatus

ALLOWED_TRANSITIONS: Dict[AccountStatus, FrozenSet[AccountStatus]] = {
    # ACTIVE -> DEACTIVATED happens only through the inactivity sweep
    AccountStatus.ACTIVE: frozenset({AccountStatus.DEACTIVATED, AccountStatus.DELETED}),
    AccountStatus.DEACTIVATED: frozenset({AccountStatus.ACTIVE}),
    AccountStatus.DELETED: frozenset(),
}


def can_transition(current: AccountStatus, target: AccountStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: AccountStatus, target: AccountStatus) -> None:
    if not isinstance(current, AccountStatus) or not isinstance(target, AccountStatus):
        raise InvalidTransition(f"Unknown account status: {current!r} -> {target!r}")

    if not can_transition(current, target):
        raise InvalidTransition(
            f"Invalid transition: {current.value} -> {target.value}"
        )
