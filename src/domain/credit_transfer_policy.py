"""Credit Transfer Policy

Single source of truth for who may move credits to whom.
Debits and refunds on one's own balance are not transfers and never
consult this policy.
"""

from typing import Dict, FrozenSet, Union
from src.domain.owner import OwnerRole

TRANSFER_MATRIX: Dict[OwnerRole, FrozenSet[OwnerRole]] = {
    OwnerRole.SUPER_ADMIN: frozenset({OwnerRole.ADMIN, OwnerRole.RESELLER, OwnerRole.USER}),
    OwnerRole.ADMIN: frozenset({OwnerRole.RESELLER, OwnerRole.USER}),
    OwnerRole.RESELLER: frozenset({OwnerRole.USER}),
    OwnerRole.USER: frozenset(),
}


def _as_role(role: Union[OwnerRole, str]) -> Union[OwnerRole, None]:
    try:
        return OwnerRole(role)
    except ValueError:
        return None


def can_transfer(from_role: Union[OwnerRole, str], to_role: Union[OwnerRole, str]) -> bool:
    """True when an owner with `from_role` may transfer credits to `to_role`"""
    source = _as_role(from_role)
    target = _as_role(to_role)
    if source is None or target is None:
        return False
    return target in TRANSFER_MATRIX[source]
