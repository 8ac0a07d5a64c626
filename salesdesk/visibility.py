"""
Visibility Resolver.

`resolve_scope` turns a principal plus the caller's (untrusted) scope request
into a typed Scope. Every read path filters through `Scope.apply`, so no
endpoint re-derives role logic. Reads clamp silently; writes go through
`ensure_can_write`, which fails closed.
"""
from dataclasses import dataclass
from typing import FrozenSet, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from salesdesk.auth import Principal
from salesdesk.errors import AuthorizationError, ValidationError
from salesdesk.models import Client, ClientStatus, Role, User

TEAM_SCOPE = "team"


class Scope:
    """Base for the closed family of read scopes."""

    def apply(self, query, model):
        raise NotImplementedError

    def includes_owner(self, owner_id: str) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class AllScope(Scope):
    """Every owner's records (managers)."""

    def apply(self, query, model):
        return query

    def includes_owner(self, owner_id: str) -> bool:
        return True


@dataclass(frozen=True)
class OwnerScope(Scope):
    """Records owned by one of `owner_ids`."""
    owner_ids: FrozenSet[str]

    def apply(self, query, model):
        return query.filter(model.marketing_id.in_(self.owner_ids))

    def includes_owner(self, owner_id: str) -> bool:
        return owner_id in self.owner_ids


@dataclass(frozen=True)
class AuditScope(Scope):
    """
    Auditors: not owner scoped. Client queries are restricted to
    audit-eligible rows; other record kinds are readable in full unless an
    explicit owner filter narrows them.
    """
    owner_ids: Optional[FrozenSet[str]] = None

    def apply(self, query, model):
        if model is Client:
            query = query.filter(audit_eligible_clause())
        if self.owner_ids is not None:
            query = query.filter(model.marketing_id.in_(self.owner_ids))
        return query

    def includes_owner(self, owner_id: str) -> bool:
        return self.owner_ids is None or owner_id in self.owner_ids


def audit_eligible_clause():
    return or_(Client.status == ClientStatus.DEAL, Client.dp_paid > 0)


def team_member_ids(db: Session, supervisor_id: str) -> FrozenSet[str]:
    """Resolved per request. Team membership is never cached."""
    rows = db.query(User.id).filter(User.supervisor_id == supervisor_id).all()
    return frozenset(r[0] for r in rows)


def resolve_scope(
    db: Session,
    principal: Principal,
    requested_scope: Optional[str] = None,
    owner_id: Optional[str] = None,
) -> Scope:
    role = principal.role

    if role == Role.MANAGER:
        return OwnerScope(frozenset([owner_id])) if owner_id else AllScope()

    if role == Role.AUDITOR:
        return AuditScope(frozenset([owner_id])) if owner_id else AuditScope()

    if role == Role.SUPERVISOR:
        allowed = frozenset([principal.id])
        if requested_scope == TEAM_SCOPE:
            allowed = allowed | team_member_ids(db, principal.id)
        # An explicit owner may only narrow, never widen.
        if owner_id and owner_id in allowed:
            return OwnerScope(frozenset([owner_id]))
        return OwnerScope(allowed)

    # MARKETER: caller-supplied scope and owner parameters are ignored.
    return OwnerScope(frozenset([principal.id]))


def can_write(principal: Principal, owner_id: str) -> bool:
    if principal.role == Role.MANAGER:
        return True
    if principal.role in (Role.MARKETER, Role.SUPERVISOR):
        return owner_id == principal.id
    return False


def ensure_can_write(principal: Principal, owner_id: str):
    if not can_write(principal, owner_id):
        raise AuthorizationError("You may not modify records owned by another user")


def supervises(db: Session, supervisor_id: str, owner_id: str) -> bool:
    owner = db.get(User, owner_id)
    return owner is not None and owner.supervisor_id == supervisor_id


def resolve_write_owner(db: Session, principal: Principal, requested_owner_id: Optional[str] = None) -> str:
    """
    Picks the owner for a new record. Unlike reads, a foreign owner is never
    clamped: it is either allowed (managers) or rejected.
    """
    if principal.role == Role.AUDITOR:
        raise AuthorizationError("Auditors cannot create owned records")
    if not requested_owner_id or requested_owner_id == principal.id:
        return principal.id

    ensure_can_write(principal, requested_owner_id)
    owner = db.get(User, requested_owner_id)
    if owner is None or owner.role not in (Role.MARKETER, Role.SUPERVISOR):
        raise ValidationError("Field 'marketingId' must reference a marketer or supervisor")
    return owner.id
