"""
Client Pipeline Engine.

The pipeline statuses are an ordered label set used for reporting. There is
no adjacency rule: any status may be set from any other, on create, on direct
edit, from a report cascade and from bulk import.
"""
import logging
from datetime import date
from typing import Iterable, List, Optional

import pydantic
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from salesdesk import config
from salesdesk.auth import Principal
from salesdesk.database import atomic
from salesdesk.errors import AuthorizationError, NotFoundError, ValidationError
from salesdesk.models import Client, ClientStatus, Role
from salesdesk.schemas import ClientCreate, ClientFields, ClientOut, ImportResult, SkippedRow
from salesdesk.utils import local_today
from salesdesk.visibility import Scope, ensure_can_write, resolve_write_owner

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = frozenset(ClientFields.model_fields)
NULLABLE_FIELDS = frozenset(["year_work", "year_book"])


# --- Stagnation (derived on read, never stored) ---
def days_stagnant(client: Client, today: date) -> int:
    return max((today - client.last_update).days, 0)


def is_stagnant(client: Client, today: date) -> bool:
    if client.status in config.STAGNATION_EXEMPT_STATUSES:
        return False
    return days_stagnant(client, today) > config.STAGNANT_AFTER_DAYS


def client_view(client: Client, today: Optional[date] = None) -> ClientOut:
    today = today or local_today()
    view = ClientOut.model_validate(client)
    view.days_stagnant = days_stagnant(client, today)
    view.stagnant = is_stagnant(client, today)
    view.audit_eligible = client.audit_eligible
    return view


def compute_stagnant(clients: Iterable[Client], today: date) -> List[ClientOut]:
    """Stagnant clients, longest-idle first."""
    views = [client_view(c, today) for c in clients if is_stagnant(c, today)]
    return sorted(views, key=lambda v: v.days_stagnant, reverse=True)


# --- Reads ---
def get_client(db: Session, client_id: str) -> Client:
    client = db.get(Client, client_id)
    if client is None:
        raise NotFoundError(f"Client {client_id} not found")
    return client


def list_clients(
    db: Session,
    scope: Scope,
    search: Optional[str] = None,
    status: Optional[ClientStatus] = None,
    stagnant_only: bool = False,
    today: Optional[date] = None,
) -> List[ClientOut]:
    today = today or local_today()
    query = scope.apply(db.query(Client), Client)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Client.name.ilike(pattern), Client.pic_name.ilike(pattern)))
    if status:
        query = query.filter(Client.status == status)
    clients = query.order_by(Client.created_at.desc()).all()

    if stagnant_only:
        return compute_stagnant(clients, today)
    return [client_view(c, today) for c in clients]


# --- Writes ---
def _new_client(owner_id: str, fields: dict, today: date) -> Client:
    values = dict(config.CLIENT_TEXT_DEFAULTS)
    values.update({k: v for k, v in fields.items() if v is not None})
    values.setdefault("status", ClientStatus.NEW)
    for money_field in ("estimated_value", "dpp", "dp_paid"):
        values.setdefault(money_field, 0)
    return Client(marketing_id=owner_id, last_update=today, **values)


def create_client(db: Session, principal: Principal, data: ClientCreate, today: Optional[date] = None) -> Client:
    today = today or local_today()
    owner_id = resolve_write_owner(db, principal, data.marketing_id)
    fields = data.model_dump(exclude={"marketing_id"}, exclude_none=True)

    with atomic(db):
        client = _new_client(owner_id, fields, today)
        db.add(client)
    db.refresh(client)
    logger.info("Client %s created for marketer %s by %s", client.id, owner_id, principal.id)
    return client


def _ensure_can_patch(principal: Principal, client: Client, fields: dict):
    if principal.role == Role.AUDITOR:
        forbidden = set(fields) - set(config.AUDITOR_WRITABLE_FIELDS)
        if forbidden or not client.audit_eligible:
            raise AuthorizationError("Auditors may only update billing fields of audit-eligible clients")
        return
    ensure_can_write(principal, client.marketing_id)


def patch_client(db: Session, principal: Principal, client_id: str, fields: dict, today: date) -> Client:
    """
    Applies a partial update and bumps `last_update`. Does not commit: callers
    own the transaction (direct edits and the EOD report cascade).
    """
    fields = {k: v for k, v in fields.items() if v is not None or k in NULLABLE_FIELDS}
    unknown = set(fields) - PATCHABLE_FIELDS
    if unknown:
        raise ValidationError(f"Field '{sorted(unknown)[0]}' cannot be updated")
    if not fields:
        raise ValidationError("No fields to update")
    if "name" in fields and not (fields["name"] or "").strip():
        raise ValidationError("Field 'name' cannot be empty")

    client = get_client(db, client_id)
    _ensure_can_patch(principal, client, fields)

    for key, value in fields.items():
        setattr(client, key, value)
    client.last_update = today
    db.flush()
    return client


def update_client(db: Session, principal: Principal, client_id: str, fields: dict, today: Optional[date] = None) -> Client:
    today = today or local_today()
    with atomic(db):
        client = patch_client(db, principal, client_id, fields, today)
    db.refresh(client)
    return client


def _clean_import_row(row: dict) -> dict:
    cleaned = {}
    for key, value in row.items():
        if isinstance(value, str):
            value = value.strip()
            if value == "":
                continue
        cleaned[key] = value
    return cleaned


def bulk_import(
    db: Session,
    principal: Principal,
    rows: List[dict],
    owner_id: Optional[str] = None,
    today: Optional[date] = None,
) -> ImportResult:
    """
    Imports rows one by one. A bad row is skipped with a reason and never
    aborts the rest of the batch: each row runs in its own savepoint.
    """
    today = today or local_today()
    owner_id = resolve_write_owner(db, principal, owner_id)
    imported, skipped = [], []

    with atomic(db):
        # Folded in Python: SQLite's lower() only folds ASCII.
        existing_names = {
            n.casefold() for (n,) in db.query(Client.name).filter(Client.marketing_id == owner_id)
        }
        for index, raw in enumerate(rows, start=1):
            row = _clean_import_row(raw if isinstance(raw, dict) else {})
            name = row.get("name")
            if name is not None:
                name = row["name"] = str(name)
            if not name:
                skipped.append(SkippedRow(row=index, reason="Name is empty"))
                continue

            folded = name.casefold()
            if folded in existing_names:
                skipped.append(SkippedRow(row=index, name=name, reason="Client already exists"))
                continue

            try:
                fields = ClientFields.model_validate(row).model_dump(exclude_none=True)
            except pydantic.ValidationError as e:
                error = e.errors()[0]
                field = ".".join(str(part) for part in error["loc"])
                skipped.append(SkippedRow(row=index, name=name, reason=f"Invalid value for '{field}'"))
                continue

            try:
                with db.begin_nested():
                    client = _new_client(owner_id, fields, today)
                    db.add(client)
            except SQLAlchemyError as e:
                logger.warning("Import row %d skipped after a storage error: %s", index, e)
                skipped.append(SkippedRow(row=index, name=name, reason="Could not be saved"))
                continue
            existing_names.add(folded)
            imported.append(client)

    logger.info(
        "Bulk import for %s by %s: %d imported, %d skipped",
        owner_id, principal.id, len(imported), len(skipped),
    )
    views = [client_view(c, today) for c in imported]
    return ImportResult(
        imported=views,
        skipped=skipped,
        total_imported=len(views),
        total_skipped=len(skipped),
    )


def remove_client(db: Session, principal: Principal, client_id: str):
    """Managers only. Activities survive with their client reference nulled."""
    if principal.role != Role.MANAGER:
        raise AuthorizationError("Only managers can remove clients")
    with atomic(db):
        client = get_client(db, client_id)
        db.delete(client)
    logger.info("Client %s removed by %s", client_id, principal.id)
