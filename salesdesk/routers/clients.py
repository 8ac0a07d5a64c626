from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from salesdesk import pipeline
from salesdesk.auth import Principal, get_principal
from salesdesk.database import get_db
from salesdesk.models import ClientStatus
from salesdesk.schemas import ClientCreate, ClientImportRequest, ClientOut, ClientUpdate, ImportResult
from salesdesk.visibility import resolve_scope

router = APIRouter()


@router.get("/clients", response_model=List[ClientOut], tags=["Clients"])
def list_clients(
    scope: Optional[str] = None,
    marketing_id: Optional[str] = None,
    search: Optional[str] = None,
    status: Optional[ClientStatus] = None,
    stagnant: bool = False,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Clients in the caller's scope. `stagnant=true` returns the stagnation sidebar."""
    resolved = resolve_scope(db, principal, scope, marketing_id)
    return pipeline.list_clients(db, resolved, search=search, status=status, stagnant_only=stagnant)


@router.post("/clients", response_model=ClientOut, tags=["Clients"])
def create_client(body: ClientCreate, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    client = pipeline.create_client(db, principal, body)
    return pipeline.client_view(client)


@router.put("/clients", response_model=ClientOut, tags=["Clients"])
def update_client(body: ClientUpdate, principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    fields = body.model_dump(exclude_unset=True, exclude={"id"})
    client = pipeline.update_client(db, principal, body.id, fields)
    return pipeline.client_view(client)


@router.patch("/clients", response_model=ImportResult, tags=["Clients"])
def import_clients(
    body: ClientImportRequest,
    marketing_id: Optional[str] = None,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return pipeline.bulk_import(db, principal, body.clients, owner_id=marketing_id)


@router.delete("/clients", tags=["Clients"])
def remove_client(id: str = Query(...), principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    pipeline.remove_client(db, principal, id)
    return {"success": True}
