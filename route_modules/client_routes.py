"""
Client Routes - API endpoints for the client roster.
"""
from typing import List

from fastapi import APIRouter, Body, Depends

from auth import get_current_identity, require_admin
from models import ClientCreate, ClientRecord, Identity
from service_modules.client_service import ClientService, get_client_service

router = APIRouter()


@router.get("/clients", response_model=List[ClientRecord])
async def list_clients(
    service: ClientService = Depends(get_client_service),
    identity: Identity = Depends(get_current_identity)
):
    """Clients visible to the caller: all for admins, the assigned one for members."""
    return service.list_visible(identity)


@router.get("/clients/{client_id}", response_model=ClientRecord)
async def get_client(
    client_id: int,
    service: ClientService = Depends(get_client_service),
    identity: Identity = Depends(get_current_identity)
):
    return service.get_visible(identity, client_id)


@router.post("/clients", response_model=ClientRecord)
async def create_client(
    client_data: ClientCreate,
    service: ClientService = Depends(get_client_service),
    identity: Identity = Depends(require_admin)
):
    """Create a client (admin only)."""
    return service.create_client(identity, client_data.name)


@router.patch("/clients/{client_id}", response_model=ClientRecord)
async def update_client(
    client_id: int,
    patch: dict = Body(...),
    service: ClientService = Depends(get_client_service),
    identity: Identity = Depends(get_current_identity)
):
    """Partially update a client. Members may only log nutrition adherence and progress."""
    return service.update_client(identity, client_id, patch)


@router.delete("/clients/{client_id}")
async def delete_client(
    client_id: int,
    service: ClientService = Depends(get_client_service),
    identity: Identity = Depends(require_admin)
):
    """Delete a client (admin only). The linked user account is kept."""
    return service.delete_client(identity, client_id)
