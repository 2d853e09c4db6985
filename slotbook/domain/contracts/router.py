"""Contract router - FastAPI endpoints for contract operations"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import RequestContext, get_request_context
from ...config import DEFAULT_PAGE_SIZE
from ...database import get_db
from .schemas import ContractCreate, ContractListResponse, ContractResponse, contract_response
from .service import ContractService

router = APIRouter(prefix="/contracts", tags=["Contracts"])


def get_contract_service(db: Session = Depends(get_db)) -> ContractService:
    """Dependency injection for ContractService"""
    return ContractService(db)


@router.post("", response_model=ContractResponse, status_code=201)
def create_contract(
    data: ContractCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: ContractService = Depends(get_contract_service),
):
    """Register a sale, optionally booking its installation slot in the same transaction"""
    contract = service.create_contract(ctx.tenant_id, data, ctx.actor_id)
    return contract_response(contract)


@router.get("", response_model=ContractListResponse)
def list_contracts(
    status: Optional[str] = Query(None, description="Filter contracts by status"),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    offset: int = Query(0),
    ctx: RequestContext = Depends(get_request_context),
    service: ContractService = Depends(get_contract_service),
):
    contracts, total = service.list_contracts(ctx.tenant_id, status, limit, offset)
    return ContractListResponse(
        items=[contract_response(c) for c in contracts], total=total, limit=limit, offset=offset
    )


@router.get("/{contract_id}", response_model=ContractResponse)
def get_contract(
    contract_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ContractService = Depends(get_contract_service),
):
    return contract_response(service.get_contract(ctx.tenant_id, contract_id))
