"""Contract repository - Database operations for contracts"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Contract, ContractAddon


class ContractRepository:
    """Repository for contract database operations. Flushes only; services commit."""

    @staticmethod
    def get_contract_by_id(db: Session, tenant_id: str, contract_id: str) -> Optional[Contract]:
        """Get a specific contract with its add-ons and appointment"""
        return (
            db.query(Contract)
            .options(joinedload(Contract.addons), joinedload(Contract.appointment))
            .filter(Contract.id == contract_id, Contract.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def get_contracts(
        db: Session,
        tenant_id: str,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Contract], int]:
        """Newest-first page of contracts plus the unpaged total"""
        query = db.query(Contract).filter(Contract.tenant_id == tenant_id)

        if status:
            query = query.filter(Contract.status == status)

        total = query.count()
        contracts = (
            query.options(joinedload(Contract.addons), joinedload(Contract.appointment))
            .order_by(Contract.created_at.desc(), Contract.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return contracts, total

    @staticmethod
    def create_contract(db: Session, tenant_id: str, **contract_data) -> Contract:
        contract = Contract(tenant_id=tenant_id, **contract_data)
        db.add(contract)
        db.flush()
        return contract

    @staticmethod
    def add_addons(
        db: Session, tenant_id: str, contract: Contract, addons: list[dict]
    ) -> list[ContractAddon]:
        rows = [
            ContractAddon(tenant_id=tenant_id, contract_id=contract.id, **addon) for addon in addons
        ]
        if rows:
            db.add_all(rows)
            db.flush()
        return rows
