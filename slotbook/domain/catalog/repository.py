"""Catalog repository - Read-only access to the tenant's appointment-type catalog"""

from sqlalchemy.orm import Session

from ...config import DEFAULT_APPOINTMENT_TYPES
from ...models import AppointmentType


class CatalogRepository:
    """The catalog is maintained elsewhere; the booking engine only validates against it."""

    @staticmethod
    def get_active_type_codes(db: Session, tenant_id: str) -> set[str]:
        """
        Codes a new appointment may use for this tenant.

        Tenants without any catalog rows fall back to DEFAULT_APPOINTMENT_TYPES.
        Disabled rows are excluded but still count as "having a catalog".
        """
        rows = (
            db.query(AppointmentType.code, AppointmentType.disabled)
            .filter(AppointmentType.tenant_id == tenant_id)
            .all()
        )
        if not rows:
            return set(DEFAULT_APPOINTMENT_TYPES)
        return {code for code, disabled in rows if not disabled}

    @staticmethod
    def is_valid_type(db: Session, tenant_id: str, code: str) -> bool:
        return code in CatalogRepository.get_active_type_codes(db, tenant_id)
