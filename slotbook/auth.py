import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException

from .shared.validators import validate_uuid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Tenant and acting user for one call into the booking engine"""

    tenant_id: str
    actor_id: Optional[str] = None


def get_request_context(
    x_tenant_id: Optional[str] = Header(None),
    x_actor_id: Optional[str] = Header(None),
) -> RequestContext:
    """
    Resolve the caller's tenant and actor from the gateway headers.

    The identity provider in front of this service authenticates the user and
    stamps X-Tenant-Id / X-Actor-Id; here they are only checked for shape.
    """
    if not x_tenant_id:
        logger.warning("❌ Request without X-Tenant-Id header")
        raise HTTPException(status_code=401, detail="Missing tenant identifier")

    if not validate_uuid(x_tenant_id):
        logger.warning(f"❌ Malformed tenant identifier: {x_tenant_id!r}")
        raise HTTPException(status_code=400, detail="Invalid tenant identifier")

    return RequestContext(tenant_id=x_tenant_id, actor_id=x_actor_id or None)
