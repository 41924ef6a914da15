"""FastAPI dependencies for service injection."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from checkout.db import get_session
from checkout.services.purchases.purchase_service import PurchaseService


async def get_purchase_service(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> PurchaseService:
    """Get a PurchaseService instance with the current session."""
    return PurchaseService(session)


PurchaseServiceDep = Annotated[PurchaseService, Depends(get_purchase_service)]
