"""Budget band routes."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from fitrank.api.deps import get_database
from fitrank.tenant.settings_store import budget_bands_for

router = APIRouter(prefix="/api/budget-settings", tags=["settings"])


class BudgetBandsResponse(BaseModel):
    low_max: float
    medium_max: float
    high_max: float


@router.get("", response_model=BudgetBandsResponse)
async def get_budget_settings(tenant: str, db: AsyncSession = Depends(get_database)):
    """Budget bands for a tenant (defaults when it has none saved)."""
    bands = await budget_bands_for(db, tenant)
    return BudgetBandsResponse(
        low_max=bands.low_max,
        medium_max=bands.medium_max,
        high_max=bands.high_max,
    )
