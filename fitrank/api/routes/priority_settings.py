"""Priority weight routes."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from fitrank.api.deps import get_database
from fitrank.catalog.priority import STRATEGIES
from fitrank.recommend.types import PriorityWeights
from fitrank.tenant.settings_store import get_priority_weights, save_priority_weights

router = APIRouter(prefix="/api/priority-settings", tags=["settings"])


class PriorityWeightsModel(BaseModel):
    strategy: str = "custom"
    new_arrival_boost: float = Field(ge=0, le=100)
    overstock_boost: float = Field(ge=0, le=100)
    slow_mover_boost: float = Field(ge=0, le=100)
    high_margin_boost: float = Field(ge=0, le=100)
    on_sale_boost: float = Field(ge=0, le=100)
    new_arrival_days: int = Field(ge=0)
    overstock_threshold: int = Field(ge=0)
    slow_mover_threshold: int = Field(ge=0)


class PriorityWeightsSaved(PriorityWeightsModel):
    refreshed_items: int


@router.get("/{tenant}", response_model=PriorityWeightsModel)
async def get_priority_settings(tenant: str, db: AsyncSession = Depends(get_database)):
    """Current priority weights for a tenant."""
    weights = await get_priority_weights(db, tenant)
    return PriorityWeightsModel(**weights.to_dict())


@router.put("/{tenant}", response_model=PriorityWeightsSaved)
async def update_priority_settings(
    tenant: str,
    payload: PriorityWeightsModel,
    db: AsyncSession = Depends(get_database),
):
    """Save priority weights and recompute the tenant's cached scores."""
    if payload.strategy not in STRATEGIES:
        raise HTTPException(status_code=422, detail=f"Unknown strategy: {payload.strategy}")

    weights = PriorityWeights(**payload.model_dump())
    refreshed = await save_priority_weights(db, tenant, weights)
    return PriorityWeightsSaved(**weights.to_dict(), refreshed_items=refreshed)
