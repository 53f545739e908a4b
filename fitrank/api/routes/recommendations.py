"""Recommendation routes."""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from fitrank.api.deps import get_database, get_engine
from fitrank.errors import NotConfiguredError
from fitrank.recommend.engine import RecommendationEngine
from fitrank.recommend.types import (
    ColorCharacteristics,
    Measurements,
    RankedRecommendation,
    RecommendationRequest,
    ShopperProfile,
    ValuesPreferences,
)

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


class MeasurementsIn(BaseModel):
    gender: str | None = None
    age: str | None = None
    height: float | None = None
    weight: float | None = None
    bust: float | None = None
    waist: float | None = None
    hips: float | None = None
    shoulders: float | None = None


class ColorCharacteristicsIn(BaseModel):
    undertone: str | None = None
    undertone_context: str | None = None
    depth: str | None = None
    depth_context: str | None = None
    intensity: str | None = None
    intensity_context: str | None = None


class ValuesIn(BaseModel):
    sustainability: bool | None = None
    budget_tier: str | None = None
    styles: List[str] = []


class RecommendationRequestIn(BaseModel):
    tenant: str
    body_shape: str
    measurements: MeasurementsIn | None = None
    color_season: str | None = None
    color_characteristics: ColorCharacteristicsIn | None = None
    values: ValuesIn | None = None
    count: int | None = Field(default=None, ge=1)
    min_score: float | None = Field(default=None, ge=0, le=100)
    max_candidates: int | None = Field(default=None, ge=1)
    in_stock_only: bool = True
    timeout_seconds: float | None = Field(default=None, gt=0)

    def to_request(self) -> RecommendationRequest:
        return RecommendationRequest(
            tenant=self.tenant,
            profile=ShopperProfile(
                body_shape=self.body_shape,
                measurements=Measurements(**self.measurements.model_dump()) if self.measurements else None,
                color_season=self.color_season,
                color_characteristics=(
                    ColorCharacteristics(**self.color_characteristics.model_dump())
                    if self.color_characteristics
                    else None
                ),
                values=ValuesPreferences(**self.values.model_dump()) if self.values else None,
            ),
            count=self.count,
            min_score=self.min_score,
            max_candidates=self.max_candidates,
            in_stock_only=self.in_stock_only,
            timeout_seconds=self.timeout_seconds,
        )


class RecommendationOut(BaseModel):
    item_id: str
    title: str
    handle: str | None
    image_url: str | None
    price: float
    compare_at_price: float | None
    suitability_score: float
    size_note: str
    rationale: str
    styling_note: str
    category: str

    @classmethod
    def from_recommendation(cls, rec: RankedRecommendation) -> "RecommendationOut":
        return cls(
            item_id=rec.item.item_id,
            title=rec.item.title,
            handle=rec.item.handle,
            image_url=rec.item.image_url,
            price=rec.item.price,
            compare_at_price=rec.item.compare_at_price,
            suitability_score=rec.suitability_score,
            size_note=rec.size_note,
            rationale=rec.rationale,
            styling_note=rec.styling_note,
            category=rec.category,
        )


class RecommendationResponse(BaseModel):
    status: str
    source: str | None
    fallback_reason: str | None
    empty_reason: str | None
    recommendations: List[RecommendationOut]
    stats: Dict[str, int]


@router.post("", response_model=RecommendationResponse)
async def create_recommendations(
    payload: RecommendationRequestIn,
    db: AsyncSession = Depends(get_database),
    engine: RecommendationEngine = Depends(get_engine),
):
    """Rank catalog items for a shopper profile."""
    try:
        result = await engine.recommend(db, payload.to_request())
    except NotConfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Recommendations not configured: {e}",
        )

    return RecommendationResponse(
        status=result.status.value,
        source=result.source.value if result.source else None,
        fallback_reason=result.fallback_reason,
        empty_reason=result.empty_reason.value if result.empty_reason else None,
        recommendations=[RecommendationOut.from_recommendation(r) for r in result.recommendations],
        stats=result.stats,
    )
