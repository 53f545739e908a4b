"""Domain types shared by the recommendation pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class CatalogItemRecord:
    """One cached catalog item for a tenant.

    Visual-analysis fields are optional; items that were never analyzed simply
    leave them empty.
    """

    tenant: str
    item_id: str
    title: str
    description: str = ""
    category: str = ""
    tags: List[str] = field(default_factory=list)
    price: float = 0.0
    compare_at_price: Optional[float] = None
    in_stock: bool = False
    available_sizes: List[str] = field(default_factory=list)
    handle: Optional[str] = None
    image_url: Optional[str] = None

    # Business inputs for the priority score
    inventory_quantity: Optional[int] = None
    published_at: Optional[datetime] = None
    total_sold: Optional[int] = None
    profit_margin: Optional[float] = None

    # Visual analysis
    detected_colors: List[str] = field(default_factory=list)
    color_seasons: List[str] = field(default_factory=list)
    silhouette: Optional[str] = None
    style_tags: List[str] = field(default_factory=list)
    fabric: Optional[str] = None
    design_details: List[str] = field(default_factory=list)
    pattern: Optional[str] = None

    # Cached ranking boost
    priority_score: float = 0.0
    priority_calculated_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    @property
    def has_visual_analysis(self) -> bool:
        return bool(
            self.detected_colors
            or self.color_seasons
            or self.silhouette
            or self.style_tags
            or self.design_details
        )


@dataclass
class PriorityInputs:
    """Business attributes the priority score is derived from.

    Unknown values stay ``None`` and skip the factor that needs them.
    """

    price: float
    compare_at_price: Optional[float] = None
    inventory_quantity: Optional[int] = None
    published_at: Optional[datetime] = None
    total_sold: Optional[int] = None
    profit_margin: Optional[float] = None  # percent, 0-100+


@dataclass
class PriorityWeights:
    """Tenant-scoped boost weights (0-100 each) and factor thresholds."""

    new_arrival_boost: float
    overstock_boost: float
    slow_mover_boost: float
    high_margin_boost: float
    on_sale_boost: float
    new_arrival_days: int
    overstock_threshold: int
    slow_mover_threshold: int
    strategy: str = "custom"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy,
            "new_arrival_boost": self.new_arrival_boost,
            "overstock_boost": self.overstock_boost,
            "slow_mover_boost": self.slow_mover_boost,
            "high_margin_boost": self.high_margin_boost,
            "on_sale_boost": self.on_sale_boost,
            "new_arrival_days": self.new_arrival_days,
            "overstock_threshold": self.overstock_threshold,
            "slow_mover_threshold": self.slow_mover_threshold,
        }


@dataclass
class BudgetBands:
    """Upper bounds of the low/medium/high price bands; luxury is open-ended."""

    low_max: float
    medium_max: float
    high_max: float

    def band_for(self, tier: str) -> Optional[Tuple[float, float]]:
        """Return the half-open ``[lower, upper)`` band for a tier name."""
        bands = {
            "low": (0.0, self.low_max),
            "medium": (self.low_max, self.medium_max),
            "high": (self.medium_max, self.high_max),
            "luxury": (self.high_max, float("inf")),
        }
        return bands.get((tier or "").strip().lower())


@dataclass
class Measurements:
    """Optional body measurements (cm / kg)."""

    gender: Optional[str] = None
    age: Optional[str] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    bust: Optional[float] = None
    waist: Optional[float] = None
    hips: Optional[float] = None
    shoulders: Optional[float] = None


@dataclass
class ColorCharacteristics:
    undertone: Optional[str] = None
    undertone_context: Optional[str] = None
    depth: Optional[str] = None
    depth_context: Optional[str] = None
    intensity: Optional[str] = None
    intensity_context: Optional[str] = None


@dataclass
class ValuesPreferences:
    sustainability: Optional[bool] = None
    budget_tier: Optional[str] = None
    styles: List[str] = field(default_factory=list)


@dataclass
class ShopperProfile:
    """Per-request shopper description. Never persisted."""

    body_shape: str
    measurements: Optional[Measurements] = None
    color_season: Optional[str] = None
    color_characteristics: Optional[ColorCharacteristics] = None
    values: Optional[ValuesPreferences] = None

    @property
    def gender(self) -> Optional[str]:
        if self.measurements and self.measurements.gender:
            return self.measurements.gender
        return None


@dataclass
class RankingCandidate:
    """Index-addressed view of a candidate sent to the ranking service.

    ``index`` is the position in the candidate array, not the item id.
    """

    index: int
    title: str
    description: str
    category: str
    tags: List[str]
    price: float
    in_stock: bool
    sizes: List[str]
    visual: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "index": self.index,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "tags": ", ".join(self.tags),
            "price": self.price,
            "inStock": self.in_stock,
            "sizes": self.sizes,
        }
        if self.visual:
            payload["visualAnalysis"] = self.visual
        return payload


@dataclass
class RankedEntry:
    """A validated ranking entry on the 0-100 score scale."""

    index: int
    score: float
    rationale: str = ""
    size_advice: str = ""
    styling_tip: str = ""


@dataclass
class RankedRecommendation:
    """Output unit returned to the caller."""

    item: CatalogItemRecord
    suitability_score: float  # 0-1
    size_note: str
    rationale: str
    styling_note: str
    category: str


class RecommendationStatus(str, Enum):
    OK = "ok"
    NO_MATCHES = "no_matches"


class RecommendationSource(str, Enum):
    GENERATIVE = "generative"
    FALLBACK = "fallback"


class EmptyReason(str, Enum):
    NO_CATALOG = "no_catalog"  # cache returned nothing for the tenant
    FILTERED_OUT = "filtered_out"  # hard constraints removed every item
    BELOW_THRESHOLD = "below_threshold"  # nothing scored above the minimum


@dataclass
class RecommendationRequest:
    tenant: str
    profile: ShopperProfile
    count: Optional[int] = None
    min_score: Optional[float] = None  # 0-100
    max_candidates: Optional[int] = None
    in_stock_only: bool = True
    timeout_seconds: Optional[float] = None


@dataclass
class RecommendationResult:
    status: RecommendationStatus
    recommendations: List[RankedRecommendation] = field(default_factory=list)
    source: Optional[RecommendationSource] = None
    fallback_reason: Optional[str] = None
    empty_reason: Optional[EmptyReason] = None
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.status == RecommendationStatus.NO_MATCHES

    @classmethod
    def no_matches(
        cls,
        reason: EmptyReason,
        source: Optional[RecommendationSource] = None,
        stats: Optional[Dict[str, int]] = None,
        fallback_reason: Optional[str] = None,
    ) -> "RecommendationResult":
        return cls(
            status=RecommendationStatus.NO_MATCHES,
            source=source,
            empty_reason=reason,
            fallback_reason=fallback_reason,
            stats=stats or {},
        )
