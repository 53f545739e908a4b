"""Centralized prompt templates for LLM interactions."""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from fitrank.recommend.style_guide import (
    BODY_SHAPE_GUIDANCE,
    DEFAULT_BODY_SHAPE_GUIDANCE,
    GENDER_GUIDANCE,
    SEASON_GUIDANCE,
    canonical_body_shape,
    canonical_season,
)
from fitrank.recommend.types import ShopperProfile

# Default prompts, overridable per tenant
DEFAULT_SYSTEM_PROMPT = """You are an expert fashion stylist and personal shopper with deep knowledge of body proportions and style optimization. Your goal is to select products that will genuinely flatter the customer's body shape.

You analyze clothing based on:
- Silhouette and how it interacts with different body shapes
- Fabric, drape, and structure
- Necklines, waistlines, and hem styles
- Color and pattern placement
- Fit and proportion principles

You provide honest, specific recommendations that help customers look and feel their best."""

DEFAULT_RECOMMENDATION_PROMPT = """Analyze the provided products and select the most suitable items for the customer's body shape.

For each recommendation, consider:
1. How the garment's silhouette flatters their specific body shape
2. Whether the fit and proportions complement their measurements
3. How design elements (necklines, waistlines, etc.) enhance their figure
4. Practical styling advice for wearing the item

Provide specific, actionable reasoning for each recommendation."""


def _profile_lines(profile: ShopperProfile) -> List[str]:
    lines = [f"Body Shape: {profile.body_shape}"]

    m = profile.measurements
    if m is not None:
        measured = [
            ("Gender", m.gender, ""),
            ("Age", m.age, ""),
            ("Height", m.height, "cm"),
            ("Weight", m.weight, "kg"),
            ("Bust", m.bust, "cm"),
            ("Waist", m.waist, "cm"),
            ("Hips", m.hips, "cm"),
            ("Shoulders", m.shoulders, "cm"),
        ]
        known = [(name, value, unit) for name, value, unit in measured if value not in (None, "")]
        if known:
            lines.append("Customer Measurements:")
            lines.extend(f"- {name}: {value}{unit}" for name, value, unit in known)

    if profile.color_season:
        lines.append(f"Color Season: {profile.color_season}")

    c = profile.color_characteristics
    if c is not None:
        traits = [
            ("Undertone", c.undertone, c.undertone_context),
            ("Depth", c.depth, c.depth_context),
            ("Intensity", c.intensity, c.intensity_context),
        ]
        known_traits = [(name, value, note) for name, value, note in traits if value]
        if known_traits:
            lines.append("Color Characteristics:")
            for name, value, note in known_traits:
                lines.append(f"- {name}: {value}" + (f" ({note})" if note else ""))

    v = profile.values
    if v is not None:
        prefs = []
        if v.sustainability:
            prefs.append("- Prefers sustainable and ethically made items")
        if v.budget_tier:
            prefs.append(f"- Budget: {v.budget_tier}")
        if v.styles:
            prefs.append(f"- Preferred styles: {', '.join(v.styles)}")
        if prefs:
            lines.append("Values & Preferences:")
            lines.extend(prefs)

    return lines


class RankingPrompt(BaseModel):
    """Prompt schema for ranking catalog candidates against a shopper profile."""

    recommendation_prompt: str
    profile: ShopperProfile
    candidates: List[Dict[str, Any]]
    count: int
    min_score: float

    def guidance_lines(self) -> List[str]:
        shape = canonical_body_shape(self.profile.body_shape)
        lines = [f"Style Guidance: {BODY_SHAPE_GUIDANCE.get(shape, DEFAULT_BODY_SHAPE_GUIDANCE)}"]

        gender = (self.profile.gender or "").strip().lower()
        if gender in GENDER_GUIDANCE:
            lines.append(f"Audience Guidance: {GENDER_GUIDANCE[gender]}")

        season = canonical_season(self.profile.color_season)
        if season in SEASON_GUIDANCE:
            lines.append(f"Color Guidance: {SEASON_GUIDANCE[season]}")
        return lines

    def to_prompt(self) -> str:
        """Convert to prompt text."""
        shape = self.profile.body_shape
        min_score = int(round(self.min_score))
        parts = [self.recommendation_prompt, ""]
        parts.extend(_profile_lines(self.profile))
        parts.extend(self.guidance_lines())
        parts.append("")
        parts.append("Products Available:")
        parts.append(json.dumps(self.candidates, indent=2))
        parts.append("")
        parts.append(
            f"TASK: Select the top {self.count} DIFFERENT products that will flatter "
            f"the {shape} body shape."
        )
        parts.append(f"""
For each recommendation, provide:
- **index**: Product index from the list (0-based) - MUST be unique, NO DUPLICATES
- **score**: Suitability score (0-100) where 100 = perfect match
- **reasoning**: Explain WHY this specific product flatters their {shape} body shape (2-3 sentences with specific design details)
- **sizeAdvice**: Specific sizing guidance for their body shape and proportions
- **stylingTip**: A unique, actionable styling suggestion for THIS SPECIFIC product

CRITICAL RULES:
- NO DUPLICATE PRODUCTS - each index must appear only once
- Return exactly {self.count} recommendations if that many products qualify
- Each product MUST have unique reasoning and styling tips
- Only recommend products with score >= {min_score}
- Be very selective and specific

Format your response as valid JSON (no markdown):
{{
  "recommendations": [
    {{
      "index": 0,
      "score": 95,
      "reasoning": "Specific reasoning about why this flatters {shape}",
      "sizeAdvice": "Specific size guidance",
      "stylingTip": "Unique styling tip for this product"
    }}
  ]
}}

Return ONLY the JSON, no other text.""")
        return "\n".join(parts)


def build_ranking_prompt(
    recommendation_prompt: Optional[str],
    profile: ShopperProfile,
    candidates: List[Dict[str, Any]],
    count: int,
    min_score: float,
) -> str:
    """Render the user prompt for a ranking request."""
    return RankingPrompt(
        recommendation_prompt=recommendation_prompt or DEFAULT_RECOMMENDATION_PROMPT,
        profile=profile,
        candidates=candidates,
        count=count,
        min_score=min_score,
    ).to_prompt()
