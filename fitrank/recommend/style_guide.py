"""Static styling tables keyed by body shape, season and audience."""

from typing import Dict, List, Optional

BODY_SHAPES = (
    "Pear/Triangle",
    "Apple/Round",
    "Hourglass",
    "Inverted Triangle",
    "Rectangle/Straight",
    "V-Shape/Athletic",
)

# Flattering style keywords; the fallback scorer counts how many appear
BODY_SHAPE_KEYWORDS: Dict[str, List[str]] = {
    "Pear/Triangle": ["a-line", "fit-and-flare", "empire-waist", "bootcut", "wide-leg", "structured-shoulders"],
    "Apple/Round": ["empire-waist", "v-neck", "scoop-neck", "high-waisted", "flowing", "wrap"],
    "Hourglass": ["fitted", "wrap", "belted", "high-waisted", "curve-hugging", "bodycon"],
    "Inverted Triangle": ["a-line", "wide-leg", "bootcut", "scoop-neck", "v-neck", "minimize-shoulders"],
    "Rectangle/Straight": ["belted", "peplum", "structured", "layered", "cropped", "fitted"],
    "V-Shape/Athletic": ["fitted", "straight-leg", "v-neck", "minimal", "athletic", "casual"],
}

# Styles to keep away from a shopper of the given shape
AVOID_KEYWORDS: Dict[str, List[str]] = {
    "Pear/Triangle": ["tight-fit-bottom", "skinny-jean", "pencil-skirt"],
    "Apple/Round": ["tight-waist", "crop-top", "bodycon"],
    "Hourglass": ["oversized", "baggy", "shapeless"],
    "Inverted Triangle": ["shoulder-pad", "puff-sleeve", "statement-shoulder"],
    "Rectangle/Straight": ["straight-cut", "shift-dress"],
    "V-Shape/Athletic": ["heavily-structured-shoulder"],
}

BODY_SHAPE_GUIDANCE: Dict[str, str] = {
    "Pear/Triangle": (
        "Focus on balancing wider hips with structured shoulders, A-line silhouettes, "
        "and drawing attention upward. Avoid tight bottoms."
    ),
    "Apple/Round": (
        "Emphasize defined waist with empire cuts, V-necks, and flowing fabrics. "
        "Create vertical lines. Avoid tight waistbands."
    ),
    "Hourglass": (
        "Highlight curves with fitted styles, wrap designs, and belted pieces. "
        "Avoid shapeless or overly loose clothing."
    ),
    "Inverted Triangle": (
        "Balance broad shoulders with A-line skirts, wide-leg pants, and minimize "
        "shoulder details. Avoid shoulder pads."
    ),
    "Rectangle/Straight": (
        "Create curves with belts, peplum, and structured pieces. Add dimension "
        "through layering. Avoid straight cuts."
    ),
    "V-Shape/Athletic": (
        "Show off athletic build with fitted shirts and straight-leg pants. "
        "Minimize shoulder emphasis."
    ),
}
DEFAULT_BODY_SHAPE_GUIDANCE = "Consider proportions and personal style."

SIZE_RECOMMENDATIONS: Dict[str, Dict[str, str]] = {
    "Pear/Triangle": {
        "tops": "Consider sizing up for comfortable fit across hips",
        "bottoms": "Focus on hip measurement, may need larger size",
        "dresses": "Choose based on largest measurement (usually hips)",
    },
    "Apple/Round": {
        "tops": "Choose based on bust measurement, empire waist styles work well",
        "bottoms": "High-waisted styles, size for waist comfort",
        "dresses": "Empire waist or A-line, size for bust",
    },
    "Hourglass": {
        "tops": "Size for bust, should nip in at waist",
        "bottoms": "Size for hips, high-waisted styles recommended",
        "dresses": "Size for largest measurement, fitted styles work best",
    },
    "Inverted Triangle": {
        "tops": "Size for shoulders/bust, avoid tight fits",
        "bottoms": "Can often size down, focus on hip fit",
        "dresses": "Size for shoulders/bust, A-line styles recommended",
    },
    "Rectangle/Straight": {
        "tops": "Standard sizing, add belts or structure",
        "bottoms": "Standard sizing, can experiment with different cuts",
        "dresses": "Standard sizing, belted styles create curves",
    },
    "V-Shape/Athletic": {
        "tops": "Size for chest/shoulders, fitted cuts work well",
        "bottoms": "Standard sizing, straight cuts recommended",
        "dresses": "Size for chest, avoid shoulder emphasis",
    },
}
DEFAULT_SIZE_NOTE = "Choose your normal size and check the size chart"

SEASON_GUIDANCE: Dict[str, str] = {
    "spring": (
        "Warm, clear and light colors suit this palette: coral, peach, warm pink, "
        "golden yellow, light camel and turquoise. Avoid black and heavy dark tones."
    ),
    "summer": (
        "Cool, soft and muted colors suit this palette: powder blue, lavender, rose, "
        "soft grey and dusty pink. Avoid bright orange and stark contrasts."
    ),
    "autumn": (
        "Warm, deep and muted colors suit this palette: rust, olive, mustard, "
        "chocolate brown, teal and terracotta. Avoid icy pastels."
    ),
    "winter": (
        "Cool, deep and vivid colors suit this palette: black, pure white, royal blue, "
        "emerald, fuchsia and true red. Avoid muted earth tones."
    ),
}

GENDER_GUIDANCE: Dict[str, str] = {
    "man": "Recommend menswear or clearly unisex items only.",
    "woman": "Recommend womenswear or clearly unisex items only.",
    "non-binary": (
        "Recommend items across menswear, womenswear and unisex ranges; "
        "favor versatile and gender-neutral pieces."
    ),
}

_ALIASES = {
    "pear": "Pear/Triangle",
    "triangle": "Pear/Triangle",
    "apple": "Apple/Round",
    "round": "Apple/Round",
    "oval": "Apple/Round",
    "hourglass": "Hourglass",
    "inverted triangle": "Inverted Triangle",
    "inverted-triangle": "Inverted Triangle",
    "rectangle": "Rectangle/Straight",
    "straight": "Rectangle/Straight",
    "v-shape": "V-Shape/Athletic",
    "athletic": "V-Shape/Athletic",
}


def canonical_body_shape(label: Optional[str]) -> Optional[str]:
    """Map a free-form body shape label onto a known shape, or None."""
    if not label:
        return None
    cleaned = label.strip()
    for shape in BODY_SHAPES:
        if shape.lower() == cleaned.lower():
            return shape
    lowered = cleaned.lower()
    if lowered in _ALIASES:
        return _ALIASES[lowered]
    # "Pear/Triangle"-style labels with parts in a different order
    for part in lowered.split("/"):
        if part.strip() in _ALIASES:
            return _ALIASES[part.strip()]
    return None


def canonical_season(label: Optional[str]) -> Optional[str]:
    if not label:
        return None
    lowered = label.strip().lower()
    if lowered == "fall":
        return "autumn"
    return lowered or None
