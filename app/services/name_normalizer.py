"""
Vehicle display name -> storage folder key.

    "Mercedes-AMG C43"  -> "mercedes-c43"
    "Mercedes AMG C43"  -> "mercedes-c43"
    "Audi  Q7 "         -> "audi-q7"

Sub-line qualifiers (AMG, Maybach, ...) never appear in folder names: they
are folded into their parent brand when adjacent to it, and dropped when
left dangling at either end of the name.
"""

import re
from typing import Dict, List, Optional, Tuple

# qualifier token -> parent brand token
BRAND_QUALIFIERS: Dict[str, str] = {
    "amg": "mercedes",
    "maybach": "mercedes",
    "benz": "mercedes",
    "alpina": "bmw",
    "abarth": "fiat",
}

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9-]")
_HYPHENS = re.compile(r"-{2,}")


def _tokens(display_name: Optional[str]) -> List[str]:
    text = (display_name or "").lower().strip()
    text = _WHITESPACE.sub("-", text)
    text = _DISALLOWED.sub("", text)
    text = _HYPHENS.sub("-", text)
    return [token for token in text.split("-") if token]


def _collapse_qualifiers(tokens: List[str]) -> List[str]:
    # "mercedes amg c43" / "mercedes-amg c43" -> mercedes c43
    collapsed: List[str] = []
    for token in tokens:
        parent = BRAND_QUALIFIERS.get(token)
        if parent is not None and collapsed and collapsed[-1] == parent:
            continue
        collapsed.append(token)

    # stray "amg c43" / "c43 amg"
    while collapsed and collapsed[0] in BRAND_QUALIFIERS:
        collapsed.pop(0)
    while collapsed and collapsed[-1] in BRAND_QUALIFIERS:
        collapsed.pop()
    return collapsed


def normalize(display_name: Optional[str]) -> str:
    """Canonical folder key: only [a-z0-9-], no leading/trailing or doubled hyphens."""
    return "-".join(_collapse_qualifiers(_tokens(display_name)))


def split_make_model(display_name: Optional[str]) -> Optional[Tuple[str, str]]:
    """
    First whitespace token as make (qualifiers removed), the rest as model.
    Returns None for single-token names.
    """
    parts = (display_name or "").split()
    if len(parts) < 2:
        return None
    make = normalize(parts[0])
    model = normalize("-".join(parts[1:]))
    return make, model


def alternative_key(display_name: Optional[str]) -> Optional[str]:
    """Folder key built from ``split_make_model``; None when it cannot be derived."""
    split = split_make_model(display_name)
    if split is None:
        return None
    key = normalize("-".join(part for part in split if part))
    return key or None


def model_segment(folder_key: str) -> str:
    """Everything after the first hyphen: 'mercedes-c43' -> 'c43', 'land-rover-defender' -> 'rover-defender'."""
    _, _, rest = folder_key.partition("-")
    return rest
