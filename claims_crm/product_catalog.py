from typing import Optional

# Map product_category to its allowed product_subtype values
CATALOG = {
    "motor": ["private_car", "two_wheeler", "commercial_vehicle", "taxi"],
    "health": ["individual", "family_floater", "senior_citizen", "critical_illness", "group"],
    "life": ["term", "endowment", "ulip", "whole_life", "pension"],
    "property": ["home", "shop", "office", "fire"],
    "travel": ["domestic", "international", "student"],
    "mobile": ["screen_damage", "theft", "extended_warranty"],
}

def validate_product(category: Optional[str], subtype: Optional[str]) -> Optional[str]:
    """Return an error message, or None when the pair is allowed"""
    if category is None:
        if subtype is not None:
            return "product_subtype requires product_category"
        return None

    if category not in CATALOG:
        return (
            f"Unsupported product_category '{category}'. Supported: {', '.join(sorted(CATALOG.keys()))}"
        )

    if subtype is not None and subtype not in CATALOG[category]:
        return (
            f"Unsupported product_subtype '{subtype}' for {category}. "
            f"Supported: {', '.join(CATALOG[category])}"
        )
    return None
