"""
Static catalog tables: material synonyms, product base prices and the
product -> supplier material categories mapping.
"""

from typing import Optional


# Keyword (lowercase, as typed) -> canonical product / material name
MATERIAL_SYNONYMS: dict[str, str] = {
    # Construction
    "steel beam": "Steel Beam",
    "steel beams": "Steel Beam",
    "beam": "Steel Beam",
    "beams": "Steel Beam",
    "steel": "Steel",
    "steel components": "Steel Components",
    "construction steel": "Construction Steel",
    "rebar": "Construction Steel",
    "cement bag": "Cement Bag",
    "cement bags": "Cement Bag",
    "cement": "Cement Bag",
    "red clay bricks": "Red Clay Bricks",
    "bricks": "Red Clay Bricks",
    "brick": "Red Clay Bricks",
    "aluminum": "Aluminum",
    "aluminum sheet": "Aluminum Sheets",
    "aluminum sheets": "Aluminum Sheets",
    # Manufacturing
    "plastic mold case": "Plastic Mold Case",
    "plastic mold cases": "Plastic Mold Case",
    "mold case": "Plastic Mold Case",
    "casting materials": "Casting Materials",
    "fasteners": "Industrial Fasteners",
    "industrial fasteners": "Industrial Fasteners",
    "chair": "Chair",
    "chairs": "Chair",
    # Logistics
    "shipping container": "Shipping Container",
    "shipping containers": "Shipping Container",
    "wooden pallet": "Wooden Pallet",
    "wooden pallets": "Wooden Pallet",
    "pallet": "Wooden Pallet",
    "pallets": "Wooden Pallet",
    # Electronics
    "power supply unit": "Power Supply Unit",
    "power supply": "Power Supply Unit",
    "usb hub": "USB Hub",
    "usb hubs": "USB Hub",
    "connector": "Connectors",
    "connectors": "Connectors",
    "cable": "Cables",
    "cables": "Cables",
    "circuit board": "Circuit Boards",
    "circuit boards": "Circuit Boards",
    "laptop": "Laptop",
    "laptops": "Laptop",
}

# Longest first so specific terms win over generic ones
SYNONYM_KEYWORDS: list[str] = sorted(MATERIAL_SYNONYMS, key=len, reverse=True)

BASE_PRICES: dict[str, float] = {
    "Plastic Mold Case": 45.70,
    "Steel Beam": 89.50,
    "Cement Bag": 12.30,
    "Red Clay Bricks": 0.85,
    "Shipping Container": 2500.00,
    "Wooden Pallet": 25.00,
    "Power Supply Unit": 125.00,
    "USB Hub": 35.00,
}

DEFAULT_PRICE = 50.00

# Product -> material categories suppliers are registered under
PRODUCT_MATERIALS: dict[str, list[str]] = {
    "steel beam": ["Construction Steel", "Steel Components"],
    "steel": ["Construction Steel", "Steel Components"],
    "construction steel": ["Construction Steel"],
    "steel components": ["Steel Components"],
    "cement bag": ["Cement Mix"],
    "red clay bricks": ["Bricks"],
    "aluminum": ["Aluminum Sheets"],
    "aluminum sheets": ["Aluminum Sheets"],
    "plastic mold case": ["Plastic Molding", "Steel Components"],
    "casting materials": ["Casting Materials"],
    "industrial fasteners": ["Industrial Fasteners", "Fasteners"],
    "chair": ["Furniture"],
    "shipping container": ["Containers", "Shipping"],
    "wooden pallet": ["Pallets", "Wood Products"],
    "power supply unit": ["Cables", "Electronic Components"],
    "usb hub": ["Connectors", "Electronic Components"],
    "connectors": ["Connectors"],
    "cables": ["Cables", "Connectors"],
    "circuit boards": ["Circuit Boards", "Electronic Components"],
    "laptop": ["Electronic Components"],
}

REGIONS: dict[str, str] = {
    "asia": "Asia",
    "europe": "Europe",
    "africa": "Africa",
    "americas": "Americas",
    "america": "Americas",
    "oceania": "Oceania",
}

CATEGORIES: dict[str, str] = {
    "manufacturing": "Manufacturing",
    "construction": "Construction",
    "logistics": "Logistics",
    "electronics": "Electronics",
}


def canonical_product(term: Optional[str]) -> Optional[str]:
    """
    Resolve free text to a canonical product name.

    Args:
        term: Material or product as the user typed it

    Returns:
        Catalog name when known, otherwise the term in Title Case
    """
    if not term:
        return None
    key = " ".join(term.lower().split())
    if key in MATERIAL_SYNONYMS:
        return MATERIAL_SYNONYMS[key]
    return " ".join(word.capitalize() for word in key.split())


def related_materials(term: Optional[str]) -> list[str]:
    """Material categories a supplier may list for the given product term."""
    if not term:
        return []
    product = canonical_product(term)
    materials = [product]
    for key in (term.lower().strip(), product.lower()):
        for material in PRODUCT_MATERIALS.get(key, []):
            if material not in materials:
                materials.append(material)
    return materials


def canonical_region(term: Optional[str]) -> Optional[str]:
    if not term:
        return None
    return REGIONS.get(term.lower().strip(), term.strip().title())
