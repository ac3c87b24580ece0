"""Familles d'activité : correspondance code NAF → types de lieux."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class ActivityFamily:
    """Types de lieux attendus pour un code NAF."""

    naf_code: str
    label: str
    primary_types: frozenset[str]
    related_types: frozenset[str] = frozenset()


def _family(code: str, label: str, primary: Iterable[str], related: Iterable[str] = ()) -> ActivityFamily:
    return ActivityFamily(code, label, frozenset(primary), frozenset(related))


ACTIVITY_FAMILIES: dict[str, ActivityFamily] = {
    f.naf_code: f
    for f in (
        _family("10.71C", "Boulangerie et boulangerie-pâtisserie", ["bakery"], ["cafe", "coffee_shop"]),
        _family("10.71D", "Pâtisserie", ["bakery"], ["cafe", "ice_cream_shop"]),
        _family("56.10A", "Restauration traditionnelle", ["restaurant", "french_restaurant"], ["meal_takeaway"]),
        _family("56.10B", "Cafétéria et autres libres-services", ["cafe", "cafeteria"], ["restaurant"]),
        _family("56.10C", "Restauration de type rapide", ["fast_food_restaurant", "meal_takeaway"], ["sandwich_shop"]),
        _family("56.30Z", "Débits de boissons", ["bar", "cafe"], ["night_club", "liquor_store"]),
        _family(
            "47.11B",
            "Commerce d'alimentation générale",
            ["grocery_store", "convenience_store"],
            ["supermarket"],
        ),
        _family("47.11D", "Supermarchés", ["supermarket"], ["grocery_store", "convenience_store"]),
        _family("47.24Z", "Commerce de détail de pain, pâtisserie et confiserie", ["bakery"], ["candy_store"]),
        _family("47.25Z", "Commerce de détail de boissons", ["liquor_store"], ["convenience_store", "wine_shop"]),
        _family(
            "47.26Z",
            "Commerce de détail de produits à base de tabac",
            ["tobacco_shop", "newsstand"],
            ["convenience_store", "lottery_retailer"],
        ),
        _family("47.62Z", "Commerce de détail de journaux et papeterie", ["book_store", "newsstand"], ["gift_shop"]),
        _family("47.61Z", "Commerce de détail de livres", ["book_store"], ["newsstand"]),
        _family("47.71Z", "Commerce de détail d'habillement", ["clothing_store"], ["shoe_store", "boutique"]),
        _family("47.73Z", "Pharmacie", ["pharmacy", "drugstore"], ["health"]),
        _family("47.76Z", "Commerce de détail de fleurs, plantes, graines", ["florist"], ["garden_center"]),
        _family("96.02A", "Coiffure", ["hair_salon", "hair_care"], ["barber_shop", "beauty_salon"]),
        _family("96.02B", "Soins de beauté", ["beauty_salon", "spa"], ["nail_salon"]),
    )
}


def normalize_naf(code: str | None) -> str:
    """
    Ramène un code NAF à la forme "47.26Z".

    Accepte "4726Z", "47.26z", " 47.26 Z ". Retourne "" si illisible.
    """
    if not code:
        return ""
    compact = re.sub(r"[\s.]", "", str(code)).upper()
    m = re.fullmatch(r"(\d{2})(\d{2})([A-Z])", compact)
    if not m:
        return ""
    return f"{m.group(1)}.{m.group(2)}{m.group(3)}"


def family_for(code: str | None) -> ActivityFamily | None:
    """Famille d'activité d'un code NAF, ou None si le code est inconnu."""
    return ACTIVITY_FAMILIES.get(normalize_naf(code))


def matches_family(code: str | None, place_types: Iterable[str]) -> bool:
    """True si l'un des types du lieu est un type principal de la famille du code NAF."""
    family = family_for(code)
    if family is None:
        return False
    return any(t in family.primary_types for t in place_types)
