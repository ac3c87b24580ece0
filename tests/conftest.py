"""Fixtures partagées : un instantané complet et sain autour d'un tabac-presse."""

from __future__ import annotations

from typing import Any

import pytest

ORIGIN_LAT = 45.7772
ORIGIN_LON = 3.0870
# Mètres par degré de latitude pour le rayon terrestre utilisé par geo.haversine_m
M_PER_DEG_LAT = 111_194.93


def north_of(meters: float) -> dict[str, float]:
    """Coordonnées situées à `meters` mètres au nord de l'origine."""
    return {"lat": ORIGIN_LAT + meters / M_PER_DEG_LAT, "lon": ORIGIN_LON}


@pytest.fixture
def snapshot_dict() -> dict[str, Any]:
    return {
        "business": {
            "name": "Le Drugstore du Barriot",
            "siret": "12345678900012",
            "address": "12 rue du Barriot, 63000 Clermont-Ferrand",
            "postal_code": "63000",
            "activity_code": "47.26Z",
            "is_active": True,
            "coordinates": north_of(0),
        },
        "coordinates": north_of(0),
        "candidates": [
            {
                "id": "p1",
                "name": "Drugstore",
                "coordinates": north_of(30),
                "types": ["tobacco_shop", "store"],
                "business_status": "OPERATIONAL",
                "address": "12 rue du Barriot",
            }
        ],
        "nearby_poi": [
            {"id": "n1", "name": "Boulangerie Paul", "coordinates": north_of(100), "types": ["bakery"]},
            {"id": "n2", "name": "Pharmacie du Centre", "coordinates": north_of(150), "types": ["pharmacy"]},
            {"id": "n3", "name": "Le Bistrot", "coordinates": north_of(250), "types": ["restaurant"]},
            {"id": "n4", "name": "Carrefour", "coordinates": north_of(1000), "types": ["supermarket"]},
        ],
        "places": {
            "found": True,
            "rating": 4.5,
            "user_rating_count": 120,
            "price_level": 2,
            "location": north_of(20),
        },
        "demographics": {
            "population": 4000,
            "trade_area_population": 6000,
            "csp_dominant": "medium",
            "score": 80,
        },
        "photo": {"note_globale": 8, "note_facade": 7, "cost_low": 5000, "cost_high": 9000},
        "accounting": {
            "2021": {"chiffre_affaires": 200000, "ebe": 30000, "resultat_net": 15000},
            "2023": {"chiffre_affaires": 240000, "ebe": 36000, "resultat_net": 18000},
        },
    }
