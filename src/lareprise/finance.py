"""Évolution des soldes intermédiaires de gestion (SIG) sur plusieurs exercices."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

import pandas as pd

INDICATORS = ("chiffre_affaires", "ebe", "resultat_net")
TREND_WEIGHTS = {"chiffre_affaires": 0.4, "ebe": 0.3, "resultat_net": 0.3}
TREND_THRESHOLD = 5.0


class Trend(str, Enum):
    CROISSANCE = "croissance"
    STABLE = "stable"
    DECLIN = "declin"


def growth_rate(old: float, new: float) -> float:
    """
    Taux d'évolution en %, arrondi à une décimale.

    >>> growth_rate(100, 150)
    50.0
    >>> growth_rate(0, 10)
    100.0
    >>> growth_rate(0, 0)
    0.0
    """
    if old == 0:
        return 100.0 if new > 0 else 0.0
    return round(float(new - old) / abs(old) * 100, 1)


def trend_score(ca_growth: float, ebe_growth: float, rn_growth: float) -> float:
    return (
        TREND_WEIGHTS["chiffre_affaires"] * ca_growth
        + TREND_WEIGHTS["ebe"] * ebe_growth
        + TREND_WEIGHTS["resultat_net"] * rn_growth
    )


def classify_trend(ca_growth: float, ebe_growth: float, rn_growth: float) -> Trend:
    """Score pondéré 0.4 CA + 0.3 EBE + 0.3 RN : > 5 croissance, < -5 déclin, sinon stable."""
    score = trend_score(ca_growth, ebe_growth, rn_growth)
    if score > TREND_THRESHOLD:
        return Trend.CROISSANCE
    if score < -TREND_THRESHOLD:
        return Trend.DECLIN
    return Trend.STABLE


@dataclass(frozen=True, eq=False)
class TrendAnalysis:
    """Évolution du premier au dernier exercice disponible."""

    first_year: str
    last_year: str
    growth: Mapping[str, float]
    score: float
    trend: Trend
    yearly: pd.DataFrame  # une ligne par exercice, colonnes valeur et *_growth

    @property
    def years(self) -> int:
        return len(self.yearly)


def analyze_trends(accounting: Mapping[str, Mapping[str, float]]) -> TrendAnalysis | None:
    """
    Analyse les tendances sur les exercices fournis.

    Returns:
        None si moins de deux exercices complets sont disponibles.
    """
    df = pd.DataFrame.from_dict({str(y): dict(v) for y, v in accounting.items()}, orient="index")
    if df.empty or not set(INDICATORS) <= set(df.columns):
        return None
    df = df[list(INDICATORS)].dropna().astype(float)
    df = df.sort_index()
    if len(df) < 2:
        return None

    for col in INDICATORS:
        previous = df[col].shift(1)
        df[f"{col}_growth"] = [
            None if pd.isna(old) else growth_rate(old, new) for old, new in zip(previous, df[col])
        ]

    first, last = df.iloc[0], df.iloc[-1]
    growth = {col: growth_rate(first[col], last[col]) for col in INDICATORS}
    score = trend_score(growth["chiffre_affaires"], growth["ebe"], growth["resultat_net"])
    return TrendAnalysis(
        first_year=str(df.index[0]),
        last_year=str(df.index[-1]),
        growth=growth,
        score=round(score, 1),
        trend=classify_trend(growth["chiffre_affaires"], growth["ebe"], growth["resultat_net"]),
        yearly=df,
    )
