"""Rapport tabulaire d'une recommandation."""

from __future__ import annotations

from datetime import datetime

import pandas as pd

from lareprise import __version__
from lareprise.config import EngineConfig
from lareprise.schema import Recommendation


def build_report_df(
    recommendation: Recommendation,
    config: EngineConfig | None = None,
) -> pd.DataFrame:
    """
    Aplatit une recommandation en DataFrame à deux colonnes (Key, Value).

    Contient : label et scores, détail par dimension, éléments de risque,
    conflits bloquants et résolus, raisons, paramètres, horodatage, version.
    """
    config = config or EngineConfig()
    r = recommendation

    rows: list[tuple[str, object]] = [
        ("Metric", "Value"),
        ("label", r.label.value),
        ("status", r.status.value),
        ("decision_score", round(r.decision_score, 1)),
        ("composite_score", round(r.composite_score, 1)),
        ("risk_score", round(r.risk_score, 1)),
        ("coherence_score", round(r.coherence_score, 1)),
        ("", ""),
        ("Dimensions", ""),
    ]
    for d in r.dimension_scores:
        flag = " (dégradée)" if d.degraded else ""
        rows.append((f"{d.dimension.value}", f"{d.raw_score:.1f} x {d.weight:g}{flag}"))
        for factor, value in d.breakdown.items():
            rows.append((f"{d.dimension.value}.{factor}", round(value, 1)))

    rows.extend([("", ""), ("Risks", "")])
    for i, item in enumerate(r.risk_items):
        label = f"{item.category.value} {item.severity.value} -{item.point_deduction}"
        rows.append((f"risk_{i}", f"{label}: {item.description}"))

    rows.extend([("", ""), ("Conflicts", "")])
    rows.append(("nb_blocking", len(r.blocking_conflicts)))
    rows.append(("nb_resolved", len(r.resolved_conflicts)))
    for c in r.blocking_conflicts:
        rows.append((c.id, f"{c.type.value} {c.severity.value} non résolu: {c.description}"))
    for c in r.resolved_conflicts:
        res = c.resolution
        how = f"{res.strategy.value} ({res.confidence:.2f})" if res is not None else ""
        rows.append((c.id, f"{c.type.value} {c.severity.value} résolu par {how}"))

    rows.extend([("", ""), ("Reasons", "")])
    for i, reason in enumerate(r.reasons):
        rows.append((f"reason_{i}", reason))

    rows.extend(
        [
            ("", ""),
            ("Parameters", ""),
            ("confidence_threshold", config.confidence_threshold),
            ("ambiguity_margin", config.ambiguity_margin),
            ("search_radius_m", config.search_radius_m),
            ("go_threshold", config.go_threshold),
            ("no_go_threshold", config.no_go_threshold),
            ("", ""),
            ("timestamp", datetime.now().isoformat()),
            ("version", __version__),
        ]
    )

    return pd.DataFrame(rows, columns=["Key", "Value"])


def print_report_console(recommendation: Recommendation) -> None:
    """Affiche un résumé de la recommandation en console."""
    r = recommendation
    degraded = ", ".join(d.value for d in r.degraded_dimensions) or "aucune"

    print("\n=== LaReprise Report ===")
    print(f"  Décision:         {r.label.value} ({r.status.value})")
    print(f"  Score décision:   {r.decision_score:.1f}")
    print(f"  Score composite:  {r.composite_score:.1f}")
    print(f"  Score risque:     {r.risk_score:.1f}")
    print(f"  Cohérence:        {r.coherence_score:.1f}")
    print(f"  Conflits ouverts: {len(r.blocking_conflicts)}")
    print(f"  Conflits résolus: {len(r.resolved_conflicts)}")
    print(f"  Dégradées:        {degraded}")
    print(f"  Version:          {__version__}")
    print(f"  Timestamp:        {datetime.now().isoformat()}")
    print("========================\n")
