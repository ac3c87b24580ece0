"""Tests du score multidimensionnel."""

from datetime import datetime, timezone

import pytest

from lareprise.config import DEFAULT_DIMENSION_WEIGHTS
from lareprise.finance import analyze_trends
from lareprise.inputs import DemographicFacts, PhotoFacts, PlacesFacts, Snapshot
from lareprise.matching.schema import MatchResult, MatchStatus
from lareprise.poi import PoiSummary
from lareprise.schema import (
    ArbitrationResolution,
    BusinessRecord,
    Conflict,
    ConflictType,
    Dimension,
    RiskItem,
    Severity,
    SourceValue,
    Strategy,
)
from lareprise.scoring import (
    coherence_score,
    composite_score,
    data_coherence,
    decision_score,
    potential_points,
    risk_items,
    risk_score,
    score,
    score_financial,
    score_location,
    score_market,
    score_operational,
)

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_conflict(severity: Severity, resolved: bool = False, fact: str = "population_vs_poi") -> Conflict:
    resolution = (
        ArbitrationResolution("c", 1, Strategy.SOURCE_TRUST, 0.9, "demographic") if resolved else None
    )
    return Conflict(
        id="c",
        type=ConflictType.POPULATION_POI_MISMATCH,
        severity=severity,
        fact=fact,
        sources={"demographic": SourceValue(1), "competitor": SourceValue(2)},
        description="",
        detected_at=T0,
        resolved=resolved,
        resolution=resolution,
    )


def matched(best_score: int) -> MatchResult:
    return MatchResult(
        candidates=(),
        best_score=best_score,
        status=MatchStatus.MATCHED,
        is_confident=True,
        is_ambiguous=False,
    )


@pytest.fixture
def healthy() -> Snapshot:
    return Snapshot(
        business=BusinessRecord(name="Tabac"),
        places=PlacesFacts(found=True, rating=4.5, user_rating_count=120, price_level=2),
        demographics=DemographicFacts(population=4000, score=80, trade_area_population=6000),
        photo=PhotoFacts(note_globale=8, cost_high=9000),
    )


def test_weights_sum_to_one() -> None:
    assert sum(DEFAULT_DIMENSION_WEIGHTS.values()) == pytest.approx(1.0)
    assert DEFAULT_DIMENSION_WEIGHTS[Dimension.LOCATION] == 0.30


def test_location_breakdown(healthy: Snapshot) -> None:
    d = score_location(healthy, matched(90), 0.30)
    assert d.breakdown == pytest.approx({"demographic_fit": 32.0, "trade_area": 30.0, "geographic_match": 27.0})
    assert d.raw_score == pytest.approx(89.0)
    assert d.weighted == pytest.approx(26.7)
    assert not d.degraded


def test_location_no_match_gives_zero_match_points(healthy: Snapshot) -> None:
    no_match = MatchResult((), 30, MatchStatus.NO_MATCH, False, False)
    assert score_location(healthy, no_match, 0.30).breakdown["geographic_match"] == 0.0


def test_market_and_operational(healthy: Snapshot) -> None:
    market = score_market(healthy, PoiSummary(), 0.25)
    assert market.raw_score == pytest.approx(36 + 20 + 40)
    operational = score_operational(healthy, 0.25)
    assert operational.raw_score == pytest.approx(48 + 40)


@pytest.mark.parametrize(
    ("demo", "cost", "points"),
    [(80, 20000, 40), (80, 40000, 32), (65, 50000, 28), (55, 70000, 20), (45, 200000, 12), (30, 1000, 4)],
)
def test_potential_points_grid(demo: float, cost: float, points: int) -> None:
    assert potential_points(demo, cost) == points


def test_financial_with_trend(healthy: Snapshot) -> None:
    trends = analyze_trends(
        {
            "2021": {"chiffre_affaires": 100, "ebe": 10, "resultat_net": 5},
            "2023": {"chiffre_affaires": 130, "ebe": 13, "resultat_net": 7},
        }
    )
    d = score_financial(healthy, [], trends, 0.20)
    assert d.breakdown == pytest.approx({"data_coherence": 40.0, "potential_ratio": 40.0, "accounting_trend": 20.0})
    assert d.raw_score == pytest.approx(100.0)


def test_financial_without_accounts_is_neutral_trend(healthy: Snapshot) -> None:
    d = score_financial(healthy, [], None, 0.20)
    assert d.breakdown["accounting_trend"] == 10.0


def test_data_coherence_counts_unresolved_facts(healthy: Snapshot) -> None:
    assert data_coherence(healthy, []) == 1.0
    open_conflict = make_conflict(Severity.HIGH)
    assert data_coherence(healthy, [open_conflict]) == pytest.approx(5 / 6)
    assert data_coherence(healthy, [make_conflict(Severity.HIGH, resolved=True)]) == 1.0


@pytest.mark.parametrize("missing", ["demographics", "places", "photo"])
def test_missing_section_degrades_to_neutral(healthy: Snapshot, missing: str) -> None:
    snap = Snapshot(
        business=healthy.business,
        places=None if missing == "places" else healthy.places,
        demographics=None if missing == "demographics" else healthy.demographics,
        photo=None if missing == "photo" else healthy.photo,
    )
    card = score(snap, matched(90), PoiSummary(), [])
    expected = {
        "demographics": {Dimension.LOCATION, Dimension.FINANCIAL},
        "places": {Dimension.MARKET},
        "photo": {Dimension.OPERATIONAL, Dimension.FINANCIAL},
    }[missing]
    assert set(card.degraded) == expected
    for d in card.dimensions:
        if d.dimension in expected:
            assert d.raw_score == 50.0
            assert d.issues


def test_places_not_found_degrades_market(healthy: Snapshot) -> None:
    snap = Snapshot(business=healthy.business, places=PlacesFacts(found=False), demographics=healthy.demographics)
    assert score_market(snap, PoiSummary(), 0.25).degraded


def test_composite_is_weighted_sum(healthy: Snapshot) -> None:
    card = score(healthy, matched(90), PoiSummary(), [])
    assert card.composite == pytest.approx(0.30 * 89 + 0.25 * 96 + 0.25 * 88 + 0.20 * 90)
    assert card.composite == pytest.approx(composite_score(card.dimensions))


def test_risk_score_deductions_and_floor() -> None:
    assert risk_score([], []) == 100.0
    items = [RiskItem(Dimension.MARKET, Severity.HIGH), RiskItem(Dimension.OPERATIONAL, Severity.LOW)]
    conflicts = [make_conflict(Severity.MEDIUM), make_conflict(Severity.CRITICAL, resolved=True)]
    assert risk_score(conflicts, items) == 100 - 15 - 3 - 8 - 25
    assert risk_score([make_conflict(Severity.CRITICAL)] * 5, []) == 0.0


def test_coherence_score() -> None:
    assert coherence_score([]) == 100.0
    assert coherence_score([make_conflict(Severity.LOW), make_conflict(Severity.LOW, resolved=True)]) == 50.0


def test_decision_score_weights() -> None:
    assert decision_score(100, 100, 100) == pytest.approx(100.0)
    assert decision_score(80, 50, 0) == pytest.approx(55.0)


def test_risk_items_from_raw_facts() -> None:
    snap = Snapshot(
        business=BusinessRecord(name="Tabac"),
        places=PlacesFacts(found=True, rating=3.2, user_rating_count=3),
        demographics=DemographicFacts(population=600, score=20),
        photo=PhotoFacts(note_globale=2, cost_high=80000),
    )
    card = score(snap, None, PoiSummary(), [])
    found = {(i.category, i.severity) for i in card.risk_items}

    assert (Dimension.LOCATION, Severity.HIGH) in found  # localisation faible
    assert (Dimension.LOCATION, Severity.MEDIUM) in found  # zone < 1000 hab.
    assert (Dimension.MARKET, Severity.HIGH) in found  # note < 3.5
    assert (Dimension.OPERATIONAL, Severity.CRITICAL) in found  # travaux > 75k
    assert (Dimension.FINANCIAL, Severity.CRITICAL) in found  # potentiel global < 50
    assert card.risk == pytest.approx(max(0.0, 100 - sum(i.point_deduction for i in card.risk_items)))


def test_degraded_dimension_is_not_a_weak_dimension(healthy: Snapshot) -> None:
    snap = Snapshot(business=healthy.business, places=healthy.places, demographics=healthy.demographics)
    card = score(snap, matched(90), PoiSummary(), [])
    items = risk_items(snap, PoiSummary(), card.dimensions, card.composite)
    assert all(i.category is not Dimension.OPERATIONAL for i in items)


def test_scores_within_bounds(healthy: Snapshot) -> None:
    card = score(healthy, matched(100), PoiSummary(), [make_conflict(Severity.CRITICAL)] * 10)
    for value in (card.composite, card.risk, card.coherence, card.decision):
        assert 0.0 <= value <= 100.0
    assert all(0.0 <= d.raw_score <= 100.0 for d in card.dimensions)
