"""Tests du moteur de décision."""

from datetime import datetime, timezone

import pytest

from lareprise.arbitration import ArbitrationOutcome
from lareprise.decision import decide_label, recommend
from lareprise.schema import Conflict, ConflictType, Dimension, DimensionScore, Label, Severity, SourceValue, Status
from lareprise.scoring import ScoreCard


def open_conflict(severity: Severity) -> Conflict:
    return Conflict(
        id=f"c_{severity.value.lower()}",
        type=ConflictType.GEOGRAPHIC_MISMATCH,
        severity=severity,
        fact="coordinates",
        sources={"geocoding": SourceValue((45.0, 3.0)), "cadastre": SourceValue((45.1, 3.0))},
        description="",
        detected_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.mark.parametrize(
    ("score", "unresolved", "label"),
    [
        (75.0, (), Label.GO),
        (74.9, (), Label.GO_WITH_RESERVES),
        (90.0, (Severity.CRITICAL,), Label.NO_GO),
        (40.0, (), Label.NO_GO),
        (50.0, (), Label.GO_WITH_RESERVES),
        (49.99, (), Label.NO_GO),
        (100.0, (Severity.HIGH,), Label.GO_WITH_RESERVES),
        (80.0, (Severity.LOW,), Label.GO_WITH_RESERVES),
        (60.0, (Severity.MEDIUM, Severity.CRITICAL), Label.NO_GO),
    ],
)
def test_decision_boundaries(score: float, unresolved: tuple[Severity, ...], label: Label) -> None:
    result, reasons = decide_label(score, [open_conflict(s) for s in unresolved])
    assert result is label
    assert reasons


def test_critical_override_reason_names_conflict() -> None:
    _, reasons = decide_label(95.0, [open_conflict(Severity.CRITICAL)])
    assert "c_critical" in reasons[0]


def test_thresholds_configurable() -> None:
    assert decide_label(70.0, [], go_threshold=70.0)[0] is Label.GO
    assert decide_label(55.0, [], no_go_threshold=60.0)[0] is Label.NO_GO


def card(decision: float, degraded: tuple[Dimension, ...] = ()) -> ScoreCard:
    dims = tuple(
        DimensionScore(d, 50.0 if d in degraded else 80.0, 0.25, degraded=d in degraded) for d in Dimension
    )
    return ScoreCard(dimensions=dims, composite=80.0, risk_items=(), risk=100.0, coherence=100.0, decision=decision)


def test_recommend_always_returns_annotated_recommendation() -> None:
    blocking = open_conflict(Severity.HIGH)
    outcome = ArbitrationOutcome(conflicts=(blocking,))
    rec = recommend(card(80.0, degraded=(Dimension.MARKET,)), outcome)

    assert rec.label is Label.GO_WITH_RESERVES
    assert rec.blocking_conflicts == (blocking,)
    assert rec.resolved_conflicts == ()
    assert rec.degraded_dimensions == (Dimension.MARKET,)
    assert rec.status is Status.PARTIAL
    assert any("MARKET" in r for r in rec.reasons)
    assert rec.dimension(Dimension.MARKET).degraded


def test_recommend_status() -> None:
    empty = ArbitrationOutcome(conflicts=())
    assert recommend(card(80.0), empty).status is Status.SUCCESS
    assert recommend(card(80.0), empty, has_input_issues=True).status is Status.PARTIAL
    assert recommend(card(50.0, degraded=tuple(Dimension)), empty).status is Status.ERROR
