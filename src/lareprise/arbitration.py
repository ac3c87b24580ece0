"""Arbitrage déterministe des conflits."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Callable, Mapping, Sequence

from loguru import logger

from lareprise.config import EngineConfig
from lareprise.schema import ArbitrationResolution, Conflict, Status, Strategy

MOST_RECENT_DEFAULT_CONFIDENCE = 0.5


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _vote_key(value: object) -> str:
    return str(value).strip().lower()


@dataclass(frozen=True)
class ArbitrationOutcome:
    """Conflits après arbitrage, séparés en résolus et non résolus."""

    conflicts: tuple[Conflict, ...]
    strategies: Mapping[Strategy, int] = field(default_factory=dict)

    @property
    def resolved(self) -> tuple[Conflict, ...]:
        return tuple(c for c in self.conflicts if c.resolved)

    @property
    def unresolved(self) -> tuple[Conflict, ...]:
        return tuple(c for c in self.conflicts if not c.resolved)

    @property
    def status(self) -> Status:
        """PARTIAL dès qu'un conflit reste sans stratégie applicable."""
        return Status.PARTIAL if self.unresolved else Status.SUCCESS


class Arbitrator:
    """
    Résout les conflits en essayant les stratégies dans un ordre fixe.

    1. source_trust : fiabilité configurée par type de conflit ; s'applique si
       toutes les sources sont classées et que la meilleure est unique.
    2. confidence_weighted : valeurs toutes numériques, confiances toutes > 0.
    3. majority_vote : au moins trois sources, pluralité unique.
    4. most_recent : toutes les sources datées, valeur la plus récente unique.

    Aucun conflit résolu n'est modifié ; un conflit sans stratégie applicable
    reste non résolu.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self._strategies: tuple[tuple[Strategy, Callable[[Conflict], ArbitrationResolution | None]], ...] = (
            (Strategy.SOURCE_TRUST, self._source_trust),
            (Strategy.CONFIDENCE_WEIGHTED, self._confidence_weighted),
            (Strategy.MAJORITY_VOTE, self._majority_vote),
            (Strategy.MOST_RECENT, self._most_recent),
        )

    def resolve(self, conflict: Conflict) -> Conflict:
        """Retourne une copie résolue du conflit, ou le conflit inchangé."""
        if conflict.resolved:
            return conflict
        for _, strategy in self._strategies:
            resolution = strategy(conflict)
            if resolution is not None:
                return replace(conflict, resolved=True, resolution=resolution)
        return conflict

    def resolve_all(self, conflicts: Sequence[Conflict]) -> ArbitrationOutcome:
        out = tuple(self.resolve(c) for c in conflicts)
        strategies = Counter(c.resolution.strategy for c in out if c.resolution is not None)
        logger.debug(
            "arbitrage: {}/{} résolus, stratégies={}",
            sum(1 for c in out if c.resolved),
            len(out),
            {s.value: n for s, n in strategies.items()},
        )
        return ArbitrationOutcome(conflicts=out, strategies=dict(strategies))

    def _source_trust(self, conflict: Conflict) -> ArbitrationResolution | None:
        ranking = self.config.reliability_for(conflict.type)
        if not conflict.sources or any(s not in ranking for s in conflict.sources):
            return None
        ordered = sorted(conflict.sources, key=lambda s: ranking[s], reverse=True)
        if len(ordered) > 1 and ranking[ordered[0]] == ranking[ordered[1]]:
            return None
        best = ordered[0]
        return ArbitrationResolution(
            conflict_id=conflict.id,
            resolved_value=conflict.sources[best].value,
            strategy=Strategy.SOURCE_TRUST,
            confidence=ranking[best] / 100,
            chosen_source=best,
        )

    def _confidence_weighted(self, conflict: Conflict) -> ArbitrationResolution | None:
        values = list(conflict.sources.values())
        if not values or not all(_is_number(v.value) and v.confidence and v.confidence > 0 for v in values):
            return None
        total = sum(v.confidence for v in values)
        return ArbitrationResolution(
            conflict_id=conflict.id,
            resolved_value=sum(v.value * v.confidence for v in values) / total,
            strategy=Strategy.CONFIDENCE_WEIGHTED,
            confidence=total / len(values),
        )

    def _majority_vote(self, conflict: Conflict) -> ArbitrationResolution | None:
        values = list(conflict.sources.values())
        if len(values) < 3 or all(_is_number(v.value) for v in values):
            return None
        votes = Counter(_vote_key(v.value) for v in values)
        ranked = votes.most_common(2)
        if len(ranked) > 1 and ranked[0][1] == ranked[1][1]:
            return None
        winner, count = ranked[0]
        value = next(v.value for v in values if _vote_key(v.value) == winner)
        return ArbitrationResolution(
            conflict_id=conflict.id,
            resolved_value=value,
            strategy=Strategy.MAJORITY_VOTE,
            confidence=count / len(values),
        )

    def _most_recent(self, conflict: Conflict) -> ArbitrationResolution | None:
        dated = list(conflict.sources.items())
        if not dated or any(v.observed_at is None for _, v in dated):
            return None
        aware = {v.observed_at.tzinfo is not None for _, v in dated}
        if len(aware) > 1:
            return None
        ordered = sorted(dated, key=lambda kv: kv[1].observed_at, reverse=True)
        if len(ordered) > 1 and ordered[0][1].observed_at == ordered[1][1].observed_at:
            return None
        name, newest = ordered[0]
        return ArbitrationResolution(
            conflict_id=conflict.id,
            resolved_value=newest.value,
            strategy=Strategy.MOST_RECENT,
            confidence=newest.confidence if newest.confidence is not None else MOST_RECENT_DEFAULT_CONFIDENCE,
            chosen_source=name,
        )
