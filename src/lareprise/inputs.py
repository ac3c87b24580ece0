"""Instantané des faits collectés en amont, lecture tolérante et dégradation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping, TypeVar

from loguru import logger

from lareprise.config import InputError, MalformedInputError, MissingInputError
from lareprise.schema import BusinessRecord, CandidatePOI, Coordinates, SourceValue, Status

T = TypeVar("T")

_TRUE = frozenset({"true", "1", "yes", "oui", "a", "actif", "active"})
_FALSE = frozenset({"false", "0", "no", "non", "f", "c", "ferme", "fermé", "closed", "inactive"})


class IssueKind(str, Enum):
    MISSING = "missing"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class InputIssue:
    kind: IssueKind
    field: str
    message: str


@dataclass(frozen=True)
class PlacesFacts:
    found: bool
    rating: float | None = None
    user_rating_count: int = 0
    price_level: int | None = None
    location: Coordinates | None = None


@dataclass(frozen=True)
class DemographicFacts:
    population: float
    score: float  # adéquation démographique 0-100
    trade_area_population: float | None = None
    csp_dominant: str | None = None  # high, medium, low

    @property
    def trade_area(self) -> float:
        return self.population if self.trade_area_population is None else self.trade_area_population


@dataclass(frozen=True)
class PhotoFacts:
    note_globale: float  # /10
    cost_high: float  # euros
    note_facade: float | None = None
    cost_low: float | None = None


# ---- lecture des champs -----------------------------------------------------


def _require(d: Mapping[str, Any], key: str, path: str) -> Any:
    value = d.get(key)
    if value is None or value == "":
        raise MissingInputError(f"{path}.{key}", "champ requis absent")
    return value


def _number(value: Any, path: str) -> float:
    if isinstance(value, bool):
        raise MalformedInputError(path, f"nombre attendu (got {value!r})")
    try:
        n = float(value)
    except (TypeError, ValueError) as e:
        raise MalformedInputError(path, f"nombre attendu (got {value!r})") from e
    if math.isnan(n) or math.isinf(n):
        raise MalformedInputError(path, f"nombre fini attendu (got {value!r})")
    return n


def _optional_number(d: Mapping[str, Any], key: str, path: str) -> float | None:
    value = d.get(key)
    if value is None or value == "":
        return None
    return _number(value, f"{path}.{key}")


def _in_range(n: float, lo: float, hi: float, path: str) -> float:
    if not lo <= n <= hi:
        raise MalformedInputError(path, f"valeur hors de [{lo}, {hi}] (got {n})")
    return n


def _flag(value: Any, path: str) -> bool | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise MalformedInputError(path, f"booléen attendu (got {value!r})")


def _mapping(value: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise MalformedInputError(path, f"objet attendu (got {type(value).__name__})")
    return value


def parse_coordinates(value: Any, path: str) -> Coordinates | None:
    """Lit {lat, lon} (ou {latitude, longitude}) ; None si absent."""
    if value is None:
        return None
    d = _mapping(value, path)
    lat = d.get("lat", d.get("latitude"))
    lon = d.get("lon", d.get("lng", d.get("longitude")))
    if lat is None or lon is None:
        raise MalformedInputError(path, "lat et lon requis")
    return Coordinates(
        lat=_in_range(_number(lat, f"{path}.lat"), -90.0, 90.0, f"{path}.lat"),
        lon=_in_range(_number(lon, f"{path}.lon"), -180.0, 180.0, f"{path}.lon"),
    )


def parse_timestamp(value: Any, path: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise MalformedInputError(path, f"date ISO 8601 attendue (got {value!r})") from e


def parse_business(d: Any) -> BusinessRecord:
    d = _mapping(d, "business")
    return BusinessRecord(
        name=str(_require(d, "name", "business")).strip(),
        registry_id=str(d.get("siret") or d.get("registry_id") or ""),
        address=str(d.get("address") or ""),
        postal_code=str(d.get("postal_code") or ""),
        coordinates=parse_coordinates(d.get("coordinates"), "business.coordinates"),
        activity_code=str(d.get("activity_code") or ""),
        is_active=_flag(d.get("is_active"), "business.is_active"),
    )


def parse_poi(d: Any, path: str) -> CandidatePOI:
    d = _mapping(d, path)
    types = d.get("types") or ()
    if isinstance(types, str):
        types = (types,)
    elif not isinstance(types, (list, tuple)):
        raise MalformedInputError(f"{path}.types", f"liste attendue (got {type(types).__name__})")
    rating = _optional_number(d, "rating", path)
    price = _optional_number(d, "price_level", path)
    return CandidatePOI(
        id=str(_require(d, "id", path)),
        name=str(d.get("name") or ""),
        coordinates=parse_coordinates(d.get("coordinates", d.get("location")), f"{path}.coordinates"),
        types=tuple(str(t) for t in types),
        rating=_in_range(rating, 0.0, 5.0, f"{path}.rating") if rating is not None else None,
        user_rating_count=int(_optional_number(d, "user_rating_count", path) or 0),
        price_level=int(_in_range(price, 0.0, 4.0, f"{path}.price_level")) if price is not None else None,
        business_status=str(d["business_status"]) if d.get("business_status") else None,
        address=str(d.get("address") or ""),
    )


def parse_places(d: Any) -> PlacesFacts:
    d = _mapping(d, "places")
    rating = _optional_number(d, "rating", "places")
    price = _optional_number(d, "price_level", "places")
    found = _flag(d.get("found"), "places.found")
    return PlacesFacts(
        found=(rating is not None) if found is None else found,
        rating=_in_range(rating, 0.0, 5.0, "places.rating") if rating is not None else None,
        user_rating_count=int(_optional_number(d, "user_rating_count", "places") or 0),
        price_level=int(_in_range(price, 0.0, 4.0, "places.price_level")) if price is not None else None,
        location=parse_coordinates(d.get("location"), "places.location"),
    )


def parse_demographics(d: Any) -> DemographicFacts:
    d = _mapping(d, "demographics")
    population = _number(_require(d, "population", "demographics"), "demographics.population")
    score = _number(_require(d, "score", "demographics"), "demographics.score")
    csp = d.get("csp_dominant")
    return DemographicFacts(
        population=_in_range(population, 0.0, math.inf, "demographics.population"),
        score=_in_range(score, 0.0, 100.0, "demographics.score"),
        trade_area_population=_optional_number(d, "trade_area_population", "demographics"),
        csp_dominant=str(csp).strip().lower() if csp else None,
    )


def parse_photo(d: Any) -> PhotoFacts:
    d = _mapping(d, "photo")
    note = _number(_require(d, "note_globale", "photo"), "photo.note_globale")
    cost_high = _number(_require(d, "cost_high", "photo"), "photo.cost_high")
    cost_low = _optional_number(d, "cost_low", "photo")
    facade = _optional_number(d, "note_facade", "photo")
    if cost_low is not None and cost_low > cost_high:
        raise MalformedInputError("photo.cost_low", f"fourchette inversée ({cost_low} > {cost_high})")
    return PhotoFacts(
        note_globale=_in_range(note, 0.0, 10.0, "photo.note_globale"),
        cost_high=_in_range(cost_high, 0.0, math.inf, "photo.cost_high"),
        note_facade=_in_range(facade, 0.0, 10.0, "photo.note_facade") if facade is not None else None,
        cost_low=cost_low,
    )


def parse_accounting_year(d: Any, path: str) -> dict[str, float]:
    d = _mapping(d, path)
    return {
        key: _number(_require(d, key, path), f"{path}.{key}")
        for key in ("chiffre_affaires", "ebe", "resultat_net")
    }


def parse_observation(d: Any, path: str) -> SourceValue:
    if not isinstance(d, Mapping):
        return SourceValue(value=d)
    if "value" not in d:
        raise MissingInputError(f"{path}.value", "champ requis absent")
    confidence = _optional_number(d, "confidence", path)
    return SourceValue(
        value=d["value"],
        confidence=_in_range(confidence, 0.0, 1.0, f"{path}.confidence") if confidence is not None else None,
        observed_at=parse_timestamp(d.get("observed_at"), f"{path}.observed_at"),
    )


# ---- instantané -------------------------------------------------------------


@dataclass(frozen=True)
class Snapshot:
    """
    Faits déjà collectés pour une demande, en lecture seule.

    Les sections absentes ou illisibles valent None ; chaque problème est
    consigné dans issues et la dimension concernée sera dégradée.
    """

    business: BusinessRecord
    coordinates: Coordinates | None = None
    candidates: tuple[CandidatePOI, ...] = ()
    nearby_poi: tuple[CandidatePOI, ...] = ()
    places: PlacesFacts | None = None
    demographics: DemographicFacts | None = None
    photo: PhotoFacts | None = None
    accounting: Mapping[str, Mapping[str, float]] = field(default_factory=dict)
    observations: Mapping[str, Mapping[str, SourceValue]] = field(default_factory=dict)
    coordinate_sources: Mapping[str, Coordinates] = field(default_factory=dict)
    issues: tuple[InputIssue, ...] = ()

    @property
    def reference_coordinates(self) -> Coordinates | None:
        """Position géocodée, à défaut celle du registre."""
        return self.coordinates if self.coordinates is not None else self.business.coordinates

    @property
    def status(self) -> Status:
        return Status.PARTIAL if self.issues else Status.SUCCESS

    def has_issue(self, prefix: str) -> bool:
        return any(i.field == prefix or i.field.startswith(prefix + ".") for i in self.issues)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> Snapshot:
        """
        Construit l'instantané sans jamais lever pour un problème de données.

        Chaque InputError est capturée au niveau de la section (ou de l'élément
        pour les listes) et convertie en InputIssue.
        """
        issues: list[InputIssue] = []

        def attempt(path: str, fn: Callable[[], T], *, required: bool = False) -> T | None:
            if required and d.get(path) is None:
                issues.append(InputIssue(IssueKind.MISSING, path, "section absente"))
                return None
            try:
                return fn()
            except MissingInputError as e:
                issues.append(InputIssue(IssueKind.MISSING, e.field_name, str(e)))
            except InputError as e:
                issues.append(InputIssue(IssueKind.MALFORMED, e.field_name, str(e)))
            return None

        business = attempt("business", lambda: parse_business(d.get("business")), required=True)
        coordinates = attempt("coordinates", lambda: parse_coordinates(d.get("coordinates"), "coordinates"))

        def poi_list(key: str) -> tuple[CandidatePOI, ...]:
            raw = d.get(key) or []
            if not isinstance(raw, list):
                issues.append(InputIssue(IssueKind.MALFORMED, key, f"{key}: liste attendue"))
                return ()
            parsed = [attempt(key, lambda i=i, item=item: parse_poi(item, f"{key}[{i}]")) for i, item in enumerate(raw)]
            return tuple(p for p in parsed if p is not None)

        places = attempt("places", lambda: parse_places(d.get("places")), required=True)
        demographics = attempt("demographics", lambda: parse_demographics(d.get("demographics")), required=True)
        photo = attempt("photo", lambda: parse_photo(d.get("photo")), required=True)

        accounting: dict[str, dict[str, float]] = {}
        raw_accounting = attempt("accounting", lambda: _mapping(d.get("accounting") or {}, "accounting")) or {}
        for year, values in raw_accounting.items():
            parsed_year = attempt("accounting", lambda y=year, v=values: parse_accounting_year(v, f"accounting.{y}"))
            if parsed_year is not None:
                accounting[str(year)] = parsed_year

        observations: dict[str, dict[str, SourceValue]] = {}
        raw_observations = attempt("observations", lambda: _mapping(d.get("observations") or {}, "observations")) or {}
        for fact, by_source in raw_observations.items():
            per_source = attempt("observations", lambda f=fact, s=by_source: _mapping(s, f"observations.{f}"))
            if per_source is None:
                continue
            values: dict[str, SourceValue] = {}
            for source, raw in per_source.items():
                sv = attempt(
                    "observations",
                    lambda f=fact, s=source, r=raw: parse_observation(r, f"observations.{f}.{s}"),
                )
                if sv is not None:
                    values[str(source)] = sv
            if values:
                observations[str(fact)] = values

        coordinate_sources: dict[str, Coordinates] = {}
        raw_sources = (
            attempt("coordinate_sources", lambda: _mapping(d.get("coordinate_sources") or {}, "coordinate_sources"))
            or {}
        )
        for source, raw in raw_sources.items():
            c = attempt(
                "coordinate_sources",
                lambda s=source, r=raw: parse_coordinates(r, f"coordinate_sources.{s}"),
            )
            if c is not None:
                coordinate_sources[str(source)] = c

        snapshot = cls(
            business=business if business is not None else BusinessRecord(name=""),
            coordinates=coordinates,
            candidates=poi_list("candidates"),
            nearby_poi=poi_list("nearby_poi"),
            places=places,
            demographics=demographics,
            photo=photo,
            accounting=accounting,
            observations=observations,
            coordinate_sources=coordinate_sources,
            issues=tuple(issues),
        )
        for issue in snapshot.issues:
            logger.warning("entrée {} ({}): {}", issue.field, issue.kind.value, issue.message)
        return snapshot
