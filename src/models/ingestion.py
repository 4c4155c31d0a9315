"""Ingestion adapter: untyped upstream JSON -> typed engine input.

The generator's output is loosely shaped. Lists may arrive as a single
object, a mapping of id -> entry, or a bare string; confidence impacts may
be numbers, numeric strings or {"confidence_impact": x} objects. Everything
is coerced here, once, so the scoring core only ever sees typed models.
Entries that cannot be coerced are dropped with a warning.
"""
from __future__ import annotations

import math
import re
from typing import Annotated, Any, Literal, Mapping, Optional, Union

import structlog
from pydantic import BaseModel, Field, PrivateAttr, TypeAdapter, ValidationError

from models.traceability import (
    DEFAULT_CONFIDENCE_IMPACT,
    Assumption,
    Feature,
    NonFunctionalRequirement,
)

logger = structlog.get_logger(__name__)

MAX_INPUT_CHARS = 50000

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

# Keys that mark a mapping as a single entry rather than an id -> entry map
_ENTRY_KEYS = {"name", "description", "assumption", "reason", "category", "confidence_impact"}

# Written by the engine; never trusted from upstream
_ENGINE_OWNED_FIELDS = {"trace_score", "trace_status", "similarity_source"}


class NumericImpact(BaseModel):
    kind: Literal["numeric"] = "numeric"
    value: float


class ObjectImpact(BaseModel):
    kind: Literal["object"] = "object"
    confidence_impact: float


ConfidenceImpact = Annotated[Union[NumericImpact, ObjectImpact], Field(discriminator="kind")]
_impact_adapter = TypeAdapter(ConfidenceImpact)


class EngineInput(BaseModel):
    """Typed request handed to TraceabilityEngine.evaluate."""
    features: list[Feature] = Field(default_factory=list)
    assumptions: list[Assumption] = Field(default_factory=list)
    non_functional_requirements: list[NonFunctionalRequirement] = Field(default_factory=list)
    user_input_text: str = ""
    input_clarity: Optional[float] = None
    logical_coherence: Optional[float] = None

    # Raw upstream feature entries, aligned with features, for write-back
    _source_items: list[Any] = PrivateAttr(default_factory=list)

    @property
    def source_items(self) -> list[Any]:
        return self._source_items


def _finite(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def tag_impact(raw: Any) -> Optional[ConfidenceImpact]:
    """Classify a raw confidence_impact value into the tagged union."""
    if isinstance(raw, Mapping):
        number = _finite(raw.get("confidence_impact"))
        if number is None:
            return None
        return _impact_adapter.validate_python({"kind": "object", "confidence_impact": number})
    number = _finite(raw)
    if number is None:
        return None
    return _impact_adapter.validate_python({"kind": "numeric", "value": number})


def resolve_impact(raw: Any) -> float:
    """Resolve any impact shape to a signed float; unusable values become -2."""
    impact = tag_impact(raw)
    if impact is None:
        return DEFAULT_CONFIDENCE_IMPACT
    if isinstance(impact, NumericImpact):
        return impact.value
    return impact.confidence_impact


def coerce_list(value: Any) -> list[Any]:
    """Normalize list-ish upstream values into a plain list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, Mapping):
        if _ENTRY_KEYS & set(value.keys()):
            return [value]
        return list(value.values())
    return [value]


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def parse_feature(item: Any) -> Optional[Feature]:
    """Coerce one upstream feature entry. A bare string becomes the feature name."""
    if isinstance(item, str):
        text = item.strip()
        return Feature(name=text) if text else None

    if not isinstance(item, Mapping):
        logger.warning("ingestion_feature_dropped", shape=type(item).__name__)
        return None

    name = _as_text(item.get("name") or item.get("title"))
    description = _as_text(item.get("description"))
    if not name and not description:
        logger.warning("ingestion_feature_dropped", reason="no name or description")
        return None

    extras = {
        k: v for k, v in item.items()
        if isinstance(k, str)
        and k not in _ENGINE_OWNED_FIELDS
        and k not in {"name", "title", "description", "trace_to_input", "is_speculative"}
    }
    try:
        return Feature(
            name=name,
            description=description,
            trace_to_input=[_as_text(p) for p in coerce_list(item.get("trace_to_input")) if _as_text(p)],
            is_speculative=_as_bool(item.get("is_speculative")),
            **extras,
        )
    except ValidationError as e:
        logger.warning("ingestion_feature_dropped", reason="validation", error=str(e))
        return None


def parse_assumption(item: Any) -> Optional[Assumption]:
    """Coerce one assumption entry. Bare numbers are treated as impacts."""
    if isinstance(item, (int, float)) and not isinstance(item, bool):
        return Assumption(confidence_impact=resolve_impact(item))

    if isinstance(item, str):
        text = item.strip()
        return Assumption(assumption=text) if text else None

    if not isinstance(item, Mapping):
        logger.warning("ingestion_assumption_dropped", shape=type(item).__name__)
        return None

    impact = resolve_impact(item.get("confidence_impact"))

    extras = {
        k: v for k, v in item.items()
        if isinstance(k, str) and k not in {"assumption", "reason", "confidence_impact"}
    }
    return Assumption(
        assumption=_as_text(item.get("assumption") or item.get("text")),
        reason=_as_text(item.get("reason")),
        confidence_impact=impact,
        **extras,
    )


def parse_nfr(item: Any) -> Optional[NonFunctionalRequirement]:
    if isinstance(item, str):
        return NonFunctionalRequirement(category=item.strip())

    if not isinstance(item, Mapping):
        logger.warning("ingestion_nfr_dropped", shape=type(item).__name__)
        return None

    category = _as_text(item.get("category") or item.get("type") or item.get("name"))
    extras = {k: v for k, v in item.items() if isinstance(k, str) and k != "category"}
    return NonFunctionalRequirement(category=category, **extras)


def clean_user_input(text: Any, max_chars: int = MAX_INPUT_CHARS) -> str:
    """Strip control characters and cap length of the user's original input."""
    cleaned = _CONTROL_CHARS.sub("", _as_text(text))
    if len(cleaned) > max_chars:
        logger.warning("ingestion_user_input_truncated", length=len(cleaned), max_chars=max_chars)
        cleaned = cleaned[:max_chars]
    return cleaned


def _upstream_factor(payload: Mapping[str, Any], key: str) -> Optional[float]:
    """Read a 0-100 factor from a top-level key or an upstream confidence_breakdown."""
    direct = payload.get(key)
    if isinstance(direct, Mapping):
        direct = direct.get("score")
    number = _finite(direct)
    if number is not None:
        return number

    breakdown = payload.get("confidence_breakdown")
    if isinstance(breakdown, Mapping):
        entry = breakdown.get(key)
        if isinstance(entry, Mapping):
            entry = entry.get("score")
        return _finite(entry)
    return None


def parse_engine_input(payload: Mapping[str, Any], max_input_chars: int = MAX_INPUT_CHARS) -> EngineInput:
    """Build an EngineInput from a raw upstream payload."""
    features: list[Feature] = []
    source_items: list[Any] = []
    for item in coerce_list(payload.get("core_functional_components")):
        feature = parse_feature(item)
        if feature is not None:
            features.append(feature)
            source_items.append(item)

    assumptions = [a for a in (parse_assumption(i) for i in coerce_list(payload.get("assumptions_made"))) if a]
    nfrs = [n for n in (parse_nfr(i) for i in coerce_list(payload.get("non_functional_requirements"))) if n]

    user_input = payload.get("userInputText")
    if user_input is None:
        user_input = payload.get("user_input_text", "")

    engine_input = EngineInput(
        features=features,
        assumptions=assumptions,
        non_functional_requirements=nfrs,
        user_input_text=clean_user_input(user_input, max_input_chars),
        input_clarity=_upstream_factor(payload, "input_clarity"),
        logical_coherence=_upstream_factor(payload, "logical_coherence"),
    )
    engine_input._source_items = source_items
    return engine_input
