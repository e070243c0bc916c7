"""
Analysis configuration.

Every option has a documented default and can be overridden on its own,
either from a mapping (e.g. a request payload) or a JSON file of overrides.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from boardnet.errors import ConfigError

ALL_CONFLICT_RULES = (
    "direct_interlock",
    "indirect_path",
    "financial_overlap",
    "family_tie",
    "competitor_interlock",
)

CLUSTERING_STRATEGIES = ("attribute", "structural", "hybrid", "community")

LAYOUT_MODES = ("force_directed", "circular", "hierarchical", "cluster")


class AnalysisConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    # ── Layout ───────────────────────────────────────────────────────────────
    layout_mode:         Literal["force_directed", "circular", "hierarchical", "cluster"] = "force_directed"
    dimensions:          Literal[2, 3] = 3
    iterations:          int   = Field(500, ge=0, le=100_000)
    attraction:          float = Field(1.0, ge=0.0)
    repulsion:           float = Field(1.0, ge=0.0)
    initial_temperature: float = Field(0.1, gt=0.0)
    damping_schedule:    Literal["linear", "exponential"] = "linear"
    max_displacement:    float = Field(1.0, gt=0.0)
    initial_spread:      float = Field(1.0, gt=0.0)
    convergence_epsilon: Optional[float] = Field(None, gt=0.0)
    confidence_weighted_layout: bool = False
    seed:                int = 42

    # ── Centrality ───────────────────────────────────────────────────────────
    max_iterations:   int   = Field(100, ge=1)
    tolerance:        float = Field(1e-6, gt=0.0)
    pagerank_damping: float = Field(0.85, gt=0.0, lt=1.0)

    # ── Conflict detection ───────────────────────────────────────────────────
    max_conflict_path_degree: int   = Field(3, ge=2, le=6)
    # edges must be strictly above this confidence to count as evidence
    min_conflict_confidence:  float = Field(0.5, ge=0.0, le=1.0)
    conflict_rules: tuple[str, ...] = ALL_CONFLICT_RULES

    # ── Clustering ───────────────────────────────────────────────────────────
    clustering_strategy: Literal["attribute", "structural", "hybrid", "community"] = "structural"
    cluster_attribute:   str   = "industry"
    cluster_strength_threshold: float = Field(0.5, ge=0.0, le=1.0)
    cluster_padding:     float = Field(0.5, ge=0.0)

    # ── Pipeline ─────────────────────────────────────────────────────────────
    timeout_seconds:   Optional[float] = Field(None, gt=0.0)
    cache_ttl_seconds: float = Field(300.0, gt=0.0)

    @field_validator("conflict_rules")
    @classmethod
    def _known_rules(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        unknown = [r for r in v if r not in ALL_CONFLICT_RULES]
        if unknown:
            raise ValueError(f"unknown conflict rules: {', '.join(unknown)}")
        return tuple(dict.fromkeys(v))

    def with_overrides(self, **overrides: Any) -> "AnalysisConfig":
        return resolve_config({**self.model_dump(), **overrides})


def resolve_config(value: AnalysisConfig | Mapping[str, Any] | None = None) -> AnalysisConfig:
    """Build a validated config from None, a mapping of overrides, or a config."""
    if value is None:
        return AnalysisConfig()
    if isinstance(value, AnalysisConfig):
        return value
    try:
        return AnalysisConfig.model_validate(dict(value))
    except ValidationError as ex:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in ex.errors()
        ]
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        raise ConfigError(f"Invalid analysis config: {summary}", errors) from ex


def load_config(path: str | Path) -> AnalysisConfig:
    """Read a JSON file of config overrides."""
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")
    try:
        data = json.loads(p.read_text())
    except json.JSONDecodeError as ex:
        raise ConfigError(f"Config file {p} is not valid JSON: {ex}") from ex
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {p} must contain a JSON object")
    return resolve_config(data)
