"""
Data models for the board relationship network.

Input records (NodeRecord, EdgeRecord) are pydantic models validated at the
boundary with the data layer. Everything built from them is an immutable
dataclass that the analytics modules only read.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

ATTRIBUTE_SCHEMA_VERSION = 1

SCALAR_TYPES = (str, int, float, bool)


class NodeKind(str, Enum):
    MEMBER       = "member"
    ORGANIZATION = "organization"


class RelationshipType(str, Enum):
    SHARED_BOARD = "shared_board"
    FINANCIAL    = "financial"
    FAMILY       = "family"
    COMPETITIVE  = "competitive"
    ADVISORY     = "advisory"
    OTHER        = "other"


# Directional types keep (source, target) as given; the rest are stored sorted.
DIRECTIONAL_TYPES = frozenset({RelationshipType.FINANCIAL, RelationshipType.ADVISORY})


class ConflictCategory(str, Enum):
    FINANCIAL   = "financial"
    GOVERNANCE  = "governance"
    COMPETITIVE = "competitive"
    PERSONAL    = "personal"
    REGULATORY  = "regulatory"


class Severity(str, Enum):
    LOW      = "low"
    MEDIUM   = "medium"
    HIGH     = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


SEVERITY_RANK = {
    Severity.LOW:      0,
    Severity.MEDIUM:   1,
    Severity.HIGH:     2,
    Severity.CRITICAL: 3,
}


# ── Input records ─────────────────────────────────────────────────────────────

class NodeAttributes(BaseModel):
    """
    Display/clustering attributes of a node (schema version 1).

    Known keys are typed; any other key must hold a scalar value.
    """
    model_config = ConfigDict(extra="allow", frozen=True)

    name:     Optional[str]   = None
    role:     Optional[str]   = None
    industry: Optional[str]   = None
    tenure:   Optional[float] = None

    @model_validator(mode="after")
    def _extras_are_scalar(self) -> "NodeAttributes":
        for key, value in (self.model_extra or {}).items():
            if value is not None and not isinstance(value, SCALAR_TYPES):
                raise ValueError(f"attribute {key!r} must be a scalar, got {type(value).__name__}")
        return self

    def get(self, key: str, default=None):
        value = self.as_dict().get(key)
        return default if value is None else value

    def as_dict(self) -> dict:
        return self.model_dump(exclude_none=True)


class NodeRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id:         str = Field(min_length=1)
    kind:       NodeKind
    attributes: NodeAttributes = Field(default_factory=NodeAttributes)

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class EdgeRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source_id: str = Field(
        min_length=1, validation_alias=AliasChoices("source_id", "sourceId", "source"),
    )
    target_id: str = Field(
        min_length=1, validation_alias=AliasChoices("target_id", "targetId", "target"),
    )
    relationship_type: RelationshipType = Field(
        validation_alias=AliasChoices("relationship_type", "relationshipType", "type"),
    )
    strength:   float = Field(ge=0.0, le=1.0)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator("source_id", "target_id", mode="before")
    @classmethod
    def _id_to_str(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


# ── Graph values ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Node:
    id: str
    kind: NodeKind
    attributes: NodeAttributes = field(default_factory=NodeAttributes)

    @property
    def is_organization(self) -> bool:
        return self.kind is NodeKind.ORGANIZATION


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    relationship_type: RelationshipType
    strength: float
    confidence: float = 1.0

    @property
    def directional(self) -> bool:
        return self.relationship_type in DIRECTIONAL_TYPES

    @property
    def key(self) -> tuple[str, str, RelationshipType]:
        return (self.source, self.target, self.relationship_type)

    @property
    def id(self) -> str:
        arrow = "->" if self.directional else "--"
        return f"{self.source}{arrow}{self.target}:{self.relationship_type.value}"

    def other(self, node_id: str) -> str:
        return self.target if node_id == self.source else self.source


# ── Results ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LayoutResult:
    positions: dict[str, tuple[float, ...]]
    dimensions: int
    iterations_run: int
    converged: bool = False
    timed_out: bool = False

    def as_dict(self) -> dict:
        return {
            "positions":      {k: list(v) for k, v in self.positions.items()},
            "dimensions":     self.dimensions,
            "iterations_run": self.iterations_run,
            "converged":      self.converged,
            "timed_out":      self.timed_out,
        }


@dataclass(frozen=True)
class CentralityResult:
    degree: float = 0.0
    betweenness: float = 0.0
    closeness: float = 0.0
    eigenvector: float = 0.0
    pagerank: float = 0.0

    def as_dict(self) -> dict:
        return {
            "degree":      round(self.degree, 6),
            "betweenness": round(self.betweenness, 6),
            "closeness":   round(self.closeness, 6),
            "eigenvector": round(self.eigenvector, 6),
            "pagerank":    round(self.pagerank, 6),
        }


@dataclass(frozen=True)
class ConflictFinding:
    subject_node_id: str
    related_node_ids: tuple[str, ...]
    category: ConflictCategory
    severity: Severity
    evidence_edge_ids: tuple[str, ...]
    rule: str = ""
    score: float = 0.0
    description: str = ""

    @property
    def dedup_key(self) -> tuple:
        return (self.subject_node_id, tuple(sorted(self.related_node_ids)), self.category)

    def as_dict(self) -> dict:
        return {
            "subject_node_id":   self.subject_node_id,
            "related_node_ids":  list(self.related_node_ids),
            "category":          self.category.value,
            "severity":          self.severity.value,
            "evidence_edge_ids": list(self.evidence_edge_ids),
            "rule":              self.rule,
            "score":             round(self.score, 4),
            "description":       self.description,
        }


@dataclass(frozen=True)
class Cluster:
    id: str
    members: tuple[str, ...]
    centroid: tuple[float, ...]
    radius: float = 0.0
    influence_level: Optional[Severity] = None

    def as_dict(self) -> dict:
        return {
            "id":              self.id,
            "members":         list(self.members),
            "size":            len(self.members),
            "centroid":        [round(c, 6) for c in self.centroid],
            "radius":          round(self.radius, 6),
            "influence_level": self.influence_level.value if self.influence_level else None,
        }


@dataclass(frozen=True)
class ClusterAssignment:
    strategy: str
    assignments: dict[str, str]
    clusters: dict[str, Cluster]
    separation: Optional[float] = None

    def as_dict(self) -> dict:
        return {
            "strategy":    self.strategy,
            "assignments": dict(self.assignments),
            "clusters":    [c.as_dict() for c in self.clusters.values()],
            "separation":  None if self.separation is None else round(self.separation, 4),
        }
