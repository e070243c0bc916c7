"""
Error taxonomy for the network engine.

Construction errors are fatal for one analysis run, timeouts are not:
a ComputationTimeout carries whatever its stage produced before the deadline.
"""
from __future__ import annotations

from enum import Enum
from typing import Any


class BoardnetError(Exception):
    """Base class for every error raised by boardnet."""


class GraphErrorKind(str, Enum):
    DANGLING_EDGE  = "dangling_edge"
    DUPLICATE_NODE = "duplicate_node"
    SELF_LOOP      = "self_loop"
    EMPTY_GRAPH    = "empty_graph"


class GraphError(BoardnetError):
    def __init__(self, kind: GraphErrorKind, message: str, record: Any = None):
        super().__init__(message)
        self.kind = kind
        self.record = record

    def to_dict(self) -> dict:
        return {"type": "graph_error", "kind": self.kind.value, "message": str(self)}


class ConfigError(BoardnetError):
    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict:
        return {"type": "config_error", "message": str(self), "errors": self.errors}


class ComputationTimeout(BoardnetError):
    """
    Raised by an interruptible stage when its wall-clock deadline passes.

    stage   — "layout" (partial is a LayoutResult) or "conflicts" (partial
              is the list of findings gathered before the deadline)
    """

    def __init__(self, message: str, partial=None, stage: str = "layout"):
        super().__init__(message)
        self.partial = partial
        self.stage = stage

    def to_dict(self) -> dict:
        out = {"type": "computation_timeout", "stage": self.stage, "message": str(self)}
        if self.stage == "layout":
            out["iterations_run"] = self.partial.iterations_run if self.partial is not None else 0
        else:
            out["partial_count"] = len(self.partial) if self.partial is not None else 0
        return out
