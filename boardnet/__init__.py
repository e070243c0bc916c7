"""
boardnet — layout and governance-risk analytics for board relationship networks.
"""
from boardnet.config import AnalysisConfig, load_config, resolve_config
from boardnet.errors import (
    BoardnetError,
    ComputationTimeout,
    ConfigError,
    GraphError,
    GraphErrorKind,
)
from boardnet.graph import Graph, build_graph
from boardnet.pipeline import AnalysisOutcome, run_analysis

__version__ = "0.1.0"

__all__ = [
    "AnalysisConfig",
    "AnalysisOutcome",
    "BoardnetError",
    "ComputationTimeout",
    "ConfigError",
    "Graph",
    "GraphError",
    "GraphErrorKind",
    "build_graph",
    "load_config",
    "resolve_config",
    "run_analysis",
]
