"""
Force-directed layout (Fruchterman–Reingold style) — pure functions only.

Repulsion between every pair of nodes falls off with the squared distance;
attraction along each edge grows linearly with distance and edge strength.
The summed force is scaled by a decaying temperature and clamped per step.

The solver is a resumable step function: callers that must not block can
drive LayoutSolver.step() themselves; LayoutSolver.run() loops until the
iteration budget (or an optional deadline) is spent.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

import numpy as np

from boardnet.config import AnalysisConfig, resolve_config
from boardnet.errors import ComputationTimeout
from boardnet.graph import Graph
from boardnet.models import LayoutResult

logger = logging.getLogger(__name__)

MIN_DISTANCE = 1e-6
# Fraction of the initial temperature left at the end of an exponential schedule
EXPONENTIAL_FLOOR = 1e-3


@dataclass(frozen=True)
class LayoutState:
    positions: np.ndarray
    iteration: int = 0
    displacement: float = math.inf
    converged: bool = False


class LayoutSolver:
    def __init__(self, graph: Graph, config: AnalysisConfig | Mapping | None = None):
        self.config = resolve_config(config)
        self.node_ids: tuple[str, ...] = graph.node_ids
        index = {h: i for i, h in enumerate(self.node_ids)}

        cfg = self.config
        src, dst, weights = [], [], []
        for e in graph.all_edges():
            w = e.strength * (e.confidence if cfg.confidence_weighted_layout else 1.0)
            if w <= 0:
                continue
            src.append(index[e.source])
            dst.append(index[e.target])
            weights.append(cfg.attraction * w)
        self._src = np.array(src, dtype=np.intp)
        self._dst = np.array(dst, dtype=np.intp)
        self._weights = np.array(weights, dtype=float)
        # Per-node directions used to push apart nodes that share a position
        jitter_rng = np.random.default_rng([cfg.seed, len(self.node_ids)])
        self._jitter = jitter_rng.standard_normal((len(self.node_ids), cfg.dimensions))

    @property
    def dimensions(self) -> int:
        return self.config.dimensions

    def temperature(self, iteration: int) -> float:
        cfg = self.config
        frac = iteration / max(cfg.iterations, 1)
        if cfg.damping_schedule == "exponential":
            return cfg.initial_temperature * EXPONENTIAL_FLOOR ** frac
        return cfg.initial_temperature * (1.0 - frac)

    def initial_state(
        self, positions: Optional[Mapping[str, Sequence[float]]] = None,
    ) -> LayoutState:
        """Seeded uniform placement, or explicit starting positions."""
        n, d = len(self.node_ids), self.dimensions
        if n == 1:
            return LayoutState(np.zeros((1, d)))
        if positions is not None:
            pos = np.array([list(positions[h]) for h in self.node_ids], dtype=float)
            if pos.shape != (n, d):
                raise ValueError(f"expected {d}-dimensional positions for {n} nodes, got {pos.shape}")
            return LayoutState(pos)
        rng = np.random.default_rng(self.config.seed)
        spread = self.config.initial_spread
        return LayoutState(rng.uniform(-spread, spread, size=(n, d)))

    def forces(self, pos: np.ndarray) -> np.ndarray:
        cfg = self.config
        delta = pos[:, None, :] - pos[None, :, :]
        dist = np.linalg.norm(delta, axis=-1)
        coincident = dist < MIN_DISTANCE
        np.fill_diagonal(coincident, False)
        if coincident.any():
            # equal and opposite push for each coincident pair
            nudge = (self._jitter[:, None, :] - self._jitter[None, :, :]) * MIN_DISTANCE
            delta = np.where(coincident[..., None], nudge, delta)
            dist = np.linalg.norm(delta, axis=-1)
        np.maximum(dist, MIN_DISTANCE, out=dist)
        # |F| = k_r / d², along delta / d
        force = (cfg.repulsion * delta / (dist ** 3)[..., None]).sum(axis=1)

        if len(self._weights):
            # |F| = k_a * strength * d, along the edge
            pull = (pos[self._dst] - pos[self._src]) * self._weights[:, None]
            np.add.at(force, self._src, pull)
            np.add.at(force, self._dst, -pull)
        return force

    def step(self, state: LayoutState) -> LayoutState:
        """Advance one iteration; returns a new state and leaves the input untouched."""
        cfg = self.config
        if state.converged or state.iteration >= cfg.iterations:
            return state

        disp = self.forces(state.positions) * self.temperature(state.iteration)
        length = np.linalg.norm(disp, axis=1)
        too_far = length > cfg.max_displacement
        if too_far.any():
            disp[too_far] *= (cfg.max_displacement / length[too_far])[:, None]
            length[too_far] = cfg.max_displacement

        total = float(length.sum())
        converged = cfg.convergence_epsilon is not None and total < cfg.convergence_epsilon
        return LayoutState(state.positions + disp, state.iteration + 1, total, converged)

    def result(self, state: LayoutState, timed_out: bool = False) -> LayoutResult:
        positions = {
            h: tuple(float(x) for x in state.positions[i])
            for i, h in enumerate(self.node_ids)
        }
        finished = state.converged or state.iteration >= self.config.iterations
        return LayoutResult(
            positions=positions,
            dimensions=self.dimensions,
            iterations_run=state.iteration,
            converged=finished and not timed_out,
            timed_out=timed_out,
        )

    def run(self, state: Optional[LayoutState] = None, deadline: Optional[float] = None) -> LayoutResult:
        """
        Iterate until the budget is spent or the layout settles.

        deadline — time.monotonic() value; when it passes, ComputationTimeout
                   is raised carrying the partial result.
        """
        state = state or self.initial_state()
        cfg = self.config
        while state.iteration < cfg.iterations and not state.converged:
            if deadline is not None and time.monotonic() >= deadline:
                partial = self.result(state, timed_out=True)
                logger.warning(
                    "Layout stopped at iteration %d/%d: deadline reached",
                    state.iteration, cfg.iterations,
                )
                raise ComputationTimeout(
                    f"Layout exceeded its time budget after {state.iteration} of {cfg.iterations} iterations",
                    partial=partial,
                )
            state = self.step(state)
        if state.converged:
            logger.debug("Layout settled early at iteration %d", state.iteration)
        return self.result(state)


def compute_layout(
    graph: Graph,
    config: AnalysisConfig | Mapping | None = None,
    timeout: Optional[float] = None,
) -> LayoutResult:
    """Run the solver to completion; timeout is in seconds of wall-clock time."""
    deadline = time.monotonic() + timeout if timeout is not None else None
    return LayoutSolver(graph, config).run(deadline=deadline)
