# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""PathGraph — the hostile route as an ordered array of node positions.

Map difficulty combines path length and turn complexity:

  length      = clamp01((N - 8) / 20)
  complexity  = share of interior nodes whose turn exceeds 30 degrees
  difficulty  = 0.6 * length + 0.4 * complexity      (0.5 for N < 3)

and the adaptation factor used by the controller adds a plain length
term: ``0.6 * difficulty + 0.4 * last_node_index / 20``.
"""

from __future__ import annotations

import numpy as np

_TURN_THRESHOLD_DEG = 30.0
_SHORT_PATH_DIFFICULTY = 0.5


class PathGraph:
    """Ordered path nodes with cumulative distances."""

    def __init__(self, node_positions) -> None:
        positions = np.asarray(node_positions, dtype=np.float64)
        if positions.ndim == 1:
            positions = positions.reshape(-1, 1)
        self._positions = positions
        if len(positions) > 1:
            steps = np.linalg.norm(np.diff(positions, axis=0), axis=1)
        else:
            steps = np.zeros(0)
        self._distances = steps

    @classmethod
    def straight(cls, total_nodes: int, spacing: float = 1.0) -> "PathGraph":
        xs = np.arange(total_nodes, dtype=np.float64) * spacing
        return cls(np.column_stack([xs, np.zeros_like(xs)]))

    @property
    def node_positions(self) -> np.ndarray:
        return self._positions

    @property
    def node_distances(self) -> np.ndarray:
        """Length of each segment between consecutive nodes."""
        return self._distances

    @property
    def total_nodes(self) -> int:
        return len(self._positions)

    @property
    def last_node_index(self) -> int:
        return max(0, self.total_nodes - 1)

    @property
    def total_length(self) -> float:
        return float(self._distances.sum())

    def turn_angles(self) -> np.ndarray:
        return turn_angles(self._positions)

    def map_difficulty(self) -> float:
        return map_difficulty(self._positions)

    def map_adaptation(self, difficulty: float | None = None) -> float:
        if difficulty is None:
            difficulty = self.map_difficulty()
        return map_adaptation(difficulty, self.last_node_index)


def turn_angles(positions) -> np.ndarray:
    """Turn angle in degrees at each interior node.  Zero-length segments count as straight."""
    positions = np.asarray(positions, dtype=np.float64)
    if positions.ndim == 1:
        positions = positions.reshape(-1, 1)
    if len(positions) < 3:
        return np.zeros(0)
    d = np.diff(positions, axis=0)
    norms = np.linalg.norm(d, axis=1)
    unit = np.divide(d, norms[:, None], out=np.zeros_like(d), where=norms[:, None] > 0)
    cos = np.einsum("ij,ij->i", unit[:-1], unit[1:])
    angles = np.degrees(np.arccos(np.clip(cos, -1.0, 1.0)))
    degenerate = (norms[:-1] == 0) | (norms[1:] == 0)
    angles[degenerate] = 0.0
    return angles


def map_difficulty(positions) -> float:
    positions = np.asarray(positions, dtype=np.float64)
    n = len(positions)
    if n < 3:
        return _SHORT_PATH_DIFFICULTY
    length_factor = min(1.0, max(0.0, (n - 8.0) / 20.0))
    turns = int(np.count_nonzero(turn_angles(positions) > _TURN_THRESHOLD_DEG))
    complexity = min(1.0, max(0.0, turns / (n - 2)))
    return 0.6 * length_factor + 0.4 * complexity


def map_adaptation(difficulty: float, last_node_index: int) -> float:
    return 0.6 * difficulty + 0.4 * (last_node_index / 20.0)
