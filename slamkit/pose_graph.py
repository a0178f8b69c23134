"""Pose graph optimisation with SE(3) vertices and relative-pose edges.

Graphs are read and written in the text format used by g2o for
``VERTEX_SE3:QUAT`` and ``EDGE_SE3:QUAT`` records. Poses are updated by left
multiplication with the exponential of the increment.
"""

from __future__ import annotations

import argparse
import logging
import math
from dataclasses import dataclass, field

import numpy as np
from scipy.sparse import coo_matrix, identity
from scipy.sparse.linalg import spsolve

from slamkit.lie import SE3

logger = logging.getLogger(__name__)

VERTEX_TAG = "VERTEX_SE3:QUAT"
EDGE_TAG = "EDGE_SE3:QUAT"

_TAU = 1e-5
_MAX_TRIALS = 10
_UPPER = list(zip(*np.triu_indices(6)))


def jr_inv(error: SE3) -> np.ndarray:
    """Approximation of the inverse right Jacobian of an error; the identity is used."""
    return np.eye(6)


def _pose_from(data) -> SE3:
    tx, ty, tz, qx, qy, qz, qw = data
    return SE3.from_quaternion([qw, qx, qy, qz], [tx, ty, tz])


def _pose_fields(pose: SE3) -> list[float]:
    w, x, y, z = pose.rotation.quaternion()
    return [*pose.translation, x, y, z, w]


def _fmt(value) -> str:
    return repr(float(value))


@dataclass
class Vertex:
    """A pose in the graph; fixed vertices are not moved by the optimiser."""

    id: int
    estimate: SE3 = field(default_factory=SE3)
    fixed: bool = False

    def oplus(self, update) -> None:
        """Apply an increment by left multiplication."""
        self.estimate = SE3.exp(update) @ self.estimate


@dataclass
class Edge:
    """A measured relative pose from vertex ``from_id`` to vertex ``to_id``."""

    from_id: int
    to_id: int
    measurement: SE3 = field(default_factory=SE3)
    information: np.ndarray = field(default_factory=lambda: np.eye(6))
    id: int = 0

    def error(self, vertices) -> np.ndarray:
        """``log(Z^-1 T_i^-1 T_j)`` for the vertices in the mapping ``vertices``."""
        t_i = vertices[self.from_id].estimate
        t_j = vertices[self.to_id].estimate
        return (self.measurement.inverse() @ t_i.inverse() @ t_j).log()

    def jacobians(self, vertices):
        """Jacobians of the error with respect to both vertex increments."""
        j = jr_inv(SE3.exp(self.error(vertices)))
        adj = vertices[self.to_id].estimate.inverse().adjoint()
        return -j @ adj, j @ adj


class PoseGraph:
    """Vertices keyed by id and the edges between them."""

    def __init__(self, vertices=None, edges=None):
        self.vertices: dict[int, Vertex] = {}
        self.edges: list[Edge] = []
        for vertex in vertices or ():
            self.add_vertex(vertex)
        for edge in edges or ():
            self.add_edge(edge)

    def add_vertex(self, vertex: Vertex) -> None:
        self.vertices[vertex.id] = vertex

    def add_edge(self, edge: Edge) -> None:
        for vid in (edge.from_id, edge.to_id):
            if vid not in self.vertices:
                raise ValueError(f"edge {edge.id} refers to unknown vertex {vid}")
        self.edges.append(edge)

    @classmethod
    def read(cls, stream) -> "PoseGraph":
        """Parse vertex and edge records; other records are ignored. Vertex 0 is fixed."""
        graph = cls()
        for lineno, line in enumerate(stream, 1):
            tokens = line.split()
            if not tokens:
                continue
            tag, values = tokens[0], tokens[1:]
            try:
                if tag == VERTEX_TAG:
                    if len(values) < 8:
                        raise ValueError("vertex record needs an id and 7 pose values")
                    index = int(values[0])
                    pose = _pose_from([float(v) for v in values[1:8]])
                    graph.add_vertex(Vertex(index, pose, fixed=index == 0))
                elif tag == EDGE_TAG:
                    if len(values) < 9:
                        raise ValueError("edge record needs two ids and 7 pose values")
                    i, j = int(values[0]), int(values[1])
                    measurement = _pose_from([float(v) for v in values[2:9]])
                    information = np.eye(6)
                    for value, (r, c) in zip(values[9:], _UPPER):
                        information[r, c] = information[c, r] = float(value)
                    graph.add_edge(Edge(i, j, measurement, information, id=len(graph.edges)))
            except ValueError as exc:
                raise ValueError(f"line {lineno}: {exc}") from exc
        return graph

    def write(self, stream) -> None:
        """Write all vertices, then all edges with their upper-triangular information."""
        for vertex in self.vertices.values():
            fields = [VERTEX_TAG, str(vertex.id), *map(_fmt, _pose_fields(vertex.estimate))]
            stream.write(" ".join(fields) + "\n")
        for edge in self.edges:
            info = [edge.information[r, c] for r, c in _UPPER]
            fields = [
                EDGE_TAG,
                str(edge.from_id),
                str(edge.to_id),
                *map(_fmt, _pose_fields(edge.measurement)),
                *map(_fmt, info),
            ]
            stream.write(" ".join(fields) + "\n")

    def chi2(self) -> float:
        """Sum of the information-weighted squared errors of all edges."""
        total = 0.0
        for edge in self.edges:
            e = edge.error(self.vertices)
            total += float(e @ edge.information @ e)
        return total

    def _linear_system(self, index: dict, n: int):
        rows, cols, data = [], [], []
        b = np.zeros(n)
        for edge in self.edges:
            e = edge.error(self.vertices)
            ji, jj = edge.jacobians(self.vertices)
            omega = edge.information
            blocks = [(index.get(edge.from_id), ji), (index.get(edge.to_id), jj)]
            for a, ja in blocks:
                if a is None:
                    continue
                b[6 * a:6 * a + 6] -= ja.T @ omega @ e
                for c, jc in blocks:
                    if c is None:
                        continue
                    r, cc = np.meshgrid(
                        np.arange(6 * a, 6 * a + 6), np.arange(6 * c, 6 * c + 6), indexing="ij"
                    )
                    rows.append(r.ravel())
                    cols.append(cc.ravel())
                    data.append((ja.T @ omega @ jc).ravel())
        if not data:
            return None, b
        h = coo_matrix(
            (np.concatenate(data), (np.concatenate(rows), np.concatenate(cols))), shape=(n, n)
        ).tocsc()
        return h, b

    def optimize(self, iterations: int = 30) -> float:
        """Levenberg-Marquardt over the free vertices; returns the final chi2."""
        free = [v for v in self.vertices.values() if not v.fixed]
        chi2 = self.chi2()
        if not free or not self.edges:
            return chi2
        index = {v.id: k for k, v in enumerate(free)}
        n = 6 * len(free)
        lam = None
        nu = 2.0
        for iteration in range(iterations):
            h, b = self._linear_system(index, n)
            if h is None:
                break
            if lam is None:
                lam = _TAU * max(float(h.diagonal().max()), 1e-12)
            accepted = False
            for _ in range(_MAX_TRIALS):
                backup = {v.id: v.estimate for v in free}
                dx = spsolve((h + lam * identity(n, format="csc")).tocsc(), b)
                new_chi2 = math.inf
                if np.all(np.isfinite(dx)):
                    for v in free:
                        k = index[v.id]
                        v.oplus(dx[6 * k:6 * k + 6])
                    new_chi2 = self.chi2()
                if new_chi2 < chi2:
                    chi2 = new_chi2
                    lam /= 3.0
                    nu = 2.0
                    accepted = True
                    break
                for v in free:
                    v.estimate = backup[v.id]
                lam *= nu
                nu *= 2.0
            logger.info("iteration %d chi2 = %g lambda = %g", iteration, chi2, lam)
            if not accepted:
                break
        return chi2


def main(argv=None):
    """Read a pose graph, optimise it and save the result."""
    parser = argparse.ArgumentParser(prog="pose_graph", description="Optimise an SE(3) pose graph.")
    parser.add_argument("graph", help="input graph file, e.g. sphere.g2o")
    parser.add_argument("--output", default="result_lie.g2o")
    parser.add_argument("--iterations", type=int, default=30)
    args = parser.parse_args(argv)

    try:
        with open(args.graph, encoding="utf-8") as fin:
            graph = PoseGraph.read(fin)
    except FileNotFoundError:
        print(f"file {args.graph} does not exist.")
        return 1

    print(f"read total {len(graph.vertices)} vertices, {len(graph.edges)} edges.")
    print("optimizing ...")
    graph.optimize(args.iterations)
    print("saving optimization results ...")
    with open(args.output, "w", encoding="utf-8") as fout:
        graph.write(fout)
    return 0