"""Camera trajectories stored as timestamped poses, and their comparison."""

from __future__ import annotations

import argparse
import math
import sys
from collections.abc import Sequence

import numpy as np

from slamkit.lie import SE3

DEFAULT_GROUNDTRUTH = "./example/groundtruth.txt"
DEFAULT_ESTIMATED = "./example/estimated.txt"

_FIELDS = 8


def parse_trajectory(stream) -> list[SE3]:
    """Poses from lines of ``time tx ty tz qx qy qz qw``.

    Blank lines and lines starting with ``#`` are skipped.
    """
    trajectory = []
    for lineno, line in enumerate(stream, 1):
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        tokens = text.split()
        if len(tokens) < _FIELDS:
            raise ValueError(f"line {lineno}: expected {_FIELDS} values, got {len(tokens)}")
        try:
            _, tx, ty, tz, qx, qy, qz, qw = (float(v) for v in tokens[:_FIELDS])
        except ValueError as exc:
            raise ValueError(f"line {lineno}: {exc}") from exc
        trajectory.append(SE3.from_quaternion([qw, qx, qy, qz], [tx, ty, tz]))
    return trajectory


def read_trajectory(path) -> list[SE3]:
    """Poses of the trajectory file at ``path``."""
    try:
        with open(path, encoding="utf-8") as fin:
            return parse_trajectory(fin)
    except FileNotFoundError:
        raise FileNotFoundError(f"trajectory {path} not found.") from None


def rmse(groundtruth: Sequence[SE3], estimated: Sequence[SE3]) -> float:
    """Root mean square of ``|log(T_gt^-1 T_est)|`` over matching poses."""
    if not groundtruth or not estimated:
        raise ValueError("trajectories must not be empty")
    if len(groundtruth) != len(estimated):
        raise ValueError("trajectories must have the same number of poses")
    squared = [
        float(np.linalg.norm((gt.inverse() @ est).log())) ** 2
        for gt, est in zip(groundtruth, estimated)
    ]
    return math.sqrt(sum(squared) / len(squared))


def main(argv=None):
    """Print the RMSE between a ground-truth and an estimated trajectory."""
    parser = argparse.ArgumentParser(
        prog="trajectory_error", description="Compare two camera trajectories."
    )
    parser.add_argument("groundtruth", nargs="?", default=DEFAULT_GROUNDTRUTH)
    parser.add_argument("estimated", nargs="?", default=DEFAULT_ESTIMATED)
    args = parser.parse_args(argv)

    try:
        groundtruth = read_trajectory(args.groundtruth)
        estimated = read_trajectory(args.estimated)
        error = rmse(groundtruth, estimated)
    except (FileNotFoundError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return 1
    print(f"RMSE = {error}")
    return 0