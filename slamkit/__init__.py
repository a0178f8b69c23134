"""Visual SLAM building blocks: Lie groups, cameras, triangulation, curve fitting,
pose graphs, map entities, datasets, dense depth filtering and point clouds."""

__version__ = "0.1.0"

__all__ = [
    "algorithm",
    "camera",
    "config",
    "curve_fitting",
    "dataset",
    "dense_mapping",
    "entities",
    "keymap",
    "lie",
    "pointcloud",
    "pose_graph",
    "trajectory",
]