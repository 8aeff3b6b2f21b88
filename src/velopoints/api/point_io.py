from __future__ import annotations

from pathlib import Path

import numpy as np

from velopoints.points import POINT_DTYPE, PointCloud

SCHEMA_VERSION = "velopoints.points.v0"


def save_points(path: Path, cloud: PointCloud) -> Path:
    """
    Save a point cloud as one NPZ with parallel arrays:

      x, y, z (float32), intensity, ring (uint8), schema_version
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    pts = cloud.points
    np.savez_compressed(
        path,
        schema_version=np.asarray(SCHEMA_VERSION),
        x=pts["x"],
        y=pts["y"],
        z=pts["z"],
        intensity=pts["intensity"],
        ring=pts["ring"],
    )
    return path


def load_points(path: Path) -> PointCloud:
    with np.load(str(path)) as npz:
        if str(npz["schema_version"]) != SCHEMA_VERSION:
            raise ValueError("unsupported points schema")
        n = int(npz["x"].shape[0])
        pts = np.empty(n, dtype=POINT_DTYPE)
        for name in POINT_DTYPE.names:
            pts[name] = npz[name]
    cloud = PointCloud()
    cloud.extend(pts)
    return cloud
