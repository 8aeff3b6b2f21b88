from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

import numpy as np

POINT_DTYPE = np.dtype(
    [
        ("x", np.float32),
        ("y", np.float32),
        ("z", np.float32),
        ("intensity", np.uint8),
        ("ring", np.uint8),
    ]
)


@dataclass(frozen=True)
class OutputPoint:
    x: float
    y: float
    z: float
    intensity: int
    ring: int


class PointCloud:
    """
    Append-only, ordered point collection owned by the caller.

    Points are kept as chunks of a structured array (`POINT_DTYPE`) and only
    concatenated on demand. `width` is the running point count.
    """

    def __init__(self) -> None:
        self._chunks: list[np.ndarray] = []
        self.width = 0

    def __len__(self) -> int:
        return self.width

    def extend(self, points: np.ndarray) -> None:
        points = np.asarray(points)
        if points.dtype != POINT_DTYPE:
            raise TypeError(f"expected points with dtype {POINT_DTYPE}, got {points.dtype}")
        if points.size == 0:
            return
        chunk = points.reshape(-1).copy()
        chunk.setflags(write=False)
        self._chunks.append(chunk)
        self.width += int(chunk.shape[0])

    def append(self, point: OutputPoint) -> None:
        row = np.array([(point.x, point.y, point.z, point.intensity, point.ring)], dtype=POINT_DTYPE)
        self.extend(row)

    @property
    def points(self) -> np.ndarray:
        if not self._chunks:
            return np.empty(0, dtype=POINT_DTYPE)
        if len(self._chunks) > 1:
            merged = np.concatenate(self._chunks)
            merged.setflags(write=False)
            self._chunks = [merged]
        return self._chunks[0]

    def __iter__(self) -> Iterator[OutputPoint]:
        for p in self.points:
            yield OutputPoint(
                x=float(p["x"]),
                y=float(p["y"]),
                z=float(p["z"]),
                intensity=int(p["intensity"]),
                ring=int(p["ring"]),
            )

    def xyz(self) -> np.ndarray:
        """(N, 3) float64 coordinates."""
        pts = self.points
        return np.stack([pts["x"], pts["y"], pts["z"]], axis=-1).astype(np.float64)


def make_points(x: np.ndarray, y: np.ndarray, z: np.ndarray, intensity: np.ndarray, ring: np.ndarray) -> np.ndarray:
    """Pack parallel 1-D arrays into a `POINT_DTYPE` array."""
    out = np.empty(np.shape(x), dtype=POINT_DTYPE)
    out["x"] = x
    out["y"] = y
    out["z"] = z
    out["intensity"] = intensity
    out["ring"] = ring
    return out
