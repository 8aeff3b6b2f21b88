from velopoints.api.decoder import Decoder
from velopoints.api.point_io import load_points, save_points

__all__ = [
    "Decoder",
    "load_points",
    "save_points",
]
