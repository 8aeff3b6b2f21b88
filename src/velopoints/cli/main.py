from __future__ import annotations

import argparse
import logging
from pathlib import Path

from velopoints.api.decoder import Decoder
from velopoints.api.point_io import save_points
from velopoints.calibration import load_calibration
from velopoints.config import load_decoder_config
from velopoints.core.packet import DEFAULT_LAYOUT, InvalidPacketSize
from velopoints.core.window import DISTANCE_MAX, DecodeWindow, set_parameters
from velopoints.points import PointCloud


def decode_packet_file(packets_path: Path, decoder: Decoder) -> PointCloud:
    """
    Decode a raw dump of back-to-back packets (no framing between them).
    """
    data = Path(packets_path).read_bytes()
    size = decoder.layout.packet_size
    if len(data) % size != 0:
        raise InvalidPacketSize(f"{packets_path}: {len(data)} bytes is not a whole number of {size}-byte packets")
    cloud = PointCloud()
    view = memoryview(data)
    for offset in range(0, len(data), size):
        decoder.unpack(view[offset : offset + size], cloud)
    return cloud


def _decoder_from_args(args: argparse.Namespace) -> Decoder:
    if args.config is not None:
        cfg = load_decoder_config(args.config)
        calib_path = args.calibration if args.calibration is not None else cfg.calibration
        window = cfg.window()
    else:
        calib_path = args.calibration
        if args.min_angle is not None or args.max_angle is not None:
            window = DecodeWindow(
                min_range=args.min_range,
                max_range=args.max_range,
                min_angle=args.min_angle if args.min_angle is not None else 0,
                max_angle=args.max_angle if args.max_angle is not None else DecodeWindow().max_angle,
            )
        else:
            window = DecodeWindow(min_range=args.min_range, max_range=args.max_range)
    if calib_path is None:
        raise ValueError("a calibration file is required (--calibration or config 'calibration')")
    return Decoder.setup(load_calibration(calib_path), window, drop_zero_range=args.drop_zero_range)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="velopoints")
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    dec = sub.add_parser("decode", help="Decode a raw packet dump into an NPZ point file.")
    dec.add_argument("packets", type=Path, help=f"Back-to-back {DEFAULT_LAYOUT.packet_size}-byte packets.")
    dec.add_argument("--out", type=Path, required=True)
    dec.add_argument("--config", type=Path, default=None, help="Decoder config JSON (velopoints.config.v0).")
    dec.add_argument("--calibration", type=Path, default=None, help="Calibration JSON (overrides the config).")
    dec.add_argument("--min-range", type=float, default=0.0, help="Meters (ignored with --config).")
    dec.add_argument("--max-range", type=float, default=DISTANCE_MAX, help="Meters (ignored with --config).")
    dec.add_argument("--min-angle", type=int, default=None, help="Raw azimuth units (ignored with --config).")
    dec.add_argument("--max-angle", type=int, default=None, help="Raw azimuth units (ignored with --config).")
    dec.add_argument("--drop-zero-range", action="store_true", help="Drop readings that reported no return.")

    win = sub.add_parser("window", help="Print the raw azimuth window derived from a view direction.")
    win.add_argument("--view-center", type=float, default=0.0, help="Radians.")
    win.add_argument("--left-most-angle", type=float, default=3.141592653589793, help="Radians.")
    win.add_argument("--right-most-angle", type=float, default=3.141592653589793, help="Radians.")

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.cmd == "decode":
        decoder = _decoder_from_args(args)
        cloud = decode_packet_file(args.packets, decoder)
        out = save_points(args.out, cloud)
        print(f"Wrote {out} ({cloud.width} points)")
        return 0

    if args.cmd == "window":
        window = set_parameters(0.0, DISTANCE_MAX, args.view_center, args.left_most_angle, args.right_most_angle)
        print(f"{window.min_angle} {window.max_angle}")
        return 0

    raise AssertionError(f"Unhandled cmd: {args.cmd}")


if __name__ == "__main__":
    raise SystemExit(main())
