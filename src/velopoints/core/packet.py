from __future__ import annotations

from dataclasses import dataclass

import numpy as np

UPPER_BANK = 0xEEFF  # lasers 0..31
LOWER_BANK = 0xDDFF  # lasers 32..63
LOWER_BANK_ORIGIN = 32

RAW_SCAN_SIZE = 3  # uint16 range + uint8 reflectivity
BLOCK_HEADER_SIZE = 4  # uint16 bank flag + uint16 azimuth


class InvalidPacketSize(ValueError):
    pass


@dataclass(frozen=True)
class PacketLayout:
    """
    Fixed wire layout of a data packet.

    The defaults describe the HDL-64E packet: 12 blocks of 32 readings
    followed by 6 status bytes, 1206 bytes in total. All multi-byte fields
    are little-endian.
    """

    blocks_per_packet: int = 12
    scans_per_block: int = 32
    status_size: int = 6

    @property
    def block_size(self) -> int:
        return BLOCK_HEADER_SIZE + RAW_SCAN_SIZE * self.scans_per_block

    @property
    def packet_size(self) -> int:
        return self.blocks_per_packet * self.block_size + self.status_size

    @property
    def dtype(self) -> np.dtype:
        reading = np.dtype([("range", "<u2"), ("reflectivity", "u1")])
        block = np.dtype(
            [
                ("header", "<u2"),
                ("rotation", "<u2"),
                ("readings", reading, (self.scans_per_block,)),
            ]
        )
        return np.dtype(
            [
                ("blocks", block, (self.blocks_per_packet,)),
                ("status", "u1", (self.status_size,)),
            ]
        )


DEFAULT_LAYOUT = PacketLayout()


@dataclass(frozen=True)
class RawBlocks:
    """Fields of every block in one packet, as arrays in wire order."""

    header: np.ndarray  # (B,) uint16
    rotation: np.ndarray  # (B,) uint16, raw azimuth
    raw_range: np.ndarray  # (B, S) uint16
    reflectivity: np.ndarray  # (B, S) uint8

    @property
    def bank_origin(self) -> np.ndarray:
        return np.where(self.header == LOWER_BANK, LOWER_BANK_ORIGIN, 0)

    def channel_ids(self) -> np.ndarray:
        """(B, S) channel id of every reading: slot index plus the block's bank origin."""
        slots = np.arange(self.raw_range.shape[1])
        return slots[None, :] + self.bank_origin[:, None]


def parse_packet(data: bytes | bytearray | memoryview, layout: PacketLayout = DEFAULT_LAYOUT) -> RawBlocks:
    if len(data) != layout.packet_size:
        raise InvalidPacketSize(f"packet is {len(data)} bytes, expected {layout.packet_size}")
    blocks = np.frombuffer(data, dtype=layout.dtype)["blocks"][0]
    readings = blocks["readings"]
    return RawBlocks(
        header=np.asarray(blocks["header"], dtype=np.uint16),
        rotation=np.asarray(blocks["rotation"], dtype=np.uint16),
        raw_range=np.asarray(readings["range"], dtype=np.uint16),
        reflectivity=np.asarray(readings["reflectivity"], dtype=np.uint8),
    )


def build_packet(
    rotation: np.ndarray,
    raw_range: np.ndarray,
    reflectivity: np.ndarray,
    *,
    header: np.ndarray | None = None,
    layout: PacketLayout = DEFAULT_LAYOUT,
) -> bytes:
    """
    Encode a packet from per-block arrays. Used to synthesize recordings.

    `raw_range`/`reflectivity` are (blocks, scans); `header` defaults to the
    upper bank flag for every block.
    """
    pkt = np.zeros(1, dtype=layout.dtype)
    blocks = pkt["blocks"][0]
    blocks["header"] = UPPER_BANK if header is None else np.asarray(header, dtype=np.uint16)
    blocks["rotation"] = np.asarray(rotation, dtype=np.uint16)
    blocks["readings"]["range"] = np.asarray(raw_range, dtype=np.uint16)
    blocks["readings"]["reflectivity"] = np.asarray(reflectivity, dtype=np.uint8)
    return pkt.tobytes()
