"""
Packet decoding primitives: wire layout, lookup tables, window and per-reading correction.
"""
