# powerdump/model/codec.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict
import struct


@dataclass(frozen=True)
class PrimitiveCodec:
    fmt_le: str  # little-endian struct format
    fmt_be: str  # big-endian struct format
    size: int


PRIMITIVES: Dict[str, PrimitiveCodec] = {
    "uint8":  PrimitiveCodec(fmt_le="<B", fmt_be=">B", size=1),
    "int8":   PrimitiveCodec(fmt_le="<b", fmt_be=">b", size=1),
    "uint16": PrimitiveCodec(fmt_le="<H", fmt_be=">H", size=2),
    "int16":  PrimitiveCodec(fmt_le="<h", fmt_be=">h", size=2),
    "uint32": PrimitiveCodec(fmt_le="<I", fmt_be=">I", size=4),
    "int32":  PrimitiveCodec(fmt_le="<i", fmt_be=">i", size=4),
    "uint64": PrimitiveCodec(fmt_le="<Q", fmt_be=">Q", size=8),
    "int64":  PrimitiveCodec(fmt_le="<q", fmt_be=">q", size=8),
    "float":  PrimitiveCodec(fmt_le="<f", fmt_be=">f", size=4),
    "double": PrimitiveCodec(fmt_le="<d", fmt_be=">d", size=8),
}


def _codec(encode: str) -> PrimitiveCodec:
    enc = encode.lower()
    if enc not in PRIMITIVES:
        raise NotImplementedError(f"Unknown encode type '{encode}'")
    return PRIMITIVES[enc]


def primitive_size(encode: str) -> int:
    return _codec(encode).size


def primitive_struct(encode: str, count: int = 1, *, endian: str = "little") -> struct.Struct:
    """Struct for `count` consecutive values of one primitive type."""
    codec = _codec(encode)
    fmt = codec.fmt_le if endian == "little" else codec.fmt_be
    return struct.Struct(fmt[0] + f"{int(count)}" + fmt[1:])


def decode_primitive(encode: str, raw_bytes: bytes, *, endian: str = "little"):
    codec = _codec(encode)
    if len(raw_bytes) != codec.size:
        raise ValueError(f"Raw bytes length {len(raw_bytes)} != expected {codec.size} for '{encode}'")

    fmt = codec.fmt_le if endian == "little" else codec.fmt_be
    return struct.unpack(fmt, raw_bytes)[0]


def decode_primitive_at(encode: str, buf, offset: int, *, endian: str = "little"):
    """Decode one primitive at an absolute offset in `buf`."""
    codec = _codec(encode)
    if offset < 0 or offset + codec.size > len(buf):
        raise ValueError(
            f"Offset {offset} + {codec.size} out of range for buffer of {len(buf)} bytes"
        )
    return decode_primitive(encode, bytes(buf[offset: offset + codec.size]), endian=endian)


def decode_cstring(raw_bytes: bytes) -> str:
    """Fixed-size char[] -> text up to the first NUL."""
    end = raw_bytes.find(b"\x00")
    if end >= 0:
        raw_bytes = raw_bytes[:end]
    return raw_bytes.decode("utf-8", errors="replace")
