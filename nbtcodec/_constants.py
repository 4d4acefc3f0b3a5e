"""NBT constants — type codes, wire widths, integer ranges, and safety limits.

Everything here is fixed by the wire format except the two limits at the
bottom, which are defaults that callers may override per call.
"""

from __future__ import annotations

from typing import Dict

# ── Type codes (single byte each) ────────────────────────────
# 0x00 only ever appears on the wire as the compound terminator or as the
# declared element type of an empty list.  It is never a value.
TAG_END: int = 0x00
TAG_BYTE: int = 0x01
TAG_SHORT: int = 0x02
TAG_INT: int = 0x03
TAG_LONG: int = 0x04
TAG_FLOAT: int = 0x05
TAG_DOUBLE: int = 0x06
TAG_BYTE_ARRAY: int = 0x07
TAG_STRING: int = 0x08
TAG_LIST: int = 0x09
TAG_COMPOUND: int = 0x0A
TAG_INT_ARRAY: int = 0x0B
TAG_LONG_ARRAY: int = 0x0C

TYPE_NAMES: Dict[int, str] = {
    TAG_END: "End",
    TAG_BYTE: "Byte",
    TAG_SHORT: "Short",
    TAG_INT: "Int",
    TAG_LONG: "Long",
    TAG_FLOAT: "Float",
    TAG_DOUBLE: "Double",
    TAG_BYTE_ARRAY: "ByteArray",
    TAG_STRING: "String",
    TAG_LIST: "List",
    TAG_COMPOUND: "Compound",
    TAG_INT_ARRAY: "IntArray",
    TAG_LONG_ARRAY: "LongArray",
}

# Value-carrying codes, i.e. everything but End.
VALUE_TYPES = frozenset(range(TAG_BYTE, TAG_LONG_ARRAY + 1))

# ── struct format characters (all big-endian) ────────────────
# Scalars are packed as ">" + char; arrays as ">%d" % n + char.
SCALAR_FORMATS: Dict[int, str] = {
    TAG_BYTE: "b",
    TAG_SHORT: "h",
    TAG_INT: "i",
    TAG_LONG: "q",
    TAG_FLOAT: "f",
    TAG_DOUBLE: "d",
}

# Float and Double payloads are kept as raw IEEE-754 bit patterns so that
# NaN payloads and the signaling bit survive a round trip.
FLOAT_BIT_FORMATS: Dict[int, str] = {
    TAG_FLOAT: "I",
    TAG_DOUBLE: "Q",
}

ARRAY_FORMATS: Dict[int, str] = {
    TAG_BYTE_ARRAY: "b",
    TAG_INT_ARRAY: "i",
    TAG_LONG_ARRAY: "q",
}

# ── Signed integer ranges ────────────────────────────────────
# Python ints are unbounded, so every integer tag is range-checked
# against its two's-complement width.
INT_RANGES: Dict[int, tuple] = {
    TAG_BYTE: (-(2**7), 2**7 - 1),
    TAG_SHORT: (-(2**15), 2**15 - 1),
    TAG_INT: (-(2**31), 2**31 - 1),
    TAG_LONG: (-(2**63), 2**63 - 1),
}

# Strings and names carry an unsigned 16-bit byte length.
MAX_STRING_BYTES: int = 0xFFFF

# Arrays and lists carry a signed 32-bit length.
MAX_ARRAY_LENGTH: int = 2**31 - 1

# ── Compression envelope ─────────────────────────────────────
GZIP_MAGIC = b"\x1f\x8b"

# ── Default safety limits ────────────────────────────────────
# A hostile stream can nest lists/compounds arbitrarily deep or declare
# huge lengths.  Both readers and writers enforce these unless overridden.
# Each nesting level costs about two Python frames, so MAX_DEPTH stays well
# under the interpreter's default recursion limit.
MAX_DEPTH: int = 256
MAX_LENGTH: int = MAX_ARRAY_LENGTH
