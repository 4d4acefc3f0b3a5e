"""NBT reader — recursive descent from a byte source into a Tag tree.

The source is any object with a ``read(n)`` method returning bytes: an open
file, ``io.BytesIO``, ``gzip.GzipFile``, a socket file.  Nothing is read
ahead beyond the single type byte that selects the next payload.

Wire layout of a document:

    0x0A | name_len(u16) | name | entry* | 0x00

where each compound entry is ``type(u8) | name_len(u16) | name | payload``.
"""

from __future__ import annotations

import io
import struct
from typing import Any, BinaryIO, Dict, Tuple

from ._constants import (
    ARRAY_FORMATS,
    FLOAT_BIT_FORMATS,
    MAX_DEPTH,
    MAX_LENGTH,
    SCALAR_FORMATS,
    TAG_COMPOUND,
    TAG_END,
    TAG_LIST,
    TAG_STRING,
    VALUE_TYPES,
)
from ._errors import (
    ERR_INVALID_LENGTH,
    ERR_INVALID_TYPE,
    ERR_INVALID_UTF8,
    ERR_IO,
    ERR_LIMIT_DEPTH,
    NbtError,
)
from ._tag import Tag, real_from_bits, type_name

# Pre-compiled structs for the header fields.
_U8 = struct.Struct(">B")
_U16 = struct.Struct(">H")
_I32 = struct.Struct(">i")

_SCALAR_STRUCTS = {t: struct.Struct(">" + c) for t, c in SCALAR_FORMATS.items()
                   if t not in FLOAT_BIT_FORMATS}
# Float and Double are read as their raw bit pattern.
_BIT_STRUCTS = {t: struct.Struct(">" + c) for t, c in FLOAT_BIT_FORMATS.items()}

# Bulk array reads are done in slices of at most this many bytes, so a
# hostile length field cannot force a large allocation before the source
# runs dry.
_CHUNK = 1 << 20


class _Decoder:
    """Decoding state for one document: the source plus its limits."""

    def __init__(self, source: BinaryIO, max_depth: int, max_length: int) -> None:
        self.source = source
        self.max_depth = max_depth
        self.max_length = max_length

    # ── raw reads ────────────────────────────────────────────

    def read_exact(self, n: int, allow_eof: bool = False) -> bytes:
        """Read exactly *n* bytes.

        If *allow_eof* is set and the source is already exhausted, return
        b"" instead of raising.  A short read part-way through is always an
        error.
        """
        chunks = []
        remaining = n
        while remaining > 0:
            try:
                chunk = self.source.read(min(remaining, _CHUNK))
            except OSError as e:
                raise NbtError(ERR_IO, "read failed: {}".format(e)) from e
            if not chunk:
                if allow_eof and remaining == n:
                    return b""
                raise NbtError(ERR_IO,
                               "unexpected end of stream: wanted {} more bytes".format(remaining))
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def read_u8(self) -> int:
        return self.read_exact(1)[0]

    def read_length(self) -> int:
        (n,) = _I32.unpack(self.read_exact(4))
        if n < 0:
            raise NbtError(ERR_INVALID_LENGTH, "negative length {}".format(n))
        if n > self.max_length:
            raise NbtError(ERR_INVALID_LENGTH,
                           "declared length {} exceeds limit {}".format(n, self.max_length))
        return n

    def read_text(self) -> str:
        (n,) = _U16.unpack(self.read_exact(2))
        raw = self.read_exact(n)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise NbtError(ERR_INVALID_UTF8, "invalid utf-8 at byte {}".format(e.start)) from e

    # ── payloads ─────────────────────────────────────────────

    def read_payload(self, type_id: int, depth: int) -> Tag:
        """Decode one payload of *type_id* found inside a container at *depth*."""
        st = _SCALAR_STRUCTS.get(type_id)
        if st is not None:
            (val,) = st.unpack(self.read_exact(st.size))
            return Tag._from_wire(type_id, val)

        st = _BIT_STRUCTS.get(type_id)
        if st is not None:
            (bits,) = st.unpack(self.read_exact(st.size))
            return Tag._from_wire(type_id, real_from_bits(type_id, bits), bits=bits)

        if type_id in ARRAY_FORMATS:
            fmt = ARRAY_FORMATS[type_id]
            n = self.read_length()
            raw = self.read_exact(n * struct.calcsize(fmt))
            values = list(struct.unpack(">{}{}".format(n, fmt), raw))
            return Tag._from_wire(type_id, values)

        if type_id == TAG_STRING:
            return Tag._from_wire(TAG_STRING, self.read_text())

        if type_id == TAG_LIST:
            if depth + 1 > self.max_depth:
                raise NbtError(ERR_LIMIT_DEPTH, "depth exceeds {}".format(self.max_depth))
            elem = self.read_u8()
            if elem != TAG_END and elem not in VALUE_TYPES:
                raise NbtError(ERR_INVALID_TYPE, "unknown list element type 0x{:02x}".format(elem))
            n = self.read_length()
            if elem == TAG_END and n > 0:
                raise NbtError(ERR_INVALID_TYPE, "non-empty list of End")
            items = [self.read_payload(elem, depth + 1) for _ in range(n)]
            return Tag._from_wire(TAG_LIST, items, elem)

        if type_id == TAG_COMPOUND:
            if depth + 1 > self.max_depth:
                raise NbtError(ERR_LIMIT_DEPTH, "depth exceeds {}".format(self.max_depth))
            return self.read_compound(depth + 1)

        raise NbtError(ERR_INVALID_TYPE, "unknown type code 0x{:02x}".format(type_id))

    def read_compound(self, depth: int, tolerate_eof: bool = False) -> Tag:
        """Decode compound entries up to and including the 0x00 terminator.

        With *tolerate_eof*, an exhausted source where the next entry's type
        byte should be counts as the terminator.  Only the root compound is
        read that way; an inner compound cut short is an I/O error.
        """
        entries: Dict[str, Tag] = {}
        while True:
            head = self.read_exact(1, allow_eof=tolerate_eof)
            if not head:
                break
            type_id = head[0]
            if type_id == TAG_END:
                break
            if type_id not in VALUE_TYPES:
                raise NbtError(ERR_INVALID_TYPE, "unknown type code 0x{:02x}".format(type_id))
            name = self.read_text()
            # Duplicate names on the wire: the later entry wins.
            entries[name] = self.read_payload(type_id, depth)
        return Tag._from_wire(TAG_COMPOUND, entries)

    def read_root(self) -> Tuple[str, Tag]:
        head = self.read_exact(1)[0]
        if head != TAG_COMPOUND:
            raise NbtError(ERR_INVALID_TYPE,
                           "root must be Compound, found {}".format(type_name(head)))
        name = self.read_text()
        return name, self.read_body()

    def read_body(self) -> Tag:
        if self.max_depth < 1:
            raise NbtError(ERR_LIMIT_DEPTH, "depth exceeds {}".format(self.max_depth))
        return self.read_compound(1, tolerate_eof=True)


# ── Public helpers ────────────────────────────────────────────

def read_named(source: BinaryIO, *, max_depth: int = MAX_DEPTH,
               max_length: int = MAX_LENGTH) -> Tuple[str, Tag]:
    """Read a whole document and return ``(root_name, root_compound)``."""
    return _Decoder(source, max_depth, max_length).read_root()


def read(source: BinaryIO, *, max_depth: int = MAX_DEPTH,
         max_length: int = MAX_LENGTH) -> Tag:
    """Read a whole document (header + body) and return the root Compound.

    The root name is discarded; use read_named() to keep it.
    """
    return read_named(source, max_depth=max_depth, max_length=max_length)[1]


def read_body(source: BinaryIO, *, max_depth: int = MAX_DEPTH,
              max_length: int = MAX_LENGTH) -> Tag:
    """Read only a root Compound body.

    For callers that have already consumed the 0x0A type byte and the root
    name themselves.  Reading stops after the terminator, or at end of
    stream where the next entry would begin.
    """
    return _Decoder(source, max_depth, max_length).read_body()


def loads(data: Any, **limits: int) -> Tag:
    """Decode a document held in memory.  Bytes after the root are ignored."""
    return read(io.BytesIO(bytes(data)), **limits)
