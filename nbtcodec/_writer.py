"""NBT writer — serialize a Tag tree to a byte sink, the exact inverse of the reader.

A document is encoded in memory first and handed to the sink in a single
``write`` call, so an error anywhere in the tree leaves the sink untouched.

Compound entries go out in dict iteration order, i.e. insertion order.  The
reader inserts in wire order, so ``dumps(loads(b)) == b`` holds for any
document without duplicate names.
"""

from __future__ import annotations

import io
import struct
from typing import BinaryIO

from ._constants import (
    ARRAY_FORMATS,
    FLOAT_BIT_FORMATS,
    MAX_ARRAY_LENGTH,
    MAX_DEPTH,
    SCALAR_FORMATS,
    TAG_COMPOUND,
    TAG_END,
    TAG_LIST,
    TAG_STRING,
)
from ._errors import (
    ERR_INVALID_LENGTH,
    ERR_INVALID_TYPE,
    ERR_IO,
    ERR_LIMIT_DEPTH,
    ERR_RANGE,
    NbtError,
)
from ._tag import (
    Tag,
    check_array,
    check_compound_items,
    check_list_items,
    encode_text,
)

_U8 = struct.Struct(">B")
_U16 = struct.Struct(">H")
_I32 = struct.Struct(">i")

_SCALAR_STRUCTS = {t: struct.Struct(">" + c) for t, c in SCALAR_FORMATS.items()
                   if t not in FLOAT_BIT_FORMATS}
_BIT_STRUCTS = {t: struct.Struct(">" + c) for t, c in FLOAT_BIT_FORMATS.items()}


def _u32_length(n: int, what: str) -> bytes:
    if n > MAX_ARRAY_LENGTH:
        raise NbtError(ERR_INVALID_LENGTH,
                       "{} length {} exceeds {}".format(what, n, MAX_ARRAY_LENGTH))
    return _I32.pack(n)


def _check_root(root: Tag) -> None:
    if not isinstance(root, Tag) or root.type_id != TAG_COMPOUND:
        found = root.type_name if isinstance(root, Tag) else type(root).__name__
        raise NbtError(ERR_INVALID_TYPE, "root must be Compound, got {}".format(found))


def _deliver(sink: BinaryIO, data: bytes) -> None:
    try:
        sink.write(data)
    except OSError as e:
        raise NbtError(ERR_IO, "write failed: {}".format(e)) from e


class _Encoder:
    """Encoding state for one document: an in-memory buffer plus the depth limit."""

    def __init__(self, max_depth: int) -> None:
        self.buf = io.BytesIO()
        self.max_depth = max_depth

    def emit(self, data: bytes) -> None:
        self.buf.write(data)

    def write_text(self, text: str) -> None:
        raw = encode_text(text)
        self.emit(_U16.pack(len(raw)) + raw)

    def write_payload(self, tag: Tag, depth: int) -> None:
        """Encode *tag*'s payload (no type byte, no name) found at *depth*."""
        type_id = tag.type_id
        value = tag.value

        st = _SCALAR_STRUCTS.get(type_id)
        if st is not None:
            try:
                self.emit(st.pack(value))
            except struct.error as e:
                raise NbtError(ERR_RANGE, "{}: {}".format(tag.type_name, e)) from e
            return

        st = _BIT_STRUCTS.get(type_id)
        if st is not None:
            self.emit(st.pack(tag.bits))
            return

        if type_id in ARRAY_FORMATS:
            # Mutable accessors hand out the live list, so re-check here.
            packed = check_array(type_id, value)
            self.emit(_u32_length(len(value), tag.type_name) + packed)
            return

        if type_id == TAG_STRING:
            self.write_text(value)
            return

        if depth + 1 > self.max_depth:
            raise NbtError(ERR_LIMIT_DEPTH, "depth exceeds {}".format(self.max_depth))

        if type_id == TAG_LIST:
            elem = check_list_items(value)
            if elem == TAG_END:
                elem = tag.element_type
            self.emit(_U8.pack(elem) + _u32_length(len(value), "List"))
            for item in value:
                self.write_payload(item, depth + 1)
            return

        self.write_entries(tag, depth + 1)

    def write_entries(self, tag: Tag, depth: int) -> None:
        """Encode a compound's entries and its 0x00 terminator."""
        entries = tag.value
        check_compound_items(entries)
        for name, child in entries.items():
            self.emit(_U8.pack(child.type_id))
            self.write_text(name)
            self.write_payload(child, depth)
        self.emit(_U8.pack(TAG_END))

    def encode_body(self, root: Tag) -> bytes:
        self.write_body(root)
        return self.buf.getvalue()

    def encode_root(self, root: Tag, name: str) -> bytes:
        self.write_root(root, name)
        return self.buf.getvalue()

    def write_body(self, root: Tag) -> None:
        _check_root(root)
        if self.max_depth < 1:
            raise NbtError(ERR_LIMIT_DEPTH, "depth exceeds {}".format(self.max_depth))
        self.write_entries(root, 1)

    def write_root(self, root: Tag, name: str) -> None:
        _check_root(root)
        self.emit(_U8.pack(TAG_COMPOUND))
        self.write_text(name)
        self.write_body(root)


# ── Public helpers ────────────────────────────────────────────

def write(root: Tag, sink: BinaryIO, name: str = "", *, max_depth: int = MAX_DEPTH) -> None:
    """Write *root* as a full document: 0x0A, *name*, entries, 0x00.

    *root* must be a Compound tag; anything else is ERR_INVALID_TYPE.  On any
    error nothing is written to *sink*.
    """
    _deliver(sink, _Encoder(max_depth).encode_root(root, name))


def write_body(root: Tag, sink: BinaryIO, *, max_depth: int = MAX_DEPTH) -> None:
    """Write only the root Compound's entries and terminator (inverse of read_body)."""
    _deliver(sink, _Encoder(max_depth).encode_body(root))


def dumps(root: Tag, name: str = "", *, max_depth: int = MAX_DEPTH) -> bytes:
    """Serialize *root* to a bytes object."""
    return _Encoder(max_depth).encode_root(root, name)
