"""nbtcodec — Named Binary Tag reader and writer.

Decode a big-endian NBT document into a tree of ``Tag`` values, inspect or
edit it, and encode it back byte for byte.

Quick start:
    >>> from nbtcodec import loads, dumps
    >>> root = loads(b"\\x0a\\x00\\x00\\x01\\x00\\x03foo\\x2a\\x00")
    >>> root.as_compound()["foo"].as_byte()
    42
    >>> dumps(root)
    b'\\n\\x00\\x00\\x01\\x00\\x03foo*\\x00'

Files, gzip-framed or raw:
    >>> from nbtcodec import load, save
    >>> name, root = load("level.dat")          # doctest: +SKIP
    >>> save("copy.dat", root, name=name, gzipped=True)  # doctest: +SKIP
"""

from __future__ import annotations

from ._constants import (
    MAX_DEPTH,
    MAX_LENGTH,
    TAG_BYTE,
    TAG_BYTE_ARRAY,
    TAG_COMPOUND,
    TAG_DOUBLE,
    TAG_END,
    TAG_FLOAT,
    TAG_INT,
    TAG_INT_ARRAY,
    TAG_LIST,
    TAG_LONG,
    TAG_LONG_ARRAY,
    TAG_SHORT,
    TAG_STRING,
)
from ._errors import (
    ERR_INVALID_LENGTH,
    ERR_INVALID_TYPE,
    ERR_INVALID_UTF8,
    ERR_IO,
    ERR_LIMIT_DEPTH,
    ERR_RANGE,
    NbtError,
)
from ._io import is_gzip, load, open_source, read_stream, save
from ._reader import loads, read, read_body, read_named
from ._tag import (
    Tag,
    byte_array_tag,
    byte_tag,
    compound_tag,
    count_elements,
    double_tag,
    float_tag,
    int_array_tag,
    int_tag,
    list_tag,
    long_array_tag,
    long_tag,
    short_tag,
    string_tag,
    type_name,
)
from ._writer import dumps, write, write_body

__version__ = "0.1.0"

__all__ = [
    # Model
    "Tag",
    "byte_tag",
    "short_tag",
    "int_tag",
    "long_tag",
    "float_tag",
    "double_tag",
    "byte_array_tag",
    "string_tag",
    "list_tag",
    "compound_tag",
    "int_array_tag",
    "long_array_tag",
    "count_elements",
    "type_name",
    # Codec
    "read",
    "read_named",
    "read_body",
    "loads",
    "write",
    "write_body",
    "dumps",
    # Host adapter
    "is_gzip",
    "open_source",
    "read_stream",
    "load",
    "save",
    # Exception
    "NbtError",
    # Error codes
    "ERR_INVALID_TYPE",
    "ERR_INVALID_UTF8",
    "ERR_IO",
    "ERR_INVALID_LENGTH",
    "ERR_LIMIT_DEPTH",
    "ERR_RANGE",
    # Type codes and limits
    "TAG_END",
    "TAG_BYTE",
    "TAG_SHORT",
    "TAG_INT",
    "TAG_LONG",
    "TAG_FLOAT",
    "TAG_DOUBLE",
    "TAG_BYTE_ARRAY",
    "TAG_STRING",
    "TAG_LIST",
    "TAG_COMPOUND",
    "TAG_INT_ARRAY",
    "TAG_LONG_ARRAY",
    "MAX_DEPTH",
    "MAX_LENGTH",
]
