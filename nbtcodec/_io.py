"""Host adapter — files and the gzip envelope around raw NBT.

The codec itself only sees ordered bytes.  Files saved by the game are
usually gzip-framed; a stream whose first two bytes are 0x1F 0x8B is piped
through a gzip decoder, anything else is read as raw NBT.
"""

from __future__ import annotations

import gzip
import logging
import os
import zlib
from typing import BinaryIO, Optional, Tuple, Union

from ._constants import GZIP_MAGIC, MAX_DEPTH, MAX_LENGTH
from ._errors import ERR_IO, NbtError
from ._reader import read_named
from ._tag import Tag
from ._writer import dumps

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_DRAIN_CHUNK = 1 << 16


def is_gzip(data: bytes) -> bool:
    """True if *data* starts with the gzip magic number."""
    return data[:2] == GZIP_MAGIC


class _Replay:
    """Readable that returns already-sniffed bytes before the rest of *stream*."""

    def __init__(self, head: bytes, stream: BinaryIO) -> None:
        self._head = head
        self._stream = stream

    def read(self, n: int = -1) -> bytes:
        if not self._head:
            return self._stream.read(n)
        if n is None or n < 0:
            data = self._head + self._stream.read()
            self._head = b""
            return data
        data, self._head = self._head[:n], self._head[n:]
        return data


def open_source(fileobj: BinaryIO, gzipped: Optional[bool] = None) -> BinaryIO:
    """Return a stream of raw NBT bytes from *fileobj*.

    *fileobj* needs only a ``read(n)`` method.  With ``gzipped=None`` the
    first two bytes are sniffed to decide whether to wrap the stream in a
    gzip decoder: peeked when the stream supports ``peek``, otherwise read
    and replayed ahead of the rest.
    """
    if gzipped is None:
        if hasattr(fileobj, "peek"):
            head = fileobj.peek(2)[:2]  # type: ignore[attr-defined]
        else:
            head = fileobj.read(2)
            fileobj = _Replay(head, fileobj)  # type: ignore[assignment]
        gzipped = is_gzip(head)
        logger.debug("envelope detected: %s", "gzip" if gzipped else "raw")
    if gzipped:
        return gzip.GzipFile(fileobj=fileobj, mode="rb")  # type: ignore[return-value]
    return fileobj


def read_stream(fileobj: BinaryIO, gzipped: Optional[bool] = None, *,
                max_depth: int = MAX_DEPTH,
                max_length: int = MAX_LENGTH) -> Tuple[str, Tag]:
    """Read one document from an open binary stream, unwrapping gzip if present."""
    source = open_source(fileobj, gzipped)
    if not isinstance(source, gzip.GzipFile):
        return read_named(source, max_depth=max_depth, max_length=max_length)
    try:
        result = read_named(source, max_depth=max_depth, max_length=max_length)
        # The CRC and length trailer are only checked at the end of the
        # frame, so run the decoder out past the root terminator.
        while source.read(_DRAIN_CHUNK):
            pass
        return result
    except (OSError, EOFError, zlib.error) as e:
        # Raised by the gzip layer for truncated or corrupt frames.
        raise NbtError(ERR_IO, "bad gzip stream: {}".format(e)) from e
    finally:
        # Closes only the decoder; *fileobj* belongs to the caller.
        source.close()


def load(path: PathLike, *, gzipped: Optional[bool] = None,
         max_depth: int = MAX_DEPTH,
         max_length: int = MAX_LENGTH) -> Tuple[str, Tag]:
    """Read an NBT file and return ``(root_name, root_compound)``.

    OSError from opening the file propagates unchanged; failures while
    decoding are NbtError.
    """
    with open(path, "rb") as f:
        name, root = read_stream(f, gzipped, max_depth=max_depth, max_length=max_length)
    logger.debug("loaded %s: root %r with %d entries", path, name, len(root.value))
    return name, root


def save(path: PathLike, root: Tag, *, name: str = "", gzipped: bool = False,
         max_depth: int = MAX_DEPTH) -> None:
    """Write *root* to *path*, gzip-framed if *gzipped*.

    The document is fully encoded before the file is opened, so an encoding
    error never leaves a truncated file behind.
    """
    data = dumps(root, name, max_depth=max_depth)
    if gzipped:
        data = gzip.compress(data)
    with open(path, "wb") as f:
        f.write(data)
    logger.debug("saved %s: %d bytes (%s)", path, len(data), "gzip" if gzipped else "raw")
