"""NBT error codes and the exception class.

Every failure the codec can report is an ``NbtError`` whose ``.code`` is one
of the ERR_* strings below.  Errors are raised at the point of detection and
surface unchanged at the read/write boundary; a partially built tree is
never returned.
"""

from __future__ import annotations

# ── Error codes ──────────────────────────────────────────────

ERR_INVALID_TYPE: str = "ERR_INVALID_TYPE"      # unknown type code, non-compound root, mixed list
ERR_INVALID_UTF8: str = "ERR_INVALID_UTF8"      # string or name is not valid UTF-8
ERR_IO: str = "ERR_IO"                          # source/sink failure or premature end-of-stream
ERR_INVALID_LENGTH: str = "ERR_INVALID_LENGTH"  # negative or over-limit declared length
ERR_LIMIT_DEPTH: str = "ERR_LIMIT_DEPTH"        # nesting exceeds max_depth
ERR_RANGE: str = "ERR_RANGE"                    # scalar does not fit its tag width

ERROR_CODES = (
    ERR_INVALID_TYPE,
    ERR_INVALID_UTF8,
    ERR_IO,
    ERR_INVALID_LENGTH,
    ERR_LIMIT_DEPTH,
    ERR_RANGE,
)


class NbtError(Exception):
    """Exception for NBT encode/decode errors.

    The `.code` attribute is one of the ERR_* strings above and is what
    callers and the conformance tests branch on.
    """

    def __init__(self, code: str, msg: str = "") -> None:
        super().__init__(msg or code)
        self.code = code
