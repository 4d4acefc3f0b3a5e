"""NBT tag model — the tagged tree value, its accessors, and the leaf walk.

A ``Tag`` is one class with a discriminant (``type_id``) and a payload
(``value``).  The twelve value-carrying variants are:

    Byte (0x01) .. Double (0x06)   — int / float scalars
    ByteArray (0x07)               — list of signed 8-bit ints
    String (0x08)                  — str
    List (0x09)                    — list of Tag, all of one type
    Compound (0x0A)                — dict of str -> Tag
    IntArray (0x0B)                — list of signed 32-bit ints
    LongArray (0x0C)               — list of signed 64-bit ints

End (0x00) is a wire sentinel and cannot be constructed.

Accessors come in two flavors.  ``as_<kind>()`` returns an immutable view of
the payload, ``as_<kind>_mut()`` a mutable one; both return None when the
tag is a different variant, so callers branch without try/except.
"""

from __future__ import annotations

import struct
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ._constants import (
    ARRAY_FORMATS,
    FLOAT_BIT_FORMATS,
    INT_RANGES,
    MAX_STRING_BYTES,
    SCALAR_FORMATS,
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
    TYPE_NAMES,
    VALUE_TYPES,
)
from ._errors import (
    ERR_INVALID_LENGTH,
    ERR_INVALID_TYPE,
    ERR_INVALID_UTF8,
    ERR_RANGE,
    NbtError,
)


def type_name(type_id: int) -> str:
    """Human-readable name for a type code, e.g. 0x0A -> "Compound"."""
    return TYPE_NAMES.get(type_id, "0x{:02x}".format(type_id))


# ── Payload validation ───────────────────────────────────────
# Runs on construction and on every ``value`` assignment.  Containers are
# handed out live through the mutable accessors, so the writer re-checks
# them before anything reaches the wire.

def _check_int(type_id: int, val: Any) -> int:
    # bool is an int subclass; True is not a Byte.
    if isinstance(val, bool) or not isinstance(val, int):
        raise NbtError(ERR_INVALID_TYPE,
                       "{} payload must be int, got {}".format(
                           type_name(type_id), type(val).__name__))
    lo, hi = INT_RANGES[type_id]
    if val < lo or val > hi:
        raise NbtError(ERR_RANGE,
                       "{} out of {} range [{}, {}]".format(val, type_name(type_id), lo, hi))
    return val


def _check_real(type_id: int, val: Any) -> float:
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        raise NbtError(ERR_INVALID_TYPE,
                       "{} payload must be float, got {}".format(
                           type_name(type_id), type(val).__name__))
    try:
        val = float(val)
        if type_id == TAG_FLOAT:
            # Round to binary32 now so a read-back tree compares equal.
            val = struct.unpack(">f", struct.pack(">f", val))[0]
    except (OverflowError, struct.error) as e:
        raise NbtError(ERR_RANGE, "{} out of {} range".format(val, type_name(type_id))) from e
    return val


# Float and Double keep their IEEE-754 bit pattern next to the float view.
# Going through a C double quiets a signaling binary32 NaN, so the writer
# packs the bits, never the float.
_REAL_STRUCTS = {
    t: (struct.Struct(">" + SCALAR_FORMATS[t]), struct.Struct(">" + FLOAT_BIT_FORMATS[t]))
    for t in FLOAT_BIT_FORMATS
}


def real_to_bits(type_id: int, val: float) -> int:
    as_real, as_bits = _REAL_STRUCTS[type_id]
    return as_bits.unpack(as_real.pack(val))[0]


def real_from_bits(type_id: int, bits: int) -> float:
    as_real, as_bits = _REAL_STRUCTS[type_id]
    return as_real.unpack(as_bits.pack(bits))[0]


def encode_text(text: Any) -> bytes:
    """UTF-8 encode a String payload or compound name, enforcing the u16 length."""
    if not isinstance(text, str):
        raise NbtError(ERR_INVALID_TYPE,
                       "string must be str, got {}".format(type(text).__name__))
    try:
        raw = text.encode("utf-8")
    except UnicodeEncodeError as e:
        # Lone surrogates have no UTF-8 form.
        raise NbtError(ERR_INVALID_UTF8, "string is not encodable as UTF-8") from e
    if len(raw) > MAX_STRING_BYTES:
        raise NbtError(ERR_INVALID_LENGTH,
                       "string is {} bytes, limit is {}".format(len(raw), MAX_STRING_BYTES))
    return raw


def check_array(type_id: int, values: List[Any]) -> bytes:
    """Pack typed-array elements big-endian; raises ERR_RANGE on a bad element.

    Returns the packed payload so the writer can reuse it.
    """
    for v in values:
        if isinstance(v, bool) or not isinstance(v, int):
            raise NbtError(ERR_INVALID_TYPE,
                           "{} element must be int, got {}".format(
                               type_name(type_id), type(v).__name__))
    try:
        return struct.pack(">{}{}".format(len(values), ARRAY_FORMATS[type_id]), *values)
    except struct.error as e:
        raise NbtError(ERR_RANGE,
                       "{} element out of range: {}".format(type_name(type_id), e)) from e


def _check_array(type_id: int, val: Any) -> List[int]:
    if isinstance(val, (bytes, bytearray, memoryview)):
        if type_id != TAG_BYTE_ARRAY:
            raise NbtError(ERR_INVALID_TYPE,
                           "raw bytes only initialize a ByteArray")
        raw = bytes(val)
        return list(struct.unpack(">{}b".format(len(raw)), raw))
    if isinstance(val, (str, Mapping)):
        raise NbtError(ERR_INVALID_TYPE,
                       "{} payload must be a sequence of ints".format(type_name(type_id)))
    values = list(val)
    check_array(type_id, values)
    return values


def check_list_items(items: List[Any]) -> int:
    """Verify every item is a Tag of one shared type; return that type (End if empty)."""
    if not items:
        return TAG_END
    for item in items:
        if not isinstance(item, Tag):
            raise NbtError(ERR_INVALID_TYPE,
                           "list element must be Tag, got {}".format(type(item).__name__))
    first = items[0].type_id
    for i, item in enumerate(items):
        if item.type_id != first:
            raise NbtError(ERR_INVALID_TYPE,
                           "list element {} is {}, expected {}".format(
                               i, item.type_name, type_name(first)))
    return first


def check_compound_items(entries: Dict[Any, Any]) -> None:
    for key, child in entries.items():
        if not isinstance(key, str):
            raise NbtError(ERR_INVALID_TYPE,
                           "compound key must be str, got {}".format(type(key).__name__))
        if not isinstance(child, Tag):
            raise NbtError(ERR_INVALID_TYPE,
                           "compound value for {!r} must be Tag, got {}".format(
                               key, type(child).__name__))


def _coerce(type_id: int, val: Any) -> Any:
    if type_id in INT_RANGES:
        return _check_int(type_id, val)
    if type_id in (TAG_FLOAT, TAG_DOUBLE):
        return _check_real(type_id, val)
    if type_id == TAG_STRING:
        encode_text(val)
        return val
    if type_id in ARRAY_FORMATS:
        return _check_array(type_id, val)
    if type_id == TAG_LIST:
        if isinstance(val, (str, bytes, Mapping)):
            raise NbtError(ERR_INVALID_TYPE, "List payload must be a sequence of Tag")
        items = list(val)
        check_list_items(items)
        return items
    # TAG_COMPOUND
    if not isinstance(val, Mapping):
        raise NbtError(ERR_INVALID_TYPE,
                       "Compound payload must be a mapping, got {}".format(type(val).__name__))
    entries = dict(val)
    check_compound_items(entries)
    return entries


# ── The tag ──────────────────────────────────────────────────

class Tag:
    """A single NBT value: a type code plus its payload."""

    __slots__ = ("_type_id", "_value", "_element_type", "_bits")

    def __init__(self, type_id: int, value: Any, element_type: Optional[int] = None) -> None:
        if type_id not in VALUE_TYPES:
            raise NbtError(ERR_INVALID_TYPE,
                           "cannot construct a tag of type {}".format(type_name(type_id)))
        self._type_id = type_id
        self._element_type = TAG_END
        self._bits = None
        self.value = value
        if element_type is not None:
            if type_id != TAG_LIST:
                raise NbtError(ERR_INVALID_TYPE, "element_type only applies to List")
            self._set_element_type(element_type)

    @classmethod
    def _from_wire(cls, type_id: int, value: Any, element_type: int = TAG_END,
                   bits: Optional[int] = None) -> "Tag":
        # The reader has already checked every width and length.
        tag = cls.__new__(cls)
        tag._type_id = type_id
        tag._value = value
        tag._element_type = element_type
        tag._bits = bits
        return tag

    @classmethod
    def from_bits(cls, type_id: int, bits: int) -> "Tag":
        """Float or Double tag from a raw IEEE-754 bit pattern.

        The pattern is kept exactly, NaN payload and signaling bit included.
        """
        if type_id not in _REAL_STRUCTS:
            raise NbtError(ERR_INVALID_TYPE,
                           "raw bits only initialize a Float or Double, not {}".format(
                               type_name(type_id)))
        if isinstance(bits, bool) or not isinstance(bits, int):
            raise NbtError(ERR_INVALID_TYPE,
                           "bit pattern must be int, got {}".format(type(bits).__name__))
        try:
            value = real_from_bits(type_id, bits)
        except struct.error as e:
            raise NbtError(ERR_RANGE,
                           "bit pattern 0x{:x} too wide for {}".format(bits, type_name(type_id))) from e
        return cls._from_wire(type_id, value, bits=bits)

    def _set_element_type(self, element_type: int) -> None:
        if element_type != TAG_END and element_type not in VALUE_TYPES:
            raise NbtError(ERR_INVALID_TYPE,
                           "invalid list element type 0x{:02x}".format(element_type))
        if self._value and self._value[0].type_id != element_type:
            raise NbtError(ERR_INVALID_TYPE,
                           "declared element type {} but elements are {}".format(
                               type_name(element_type), self._value[0].type_name))
        self._element_type = element_type

    @property
    def type_id(self) -> int:
        return self._type_id

    @property
    def type_name(self) -> str:
        return TYPE_NAMES[self._type_id]

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, val: Any) -> None:
        self._value = _coerce(self._type_id, val)
        if self._type_id in _REAL_STRUCTS:
            self._bits = real_to_bits(self._type_id, self._value)
        if self._type_id == TAG_LIST and self._value:
            self._element_type = self._value[0].type_id

    @property
    def bits(self) -> Optional[int]:
        """Raw IEEE-754 bit pattern of a Float or Double, None otherwise."""
        return self._bits

    @property
    def element_type(self) -> Optional[int]:
        """Element type code of a List (End for an undeclared empty list).

        None for any other variant.
        """
        if self._type_id != TAG_LIST:
            return None
        if self._value:
            return self._value[0].type_id
        return self._element_type

    # ── read accessors ───────────────────────────────────────

    def as_byte(self) -> Optional[int]:
        return self._value if self._type_id == TAG_BYTE else None

    def as_short(self) -> Optional[int]:
        return self._value if self._type_id == TAG_SHORT else None

    def as_int(self) -> Optional[int]:
        return self._value if self._type_id == TAG_INT else None

    def as_long(self) -> Optional[int]:
        return self._value if self._type_id == TAG_LONG else None

    def as_float(self) -> Optional[float]:
        return self._value if self._type_id == TAG_FLOAT else None

    def as_double(self) -> Optional[float]:
        return self._value if self._type_id == TAG_DOUBLE else None

    def as_byte_array(self) -> Optional[Tuple[int, ...]]:
        return tuple(self._value) if self._type_id == TAG_BYTE_ARRAY else None

    def as_string(self) -> Optional[str]:
        return self._value if self._type_id == TAG_STRING else None

    def as_list(self) -> Optional[Tuple["Tag", ...]]:
        return tuple(self._value) if self._type_id == TAG_LIST else None

    def as_compound(self) -> Optional[Mapping[str, "Tag"]]:
        if self._type_id != TAG_COMPOUND:
            return None
        return MappingProxyType(self._value)

    def as_int_array(self) -> Optional[Tuple[int, ...]]:
        return tuple(self._value) if self._type_id == TAG_INT_ARRAY else None

    def as_long_array(self) -> Optional[Tuple[int, ...]]:
        return tuple(self._value) if self._type_id == TAG_LONG_ARRAY else None

    # ── mutable accessors ────────────────────────────────────
    # Python scalars are immutable, so for scalar variants the mutable
    # view is the tag itself: assign through ``.value``.  Containers are
    # returned live.

    def as_byte_mut(self) -> Optional["Tag"]:
        return self if self._type_id == TAG_BYTE else None

    def as_short_mut(self) -> Optional["Tag"]:
        return self if self._type_id == TAG_SHORT else None

    def as_int_mut(self) -> Optional["Tag"]:
        return self if self._type_id == TAG_INT else None

    def as_long_mut(self) -> Optional["Tag"]:
        return self if self._type_id == TAG_LONG else None

    def as_float_mut(self) -> Optional["Tag"]:
        return self if self._type_id == TAG_FLOAT else None

    def as_double_mut(self) -> Optional["Tag"]:
        return self if self._type_id == TAG_DOUBLE else None

    def as_byte_array_mut(self) -> Optional[List[int]]:
        return self._value if self._type_id == TAG_BYTE_ARRAY else None

    def as_string_mut(self) -> Optional["Tag"]:
        return self if self._type_id == TAG_STRING else None

    def as_list_mut(self) -> Optional[List["Tag"]]:
        return self._value if self._type_id == TAG_LIST else None

    def as_compound_mut(self) -> Optional[Dict[str, "Tag"]]:
        return self._value if self._type_id == TAG_COMPOUND else None

    def as_int_array_mut(self) -> Optional[List[int]]:
        return self._value if self._type_id == TAG_INT_ARRAY else None

    def as_long_array_mut(self) -> Optional[List[int]]:
        return self._value if self._type_id == TAG_LONG_ARRAY else None

    # ── traversal and rendering ──────────────────────────────

    def count_elements(self) -> int:
        return count_elements(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tag):
            return NotImplemented
        if self._type_id != other._type_id:
            return False
        if self._type_id in _REAL_STRUCTS:
            # Bitwise, so NaN equals itself and 0.0 differs from -0.0.
            return self._bits == other._bits
        return (self.element_type == other.element_type
                and self._value == other._value)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self._type_id == TAG_LIST and not self._value:
            return "Tag({}, [], element_type={})".format(
                self.type_name, type_name(self._element_type))
        return "Tag({}, {!r})".format(self.type_name, self._value)

    def __str__(self) -> str:
        if self._type_id == TAG_COMPOUND:
            return "{" + ", ".join(
                "{}: {}".format(k, v) for k, v in self._value.items()) + "}"
        if self._type_id in ARRAY_FORMATS or self._type_id == TAG_LIST:
            return "[" + ", ".join(str(v) for v in self._value) + "]"
        return str(self._value)


def count_elements(tag: Tag) -> int:
    """Number of scalar leaves reachable from *tag*.

    Scalars and Strings count 1, typed arrays count their length, Lists and
    Compounds count the sum over their children.
    """
    t = tag.type_id
    if t in ARRAY_FORMATS:
        return len(tag.value)
    if t == TAG_LIST:
        return sum(count_elements(child) for child in tag.value)
    if t == TAG_COMPOUND:
        return sum(count_elements(child) for child in tag.value.values())
    return 1


# ── Constructors ─────────────────────────────────────────────

def byte_tag(value: int) -> Tag:
    return Tag(TAG_BYTE, value)


def short_tag(value: int) -> Tag:
    return Tag(TAG_SHORT, value)


def int_tag(value: int) -> Tag:
    return Tag(TAG_INT, value)


def long_tag(value: int) -> Tag:
    return Tag(TAG_LONG, value)


def float_tag(value: float) -> Tag:
    """Float tag; *value* is rounded to the nearest binary32.

    Use ``Tag.from_bits(TAG_FLOAT, bits)`` for an exact bit pattern.
    """
    return Tag(TAG_FLOAT, value)


def double_tag(value: float) -> Tag:
    return Tag(TAG_DOUBLE, value)


def byte_array_tag(values: Iterable[int] = ()) -> Tag:
    """ByteArray tag from signed ints, or from raw ``bytes`` reinterpreted as signed."""
    return Tag(TAG_BYTE_ARRAY, values)


def string_tag(value: str) -> Tag:
    return Tag(TAG_STRING, value)


def list_tag(items: Iterable[Tag] = (), element_type: Optional[int] = None) -> Tag:
    """List tag.  *element_type* need only be given to declare an empty list's type."""
    return Tag(TAG_LIST, items, element_type=element_type)


def compound_tag(entries: Optional[Mapping[str, Tag]] = None) -> Tag:
    return Tag(TAG_COMPOUND, entries if entries is not None else {})


def int_array_tag(values: Iterable[int] = ()) -> Tag:
    return Tag(TAG_INT_ARRAY, values)


def long_array_tag(values: Iterable[int] = ()) -> Tag:
    return Tag(TAG_LONG_ARRAY, values)
