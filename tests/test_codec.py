"""Unit tests for the reader and writer.

Byte-exact golden documents live in conformance/nbt_vectors.json (see
test_conformance.py); these tests cover the API contracts, the round-trip
properties and the safety limits.
"""

from __future__ import annotations

import io
import math
import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from nbtcodec import (
    ERR_INVALID_LENGTH,
    ERR_INVALID_TYPE,
    ERR_INVALID_UTF8,
    ERR_IO,
    ERR_LIMIT_DEPTH,
    ERR_RANGE,
    TAG_COMPOUND,
    TAG_DOUBLE,
    TAG_FLOAT,
    TAG_INT,
    NbtError,
    Tag,
    byte_array_tag,
    byte_tag,
    compound_tag,
    count_elements,
    double_tag,
    dumps,
    float_tag,
    int_array_tag,
    int_tag,
    list_tag,
    loads,
    long_array_tag,
    long_tag,
    read,
    read_body,
    read_named,
    short_tag,
    string_tag,
    write,
    write_body,
)


def _full_tree():
    return compound_tag({
        "byte": byte_tag(-5),
        "short": short_tag(1234),
        "int": int_tag(-(2**31)),
        "long": long_tag(2**63 - 1),
        "float": float_tag(3.25),
        "double": double_tag(-1e-300),
        "bytes": byte_array_tag(b"\x00\x7f\x80\xff"),
        "string": string_tag("日本語 ok"),
        "ints": list_tag([int_tag(1), int_tag(2)]),
        "empty": list_tag(),
        "typed_empty": list_tag(element_type=TAG_COMPOUND),
        "nested": list_tag([list_tag([string_tag("a")]), list_tag()]),
        "compounds": list_tag([compound_tag(), compound_tag({"k": long_tag(1)})]),
        "inner": compound_tag({"deeper": compound_tag({"x": int_array_tag([7, 8])})}),
        "int_array": int_array_tag([1, -1, 2**31 - 1]),
        "long_array": long_array_tag([-(2**63), 0]),
    })


def _nested_compounds(levels: int):
    """Root plus *levels* nested compounds."""
    tag = compound_tag()
    for _ in range(levels):
        tag = compound_tag({"n": tag})
    return tag


class _Trickle:
    """Source that hands out one byte per read() call."""

    def __init__(self, data: bytes) -> None:
        self._buf = io.BytesIO(data)

    def read(self, n: int) -> bytes:
        return self._buf.read(min(n, 1))


class _Broken:
    def read(self, n: int) -> bytes:
        raise OSError("device gone")

    def write(self, data: bytes) -> int:
        raise OSError("disk full")


# ── End-to-end scenarios ──────────────────────────────────────

class TestScenarios(unittest.TestCase):
    def test_empty_root(self):
        root = loads(b"\x0a\x00\x00\x00")
        self.assertEqual(root, compound_tag())
        self.assertEqual(count_elements(root), 0)
        self.assertEqual(dumps(root), b"\x0a\x00\x00\x00")

    def test_single_byte_tag(self):
        raw = bytes.fromhex("0a0000 01 0003 666f6f 2a 00")
        root = loads(raw)
        self.assertEqual(root, compound_tag({"foo": byte_tag(42)}))
        self.assertEqual(count_elements(root), 1)
        self.assertEqual(dumps(root), raw)

    def test_list_of_compounds(self):
        root = compound_tag({"xs": list_tag([
            compound_tag({"n": int_tag(1)}),
            compound_tag({"n": int_tag(2)}),
        ])})
        raw = dumps(root)
        self.assertEqual(raw, bytes.fromhex(
            "0a0000 09 0002 7873 0a 00000002"
            " 03 0001 6e 00000001 00"
            " 03 0001 6e 00000002 00"
            " 00"))
        back = loads(raw)
        self.assertEqual(back.as_compound()["xs"].element_type, TAG_COMPOUND)
        self.assertEqual(count_elements(back), 2)

    def test_utf8_name(self):
        raw = dumps(compound_tag({"héllo": byte_tag(7)}))
        self.assertEqual(raw[3], 0x01)
        self.assertEqual(raw[4:6], b"\x00\x06")
        self.assertEqual(raw[6:12], "héllo".encode("utf-8"))
        self.assertEqual(list(loads(raw).as_compound()), ["héllo"])

    def test_int_array_payload(self):
        raw = dumps(compound_tag({"a": int_array_tag([1, -1, 2**31 - 1])}))
        self.assertEqual(raw[7:11], b"\x00\x00\x00\x03")
        self.assertEqual(raw[11:23], bytes.fromhex("00000001 ffffffff 7fffffff"))
        self.assertEqual(loads(raw).as_compound()["a"].as_int_array(), (1, -1, 2**31 - 1))


# ── Round-trip properties ─────────────────────────────────────

class TestRoundTrip(unittest.TestCase):
    def test_tree_round_trip(self):
        tree = _full_tree()
        self.assertEqual(loads(dumps(tree)), tree)

    def test_byte_round_trip(self):
        raw = dumps(_full_tree())
        self.assertEqual(dumps(loads(raw)), raw)

    def test_compound_order_is_preserved(self):
        tree = compound_tag({"z": byte_tag(1), "a": byte_tag(2), "m": byte_tag(3)})
        self.assertEqual(list(loads(dumps(tree)).as_compound()), ["z", "a", "m"])

    def test_empty_list_keeps_declared_type(self):
        tree = compound_tag({"l": list_tag(element_type=TAG_INT)})
        raw = dumps(tree)
        self.assertIn(b"\x09\x00\x01l\x03\x00\x00\x00\x00", raw)
        self.assertEqual(loads(raw).as_compound()["l"].element_type, TAG_INT)

    def test_nan_round_trip(self):
        tree = compound_tag({"f": float_tag(float("nan")), "d": double_tag(float("nan"))})
        back = loads(dumps(tree)).as_compound()
        self.assertTrue(math.isnan(back["f"].as_float()))
        self.assertTrue(math.isnan(back["d"].as_double()))
        self.assertEqual(loads(dumps(tree)), tree)

    def test_nan_payloads_survive_byte_for_byte(self):
        for hexdoc in ["0a0000 05 0001 66 7f800001 00",
                       "0a0000 05 0001 66 ffc00123 00",
                       "0a0000 06 0001 64 7ff0000000000001 00"]:
            with self.subTest(doc=hexdoc):
                raw = bytes.fromhex(hexdoc)
                self.assertEqual(dumps(loads(raw)), raw)
                self.assertEqual(loads(raw), loads(raw))

    def test_constructed_bit_pattern_is_written(self):
        tree = compound_tag({"f": Tag.from_bits(TAG_FLOAT, 0x7F800001),
                             "d": Tag.from_bits(TAG_DOUBLE, 0xFFF8000000000002)})
        raw = dumps(tree)
        self.assertIn(b"\x7f\x80\x00\x01", raw)
        self.assertIn(b"\xff\xf8\x00\x00\x00\x00\x00\x02", raw)
        self.assertEqual(loads(raw), tree)

    def test_root_name(self):
        raw = dumps(compound_tag({"a": byte_tag(1)}), "Level")
        self.assertEqual(raw[:8], b"\x0a\x00\x05Level")
        name, root = read_named(io.BytesIO(raw))
        self.assertEqual(name, "Level")
        self.assertEqual(root, compound_tag({"a": byte_tag(1)}))

    def test_body_only_round_trip(self):
        tree = _full_tree()
        buf = io.BytesIO()
        write_body(tree, buf)
        self.assertEqual(buf.getvalue(), dumps(tree)[3:])
        buf.seek(0)
        self.assertEqual(read_body(buf), tree)

    def test_mutation_then_write(self):
        root = loads(bytes.fromhex("0a0000 03 0001 61 00000001 00"))
        root.as_compound()["a"].as_int_mut().value = 2
        root.as_compound_mut()["b"] = string_tag("new")
        self.assertEqual(loads(dumps(root)), compound_tag({
            "a": int_tag(2), "b": string_tag("new")}))


# ── Reader behavior ───────────────────────────────────────────

class TestReader(unittest.TestCase):
    def test_big_endian(self):
        raw = bytes.fromhex("0a0000 03 0001 61 00000102 00")
        swapped = bytes.fromhex("0a0000 03 0001 61 02010000 00")
        self.assertEqual(loads(raw).as_compound()["a"].as_int(), 0x0102)
        self.assertEqual(loads(swapped).as_compound()["a"].as_int(), 0x02010000)

    def test_trailing_bytes_ignored(self):
        self.assertEqual(loads(b"\x0a\x00\x00\x00garbage"), compound_tag())

    def test_stream_left_after_terminator(self):
        buf = io.BytesIO(b"\x0a\x00\x00\x00\x0a\x00\x00\x00")
        read(buf)
        self.assertEqual(buf.tell(), 4)

    def test_short_reads_are_retried(self):
        raw = dumps(_full_tree())
        self.assertEqual(read(_Trickle(raw)), _full_tree())

    def test_source_failure_is_io_error(self):
        with self.assertRaises(NbtError) as ctx:
            read(_Broken())
        self.assertEqual(ctx.exception.code, ERR_IO)
        self.assertIsInstance(ctx.exception.__cause__, OSError)

    def test_duplicate_names_last_wins(self):
        raw = bytes.fromhex("0a0000 01 0001 61 01 01 0001 61 02 00")
        self.assertEqual(loads(raw), compound_tag({"a": byte_tag(2)}))

    def test_non_utf8_list_string(self):
        raw = bytes.fromhex("0a0000 09 0001 6c 08 00000001 0001 ff 00")
        with self.assertRaises(NbtError) as ctx:
            loads(raw)
        self.assertEqual(ctx.exception.code, ERR_INVALID_UTF8)

    def test_max_length(self):
        raw = dumps(compound_tag({"a": int_array_tag(range(10))}))
        self.assertEqual(count_elements(loads(raw, max_length=10)), 10)
        with self.assertRaises(NbtError) as ctx:
            loads(raw, max_length=9)
        self.assertEqual(ctx.exception.code, ERR_INVALID_LENGTH)

    def test_huge_declared_length_fails_fast(self):
        raw = bytes.fromhex("0a0000 0c 0001 61 7fffffff 0000")
        with self.assertRaises(NbtError) as ctx:
            loads(raw)
        self.assertEqual(ctx.exception.code, ERR_IO)

    def test_depth_limit(self):
        raw = dumps(_nested_compounds(4))
        self.assertEqual(loads(raw, max_depth=5), _nested_compounds(4))
        with self.assertRaises(NbtError) as ctx:
            loads(raw, max_depth=4)
        self.assertEqual(ctx.exception.code, ERR_LIMIT_DEPTH)

    def test_hostile_nesting_hits_depth_limit(self):
        # 1000 nested lists of lists, never terminated.
        raw = b"\x0a\x00\x00\x09\x00\x01l" + b"\x09\x00\x00\x00\x01" * 1000
        with self.assertRaises(NbtError) as ctx:
            loads(raw)
        self.assertEqual(ctx.exception.code, ERR_LIMIT_DEPTH)


# ── Writer behavior ───────────────────────────────────────────

class TestWriter(unittest.TestCase):
    def test_non_compound_root(self):
        buf = io.BytesIO()
        with self.assertRaises(NbtError) as ctx:
            write(byte_tag(1), buf)
        self.assertEqual(ctx.exception.code, ERR_INVALID_TYPE)
        self.assertEqual(buf.getvalue(), b"")

    def test_non_tag_root(self):
        with self.assertRaises(NbtError) as ctx:
            dumps({"a": byte_tag(1)})  # type: ignore[arg-type]
        self.assertEqual(ctx.exception.code, ERR_INVALID_TYPE)

    def test_mixed_list_after_mutation(self):
        tag = list_tag([int_tag(1)])
        tag.as_list_mut().append(byte_tag(2))
        with self.assertRaises(NbtError) as ctx:
            dumps(compound_tag({"l": tag}))
        self.assertEqual(ctx.exception.code, ERR_INVALID_TYPE)

    def test_failed_write_leaves_sink_empty(self):
        root = compound_tag({"a": int_tag(1), "l": list_tag([int_tag(1)])})
        root.as_compound()["l"].as_list_mut().append(string_tag("x"))
        for emit in (lambda sink: write(root, sink, "r"), lambda sink: write_body(root, sink)):
            buf = io.BytesIO()
            with self.assertRaises(NbtError) as ctx:
                emit(buf)
            self.assertEqual(ctx.exception.code, ERR_INVALID_TYPE)
            self.assertEqual(buf.getvalue(), b"")

    def test_out_of_range_element_leaves_sink_empty(self):
        root = compound_tag({"a": byte_tag(1), "arr": int_array_tag([1])})
        root.as_compound()["arr"].as_int_array_mut().append(2**31)
        buf = io.BytesIO()
        with self.assertRaises(NbtError) as ctx:
            write(root, buf)
        self.assertEqual(ctx.exception.code, ERR_RANGE)
        self.assertEqual(buf.getvalue(), b"")

    def test_whole_document_in_one_write(self):
        calls = []

        class Sink:
            def write(self, data):
                calls.append(bytes(data))

        write(_full_tree(), Sink(), "n")
        self.assertEqual(calls, [dumps(_full_tree(), "n")])

    def test_array_element_out_of_range_after_mutation(self):
        tag = long_array_tag([1])
        tag.as_long_array_mut().append(2**64)
        with self.assertRaises(NbtError) as ctx:
            dumps(compound_tag({"a": tag}))
        self.assertEqual(ctx.exception.code, ERR_RANGE)

    def test_bad_key_after_mutation(self):
        root = compound_tag()
        root.as_compound_mut()[5] = byte_tag(1)  # type: ignore[index]
        with self.assertRaises(NbtError) as ctx:
            dumps(root)
        self.assertEqual(ctx.exception.code, ERR_INVALID_TYPE)

    def test_name_too_long(self):
        with self.assertRaises(NbtError) as ctx:
            dumps(compound_tag({"n" * 65536: byte_tag(1)}))
        self.assertEqual(ctx.exception.code, ERR_INVALID_LENGTH)

    def test_root_name_too_long(self):
        with self.assertRaises(NbtError) as ctx:
            dumps(compound_tag(), "n" * 65536)
        self.assertEqual(ctx.exception.code, ERR_INVALID_LENGTH)

    def test_sink_failure_is_io_error(self):
        with self.assertRaises(NbtError) as ctx:
            write(compound_tag(), _Broken())
        self.assertEqual(ctx.exception.code, ERR_IO)

    def test_every_compound_terminated(self):
        raw = dumps(compound_tag({"a": compound_tag({"b": compound_tag()})}))
        self.assertEqual(raw, bytes.fromhex("0a0000 0a 0001 61 0a 0001 62 00 00 00"))

    def test_depth_limit(self):
        tree = _nested_compounds(4)
        dumps(tree, max_depth=5)
        with self.assertRaises(NbtError) as ctx:
            dumps(tree, max_depth=4)
        self.assertEqual(ctx.exception.code, ERR_LIMIT_DEPTH)


if __name__ == "__main__":
    unittest.main()
