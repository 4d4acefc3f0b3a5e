#!/usr/bin/env python3
# tools/fuzz_runner.py
#
# Randomized round-trip fuzzing for nbtcodec.
#
# Two fuzz categories:
#   A) random VALID tag trees -> dumps -> loads: tree equality, byte
#      equality on re-encode, and leaf count agreement
#   B) random byte corruption of valid documents: the reader must either
#      return a tree or raise NbtError, never anything else
#
# Any violation prints a minimal repro payload and exits non-zero.

import os, sys, random
from typing import Any, Dict

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT)

import nbtcodec
from nbtcodec import NbtError

SEED = int(os.environ.get("NBT_SEED", "4242"))
ROUNDS = int(os.environ.get("NBT_FUZZ_ROUNDS", "2000"))
MAX_GEN_DEPTH = int(os.environ.get("NBT_GEN_MAX_DEPTH", "5"))

random.seed(SEED)

# --- generators ---

def rand_text(nmax: int) -> str:
    out = []
    for _ in range(random.randint(0, nmax)):
        r = random.random()
        if r < 0.80:
            out.append(chr(random.randint(0x20, 0x7E)))
        elif r < 0.95:
            out.append(chr(random.randint(0xA0, 0xD7FF)))
        else:
            out.append(chr(random.randint(0x10000, 0x10FFFF)))
    return "".join(out)

# Any 32- or 64-bit pattern, NaN payloads and infinities included.
def rand_float() -> nbtcodec.Tag:
    return nbtcodec.Tag.from_bits(nbtcodec.TAG_FLOAT, random.getrandbits(32))

def rand_double() -> nbtcodec.Tag:
    if random.random() < 0.5:
        return nbtcodec.double_tag(random.uniform(-1e12, 1e12))
    return nbtcodec.Tag.from_bits(nbtcodec.TAG_DOUBLE, random.getrandbits(64))

SCALARS = [
    lambda: nbtcodec.byte_tag(random.randint(-128, 127)),
    lambda: nbtcodec.short_tag(random.randint(-(2**15), 2**15 - 1)),
    lambda: nbtcodec.int_tag(random.randint(-(2**31), 2**31 - 1)),
    lambda: nbtcodec.long_tag(random.randint(-(2**63), 2**63 - 1)),
    rand_float,
    rand_double,
    lambda: nbtcodec.string_tag(rand_text(16)),
    lambda: nbtcodec.byte_array_tag(bytes(random.getrandbits(8) for _ in range(random.randint(0, 12)))),
    lambda: nbtcodec.int_array_tag([random.randint(-(2**31), 2**31 - 1) for _ in range(random.randint(0, 6))]),
    lambda: nbtcodec.long_array_tag([random.randint(-(2**63), 2**63 - 1) for _ in range(random.randint(0, 6))]),
]

def gen_compound(depth: int) -> nbtcodec.Tag:
    entries: Dict[str, Any] = {}
    for _ in range(random.randint(0, 5)):
        entries[rand_text(8)] = gen_value(depth + 1)
    return nbtcodec.compound_tag(entries)

def gen_list(depth: int) -> nbtcodec.Tag:
    n = random.randint(0, 4)
    if n == 0:
        return nbtcodec.list_tag(element_type=random.choice([0x00, 0x03, 0x0A]))
    # One generator per list keeps the elements homogeneous.
    if depth < MAX_GEN_DEPTH and random.random() < 0.3:
        make = gen_compound if random.random() < 0.5 else gen_list
        return nbtcodec.list_tag([make(depth + 1) for _ in range(n)])
    make_scalar = random.choice(SCALARS)
    return nbtcodec.list_tag([make_scalar() for _ in range(n)])

def gen_value(depth: int) -> nbtcodec.Tag:
    if depth >= MAX_GEN_DEPTH or random.random() < 0.55:
        return random.choice(SCALARS)()
    if random.random() < 0.5:
        return gen_compound(depth)
    return gen_list(depth)

def corrupt(data: bytes) -> bytes:
    b = bytearray(data)
    for _ in range(random.randint(1, 4)):
        r = random.random()
        if r < 0.6 and b:
            b[random.randrange(len(b))] = random.getrandbits(8)
        elif r < 0.8 and b:
            del b[random.randrange(len(b)):]
        else:
            b.insert(random.randint(0, len(b)), random.getrandbits(8))
    return bytes(b)

def fail(label: str, ctx: Dict[str, Any]) -> None:
    print("VIOLATION:", label)
    for k, v in ctx.items():
        print("  {}: {}".format(k, v)[:4000])
    raise SystemExit(1)

def main() -> int:
    for i in range(ROUNDS):
        tree = gen_compound(0)
        raw = nbtcodec.dumps(tree)

        # A) round trip
        back = nbtcodec.loads(raw)
        if back != tree:
            fail("A tree round trip", {"round": i, "hex": raw.hex()})
        if nbtcodec.dumps(back) != raw:
            fail("A byte round trip", {"round": i, "hex": raw.hex()})
        if nbtcodec.count_elements(back) != nbtcodec.count_elements(tree):
            fail("A leaf count", {"round": i, "hex": raw.hex()})

        # B) corruption
        bad = corrupt(raw)
        try:
            nbtcodec.loads(bad)
        except NbtError:
            pass
        except Exception as e:
            fail("B unexpected {}".format(type(e).__name__), {"round": i, "hex": bad.hex(), "error": e})

    print(f"OK: fuzz rounds={ROUNDS} seed={SEED} (no violations)")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
