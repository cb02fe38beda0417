"""Pure-Python MD5 and SHA-256 used when hashlib refuses an algorithm.

Both classes follow the ``hashlib`` object interface (``update``, ``digest``,
``hexdigest``, ``copy``) and keep the algorithm's real internal state between
updates: the chaining words, the partial block buffer and the total byte
count. Output is bit-identical to ``hashlib``.
"""

from __future__ import annotations

import math
import struct
from typing import List, Sequence

_MASK = 0xFFFFFFFF
_BLOCK = 64


def _rotl(value: int, shift: int) -> int:
    return ((value << shift) | (value >> (32 - shift))) & _MASK


def _rotr(value: int, shift: int) -> int:
    return ((value >> shift) | (value << (32 - shift))) & _MASK


class _BlockHash:
    """Merkle-Damgard construction over 64-byte blocks."""

    name = ""
    digest_size = 0
    block_size = _BLOCK
    _INITIAL: Sequence[int] = ()
    _LENGTH_FORMAT = ""
    _WORD_FORMAT = ""

    def __init__(self, data: bytes = b"") -> None:
        self._state: List[int] = list(self._INITIAL)
        self._buffer = b""
        self._count = 0
        if data:
            self.update(data)

    def update(self, data: bytes) -> None:
        """Absorb ``data`` into the running state."""
        data = bytes(data)
        self._count += len(data)
        buffer = self._buffer + data
        full = len(buffer) - len(buffer) % _BLOCK
        state = self._state
        for start in range(0, full, _BLOCK):
            state = self._compress(state, buffer[start : start + _BLOCK])
        self._state = state
        self._buffer = buffer[full:]

    def digest(self) -> bytes:
        """Return the digest of everything absorbed so far."""
        bit_length = (self._count * 8) & 0xFFFFFFFFFFFFFFFF
        padding = b"\x80" + b"\x00" * ((55 - self._count) % _BLOCK)
        tail = self._buffer + padding + struct.pack(self._LENGTH_FORMAT, bit_length)
        state = self._state
        for start in range(0, len(tail), _BLOCK):
            state = self._compress(state, tail[start : start + _BLOCK])
        return struct.pack(self._WORD_FORMAT, *state)

    def hexdigest(self) -> str:
        return self.digest().hex()

    def copy(self) -> "_BlockHash":
        clone = type(self).__new__(type(self))
        clone._state = list(self._state)
        clone._buffer = self._buffer
        clone._count = self._count
        return clone

    @staticmethod
    def _compress(state: List[int], block: bytes) -> List[int]:
        raise NotImplementedError


_MD5_SHIFTS = [7, 12, 17, 22] * 4 + [5, 9, 14, 20] * 4 + [4, 11, 16, 23] * 4 + [6, 10, 15, 21] * 4
_MD5_CONSTANTS = [int(abs(math.sin(i + 1)) * 2**32) & _MASK for i in range(64)]
_MD5_INDEX = (
    list(range(16))
    + [(5 * i + 1) % 16 for i in range(16, 32)]
    + [(3 * i + 5) % 16 for i in range(32, 48)]
    + [(7 * i) % 16 for i in range(48, 64)]
)


class SoftwareMD5(_BlockHash):
    """RFC 1321 MD5."""

    name = "md5"
    digest_size = 16
    _INITIAL = (0x67452301, 0xEFCDAB89, 0x98BADCFE, 0x10325476)
    _LENGTH_FORMAT = "<Q"
    _WORD_FORMAT = "<4I"

    @staticmethod
    def _compress(state: List[int], block: bytes) -> List[int]:
        words = struct.unpack("<16I", block)
        a, b, c, d = state
        for i in range(64):
            if i < 16:
                f = (b & c) | (~b & d)
            elif i < 32:
                f = (d & b) | (~d & c)
            elif i < 48:
                f = b ^ c ^ d
            else:
                f = c ^ (b | ~d)
            f = (f + a + _MD5_CONSTANTS[i] + words[_MD5_INDEX[i]]) & _MASK
            a, d, c = d, c, b
            b = (b + _rotl(f, _MD5_SHIFTS[i])) & _MASK
        return [(x + y) & _MASK for x, y in zip(state, (a, b, c, d))]


_SHA256_CONSTANTS = (
    0x428A2F98, 0x71374491, 0xB5C0FBCF, 0xE9B5DBA5, 0x3956C25B, 0x59F111F1, 0x923F82A4, 0xAB1C5ED5,
    0xD807AA98, 0x12835B01, 0x243185BE, 0x550C7DC3, 0x72BE5D74, 0x80DEB1FE, 0x9BDC06A7, 0xC19BF174,
    0xE49B69C1, 0xEFBE4786, 0x0FC19DC6, 0x240CA1CC, 0x2DE92C6F, 0x4A7484AA, 0x5CB0A9DC, 0x76F988DA,
    0x983E5152, 0xA831C66D, 0xB00327C8, 0xBF597FC7, 0xC6E00BF3, 0xD5A79147, 0x06CA6351, 0x14292967,
    0x27B70A85, 0x2E1B2138, 0x4D2C6DFC, 0x53380D13, 0x650A7354, 0x766A0ABB, 0x81C2C92E, 0x92722C85,
    0xA2BFE8A1, 0xA81A664B, 0xC24B8B70, 0xC76C51A3, 0xD192E819, 0xD6990624, 0xF40E3585, 0x106AA070,
    0x19A4C116, 0x1E376C08, 0x2748774C, 0x34B0BCB5, 0x391C0CB3, 0x4ED8AA4A, 0x5B9CCA4F, 0x682E6FF3,
    0x748F82EE, 0x78A5636F, 0x84C87814, 0x8CC70208, 0x90BEFFFA, 0xA4506CEB, 0xBEF9A3F7, 0xC67178F2,
)  # fmt: skip


class SoftwareSHA256(_BlockHash):
    """FIPS 180-4 SHA-256."""

    name = "sha256"
    digest_size = 32
    _INITIAL = (
        0x6A09E667, 0xBB67AE85, 0x3C6EF372, 0xA54FF53A,
        0x510E527F, 0x9B05688C, 0x1F83D9AB, 0x5BE0CD19,
    )  # fmt: skip
    _LENGTH_FORMAT = ">Q"
    _WORD_FORMAT = ">8I"

    @staticmethod
    def _compress(state: List[int], block: bytes) -> List[int]:
        w = list(struct.unpack(">16I", block))
        for i in range(16, 64):
            s0 = _rotr(w[i - 15], 7) ^ _rotr(w[i - 15], 18) ^ (w[i - 15] >> 3)
            s1 = _rotr(w[i - 2], 17) ^ _rotr(w[i - 2], 19) ^ (w[i - 2] >> 10)
            w.append((w[i - 16] + s0 + w[i - 7] + s1) & _MASK)

        a, b, c, d, e, f, g, h = state
        for i in range(64):
            s1 = _rotr(e, 6) ^ _rotr(e, 11) ^ _rotr(e, 25)
            choice = (e & f) ^ (~e & g)
            t1 = (h + s1 + choice + _SHA256_CONSTANTS[i] + w[i]) & _MASK
            s0 = _rotr(a, 2) ^ _rotr(a, 13) ^ _rotr(a, 22)
            majority = (a & b) ^ (a & c) ^ (b & c)
            t2 = (s0 + majority) & _MASK
            h, g, f, e = g, f, e, (d + t1) & _MASK
            d, c, b, a = c, b, a, (t1 + t2) & _MASK
        return [(x + y) & _MASK for x, y in zip(state, (a, b, c, d, e, f, g, h))]


SOFTWARE_ALGORITHMS = {
    "md5": SoftwareMD5,
    "sha256": SoftwareSHA256,
}


__all__ = ["SoftwareMD5", "SoftwareSHA256", "SOFTWARE_ALGORITHMS"]
