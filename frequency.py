"""
Частотный анализ входных данных.
Поток бит разбивается на символы фиксированной ширины (1..8 бит);
неполная последняя группа дополняется нулями справа и тоже учитывается.
"""

from collections import Counter
from math import gcd
from typing import Iterator


MIN_WIDTH = 1
MAX_WIDTH = 8


def check_width(width: int):
    if not MIN_WIDTH <= width <= MAX_WIDTH:
        raise ValueError(f"Symbol width must be in {MIN_WIDTH}..{MAX_WIDTH}, got {width}")


def _split(chunk: int, bits: int, width: int) -> Iterator[int]:
    mask = (1 << width) - 1
    for shift in range(bits - width, -1, -width):
        yield (chunk >> shift) & mask


def iter_symbols(width: int, data: bytes) -> Iterator[int]:
    check_width(width)

    # группа из group_bytes байт содержит целое число символов
    group_bytes = width // gcd(width, 8)
    whole = len(data) - len(data) % group_bytes

    for pos in range(0, whole, group_bytes):
        chunk = int.from_bytes(data[pos:pos + group_bytes], 'big')
        yield from _split(chunk, group_bytes * 8, width)

    tail = data[whole:]
    if tail:
        bits = len(tail) * 8
        padded = -(-bits // width) * width
        chunk = int.from_bytes(tail, 'big') << (padded - bits)
        yield from _split(chunk, padded, width)


def observe(width: int, data: bytes) -> Counter:
    return Counter(iter_symbols(width, data))
