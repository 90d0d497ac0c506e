"""
Побитовая запись и чтение поверх байтовых буферов.
Биты упаковываются начиная со старшего (MSB-first).
"""

from typing import Iterable, Iterator


class BitWriter:
    def __init__(self):
        self.buffer = bytearray()
        self.value = 0
        self.fill = 0

    def push_bit(self, bit: int):
        self.value = (self.value << 1) | (1 if bit else 0)
        self.fill += 1

        if self.fill == 8:
            self.buffer.append(self.value)
            self.value = 0
            self.fill = 0

    def push_code(self, code: int, length: int):
        self.value = (self.value << length) | (code & ((1 << length) - 1))
        self.fill += length

        while self.fill >= 8:
            self.fill -= 8
            self.buffer.append((self.value >> self.fill) & 0xFF)

        self.value &= (1 << self.fill) - 1

    @property
    def byte_count(self) -> int:
        return len(self.buffer)

    def getvalue(self) -> bytes:
        return bytes(self.buffer)

    def flush(self) -> bytes:
        # дописываем остаток нулями до целого байта
        if self.fill:
            self.buffer.append((self.value << (8 - self.fill)) & 0xFF)
            self.value = 0
            self.fill = 0

        return bytes(self.buffer)


def read_bits(source: Iterable[int]) -> Iterator[int]:
    for byte in source:
        for i in range(7, -1, -1):
            yield (byte >> i) & 1
