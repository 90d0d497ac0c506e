"""
Побайтовые потоки ввода/вывода поверх бинарных файловых объектов.
"""

from typing import BinaryIO, Tuple


class InputStream:
    def __init__(self, fileobj: BinaryIO):
        self.file = fileobj

    def read_byte(self) -> Tuple[int, bool]:
        """Возвращает (байт, True) или (0, False), если поток закончился."""
        chunk = self.file.read(1)
        if not chunk:
            return 0, False
        return chunk[0], True

    def read_all(self) -> bytes:
        data = bytearray()

        while True:
            value, has_more = self.read_byte()
            if not has_more:
                break
            data.append(value)

        return bytes(data)


class OutputStream:
    def __init__(self, fileobj: BinaryIO):
        self.file = fileobj
        self.written = 0

    def write_byte(self, value: int):
        self.file.write(bytes((value & 0xFF,)))
        self.written += 1

    def write(self, data: bytes):
        for value in data:
            self.write_byte(value)
