"""
Определяет структуру сжатого контейнера и методы чтения/записи.

Контейнер: ширина символа (1 байт), исходный размер (8 байт),
число записей словаря (8 байт), записи словаря по 20 байт
(длина кода 4 байта, код 8 байт, символ 8 байт), затем упакованные биты.
Все числа big-endian.
"""

import io
import struct
from dataclasses import dataclass
from typing import Dict, List, Tuple

from loguru import logger

from bitstream import BitWriter, read_bits
from frequency import MAX_WIDTH, MIN_WIDTH, iter_symbols


HEADER = struct.Struct('>BQQ')
ENTRY = struct.Struct('>IQQ')
HEADER_SIZE = HEADER.size
ENTRY_SIZE = ENTRY.size
MAX_CODE_LENGTH = 64


class MalformedContainer(ValueError):
    pass


class UnknownCode(ValueError):
    pass


@dataclass
class DictEntry:
    bit_length: int
    code: int
    symbol: int


@dataclass
class ContainerHeader:
    width: int
    original_size: int
    entry_count: int


class CodecFormat:
    @staticmethod
    def serialize(width: int, data: bytes, dictionary: List[DictEntry]) -> bytes:
        output = io.BytesIO()

        output.write(HEADER.pack(width, len(data), len(dictionary)))

        encode_table: Dict[int, DictEntry] = {}
        for entry in dictionary:
            output.write(ENTRY.pack(entry.bit_length, entry.code, entry.symbol))
            encode_table[entry.symbol] = entry

        writer = BitWriter()
        for symbol in iter_symbols(width, data):
            entry = encode_table[symbol]
            writer.push_code(entry.code, entry.bit_length)

        output.write(writer.flush())

        return output.getvalue()

    @staticmethod
    def read_header(data: bytes) -> Tuple[ContainerHeader, List[DictEntry], int]:
        if len(data) < HEADER_SIZE:
            raise MalformedContainer("Container too small: cannot read header")

        width, original_size, entry_count = HEADER.unpack_from(data, 0)
        pos = HEADER_SIZE

        if not MIN_WIDTH <= width <= MAX_WIDTH:
            raise MalformedContainer(f"Invalid symbol width: {width}")

        if entry_count > (len(data) - pos) // ENTRY_SIZE:
            raise MalformedContainer(
                f"Corrupted dictionary: {entry_count} entries declared, "
                f"{len(data) - pos} bytes left")

        if original_size > 0 and entry_count == 0:
            raise MalformedContainer("Corrupted dictionary: no entries for non-empty data")

        header = ContainerHeader(width, original_size, entry_count)

        entries = []
        for _ in range(entry_count):
            bit_length, code, symbol = ENTRY.unpack_from(data, pos)
            pos += ENTRY_SIZE

            if not 0 < bit_length <= MAX_CODE_LENGTH:
                raise MalformedContainer(f"Corrupted entry: code length {bit_length}")
            if code >> bit_length:
                raise MalformedContainer(f"Corrupted entry: code {code} longer than {bit_length} bits")
            if symbol >> width:
                raise MalformedContainer(f"Corrupted entry: symbol {symbol} wider than {width} bits")

            entries.append(DictEntry(bit_length, code, symbol))

        return header, entries, pos

    @staticmethod
    def deserialize(data: bytes) -> bytes:
        header, entries, pos = CodecFormat.read_header(data)

        if header.original_size == 0:
            return b''

        decode_table: Dict[Tuple[int, int], int] = {}
        for entry in entries:
            key = (entry.bit_length, entry.code)
            if key in decode_table:
                raise MalformedContainer(f"Corrupted dictionary: duplicate code {key}")
            decode_table[key] = entry.symbol

        max_length = max(entry.bit_length for entry in entries)

        output = CodecFormat._decode_payload(
            memoryview(data)[pos:], header, decode_table, max_length)

        logger.debug(f"Decoded {len(output)} bytes, width {header.width}, "
                     f"{header.entry_count} dictionary entries")

        return output

    @staticmethod
    def _decode_payload(payload, header: ContainerHeader,
                        decode_table: Dict[Tuple[int, int], int], max_length: int) -> bytes:
        width = header.width
        writer = BitWriter()

        code = 0
        length = 0

        for bit in read_bits(payload):
            code = (code << 1) | bit
            length += 1

            symbol = decode_table.get((length, code))
            if symbol is None:
                if length >= max_length:
                    raise UnknownCode(f"No dictionary code matches {length} bits {code:0{length}b}")
                continue

            writer.push_code(symbol, width)

            # хвостовые биты последнего символа - лишь дополнение
            if writer.byte_count >= header.original_size:
                return writer.getvalue()[:header.original_size]

            code = 0
            length = 0

        raise MalformedContainer(
            f"Payload exhausted: {writer.byte_count} of {header.original_size} bytes decoded")
