"""
Сжатие Хаффмана с переменной шириной символа.

Для каждой ширины из CANDIDATE_WIDTHS строится своё дерево,
в контейнер записывается вариант с наименьшим итоговым размером.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from loguru import logger

from format import CodecFormat
from frequency import check_width, observe
from huffman import HuffmanTree
from streams import InputStream, OutputStream


# ширина 1 сознательно не рассматривается
CANDIDATE_WIDTHS = (2, 3, 4, 5, 6, 7, 8)


@dataclass
class Candidate:
    width: int
    frequencies: Dict[int, int]
    tree: HuffmanTree
    estimated_size: int


class Compressor:
    def __init__(self, widths: Sequence[int] = CANDIDATE_WIDTHS):
        if not widths:
            raise ValueError("At least one candidate width is required")

        for width in widths:
            check_width(width)

        self.widths = tuple(widths)

    def evaluate(self, data: bytes) -> List[Candidate]:
        candidates = []

        for width in self.widths:
            frequencies = observe(width, data)
            tree = HuffmanTree.build(width, frequencies)
            candidate = Candidate(width, frequencies, tree, tree.estimate_size())

            logger.debug(f"Width {width}: {len(frequencies)} symbols, "
                         f"estimated {candidate.estimated_size} bytes")
            candidates.append(candidate)

        return candidates

    @staticmethod
    def select(candidates: List[Candidate]) -> Candidate:
        # min() оставляет первый из равных
        return min(candidates, key=lambda c: c.estimated_size)

    def choose(self, data: bytes) -> Candidate:
        return self.select(self.evaluate(data))

    def compress_candidate(self, data: bytes, candidate: Candidate) -> bytes:
        logger.debug(f"Chosen width {candidate.width}, "
                     f"{candidate.estimated_size} bytes for {len(data)} input bytes")
        return CodecFormat.serialize(candidate.width, data, candidate.tree.dictionary())

    def compress(self, data: bytes) -> bytes:
        return self.compress_candidate(data, self.choose(data))

    def decompress(self, data: bytes) -> bytes:
        return CodecFormat.deserialize(data)


def compress_data(data: bytes) -> bytes:
    return Compressor().compress(data)


def decompress_data(compressed: bytes) -> bytes:
    return Compressor().decompress(compressed)


def encode(original: InputStream, compressed: OutputStream,
           compressor: Optional[Compressor] = None) -> 'CompressionStats':
    compressor = compressor or Compressor()

    data = original.read_all()
    candidates = compressor.evaluate(data)
    chosen = compressor.select(candidates)

    compressed.write(compressor.compress_candidate(data, chosen))

    return CompressionStats(candidates, chosen, len(data))


def decode(compressed: InputStream, original: OutputStream) -> int:
    output = CodecFormat.deserialize(compressed.read_all())
    original.write(output)
    return len(output)


class CompressionStats:
    def __init__(self, candidates: List[Candidate], chosen: Candidate, original_size: int):
        self.candidates = candidates
        self.chosen = chosen
        self.original_size = original_size

        self.compressed_size = chosen.estimated_size
        self.dictionary_size = len(chosen.frequencies)

        self.compression_ratio = (
            self.compressed_size / original_size * 100
            if original_size > 0 else 0
        )

    def print_stats(self):
        print(f"Huffman Compression Statistics:")
        print(f"  Original size:       {self.original_size} bytes")
        for candidate in self.candidates:
            marker = " <" if candidate is self.chosen else ""
            print(f"  Width {candidate.width}:             "
                  f"{candidate.estimated_size} bytes{marker}")
        print(f"  Chosen width:        {self.chosen.width}")
        print(f"  Dictionary entries:  {self.dictionary_size}")
        print(f"  Compressed size:     {self.compressed_size} bytes")
        print(f"  Compression ratio:   {self.compression_ratio:.1f}%")
