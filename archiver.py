"""
Сжатие и распаковка файлов целиком.
"""

import io
import os
from typing import Optional, Sequence

from loguru import logger

from compressor import (CANDIDATE_WIDTHS, CompressionStats, Compressor,
                        decode, encode)
from format import CodecFormat, MalformedContainer
from streams import InputStream, OutputStream


class Archiver:
    def __init__(self, widths: Sequence[int] = CANDIDATE_WIDTHS):
        self.compressor = Compressor(widths)

    def compress_file(self, src: str, dst: str) -> Optional[CompressionStats]:
        if not os.path.isfile(src):
            print(f"Error: {src} not found")
            return None

        print(f"Compressing {src}...", end=" ")

        # src и dst могут совпадать: dst открывается только после сжатия
        with open(src, 'rb') as fin:
            source = io.BytesIO(fin.read())

        compressed = io.BytesIO()
        stats = encode(InputStream(source), OutputStream(compressed), self.compressor)

        with open(dst, 'wb') as fout:
            fout.write(compressed.getvalue())

        print(f"OK ({stats.compression_ratio:.1f}%, width {stats.chosen.width})")
        logger.debug(f"{src}: {stats.original_size} -> {stats.compressed_size} bytes")

        return stats

    def decompress_file(self, src: str, dst: str) -> int:
        if not os.path.isfile(src):
            print(f"Error: {src} not found")
            return 0

        print(f"Decompressing {src}...", end=" ")

        with open(src, 'rb') as fin:
            source = io.BytesIO(fin.read())

        # при ошибке декодирования dst остаётся нетронутым
        restored = OutputStream(io.BytesIO())
        decode(InputStream(source), restored)

        with open(dst, 'wb') as fout:
            fout.write(restored.file.getvalue())

        print(f"OK ({restored.written} bytes)")

        return restored.written

    def show_info(self, path: str):
        if not os.path.isfile(path):
            print(f"Error: {path} not found")
            return

        with open(path, 'rb') as f:
            data = f.read()

        try:
            header, entries, payload_offset = CodecFormat.read_header(data)
        except MalformedContainer as e:
            print(f"Error reading container: {e}")
            return

        lengths = [entry.bit_length for entry in entries]

        print(f"{'Symbol width':<24} {header.width:>12}")
        print(f"{'Original size':<24} {header.original_size:>12}")
        print(f"{'Container size':<24} {len(data):>12}")
        print(f"{'Dictionary entries':<24} {header.entry_count:>12}")
        print(f"{'Payload bytes':<24} {len(data) - payload_offset:>12}")
        if lengths:
            print(f"{'Shortest code':<24} {min(lengths):>12}")
            print(f"{'Longest code':<24} {max(lengths):>12}")

    def verify_file(self, path: str) -> bool:
        if not os.path.isfile(path):
            print(f"Warning: {path} not found, skipping")
            return False

        with open(path, 'rb') as f:
            data = f.read()

        print(f"Verifying {path}...", end=" ")

        compressed = self.compressor.compress(data)
        restored = self.compressor.decompress(compressed)

        if restored != data:
            print("FAILED")
            return False

        ratio = (len(compressed) / len(data) * 100) if data else 0
        print(f"OK ({ratio:.1f}%)")
        return True
