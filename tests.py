import contextlib
import io
import os
import random
import shutil
import struct
import sys
import tempfile
import unittest
from unittest.mock import patch

from loguru import logger

from bitstream import BitWriter, read_bits
from frequency import iter_symbols, observe
from huffman import HuffmanTree
from format import (CodecFormat, DictEntry, MalformedContainer, UnknownCode,
                    ENTRY_SIZE, HEADER_SIZE)
from compressor import (CANDIDATE_WIDTHS, Compressor, compress_data,
                        decompress_data, decode, encode)
from streams import InputStream, OutputStream
from archiver import Archiver
import main


class TestBitStream(unittest.TestCase):
    def test_push_bits_msb_first(self):
        writer = BitWriter()
        for bit in (1, 0, 1, 0, 0, 0, 0, 1):
            writer.push_bit(bit)
        self.assertEqual(writer.getvalue(), b'\xa1')
        self.assertEqual(writer.byte_count, 1)

    def test_flush_pads_with_zeros(self):
        writer = BitWriter()
        writer.push_code(0b101, 3)
        self.assertEqual(writer.byte_count, 0)
        self.assertEqual(writer.flush(), b'\xa0')

    def test_flush_on_byte_boundary(self):
        writer = BitWriter()
        writer.push_code(0xFF, 8)
        self.assertEqual(writer.flush(), b'\xff')

    def test_read_bits(self):
        self.assertEqual(list(read_bits(b'\x81')), [1, 0, 0, 0, 0, 0, 0, 1])
        self.assertEqual(list(read_bits(b'')), [])

    def test_read_bits_single_pass(self):
        bits = read_bits(b'\xff\x00')
        self.assertEqual(sum(1 for _ in bits), 16)
        self.assertEqual(list(bits), [])

    def test_push_code_across_bytes(self):
        writer = BitWriter()
        writer.push_code(0b1, 1)
        writer.push_code(0b1000000001, 10)
        self.assertEqual(writer.byte_count, 1)
        self.assertEqual(writer.flush(), bytes([0b11000000, 0b00100000]))

    def test_push_code_matches_push_bit(self):
        random.seed(11)
        by_code = BitWriter()
        by_bit = BitWriter()
        for _ in range(200):
            length = random.randint(1, 20)
            code = random.getrandbits(length)
            by_code.push_code(code, length)
            for i in range(length - 1, -1, -1):
                by_bit.push_bit((code >> i) & 1)
        self.assertEqual(by_code.flush(), by_bit.flush())


class TestFrequency(unittest.TestCase):
    def test_whole_groups(self):
        self.assertEqual(list(iter_symbols(4, b'\xab\xcd')), [0xA, 0xB, 0xC, 0xD])

    def test_partial_group_is_padded(self):
        # 8 бит по 3: 101, 010, 11 -> 110
        self.assertEqual(list(iter_symbols(3, b'\xab')), [0b101, 0b010, 0b110])

    def test_counts(self):
        table = observe(2, b'\x00\xff\x00')
        self.assertEqual(table, {0b00: 8, 0b11: 4})

    def test_coverage_invariant(self):
        data = bytes(range(37))
        for width in range(1, 9):
            table = observe(width, data)
            self.assertGreaterEqual(sum(table.values()) * width, len(data) * 8)
            self.assertLess(sum(table.values()) * width, len(data) * 8 + width)

    def test_empty(self):
        self.assertEqual(observe(5, b''), {})

    def test_invalid_width(self):
        with self.assertRaises(ValueError):
            observe(0, b'a')
        with self.assertRaises(ValueError):
            list(iter_symbols(9, b'a'))

    def test_matches_bitwise_tiling(self):
        random.seed(5)
        for size in (0, 1, 2, 3, 5, 7, 8, 13, 64):
            data = bytes(random.randint(0, 255) for _ in range(size))
            bits = ''.join(format(byte, '08b') for byte in data)
            for width in range(1, 9):
                groups = [bits[i:i + width].ljust(width, '0')
                          for i in range(0, len(bits), width)]
                self.assertEqual(list(iter_symbols(width, data)),
                                 [int(group, 2) for group in groups])


class TestHuffmanTree(unittest.TestCase):
    def assertPrefixFree(self, tree):
        codes = [format(code, f'0{length}b')
                 for length, code in tree.encode_table().values()]
        for i, a in enumerate(codes):
            for j, b in enumerate(codes):
                if i != j:
                    self.assertFalse(b.startswith(a), f"{a} is a prefix of {b}")

    def test_structure(self):
        tree = HuffmanTree.build(8, {1: 5, 2: 9, 3: 12, 4: 13, 5: 16, 6: 45})
        internal = 0
        stack = [tree.root]
        while stack:
            node = stack.pop()
            if not node.is_leaf:
                internal += 1
                self.assertEqual(node.freq, node.left.freq + node.right.freq)
                stack.extend((node.left, node.right))
        self.assertEqual(tree.leaf_count(), 6)
        self.assertEqual(internal, 5)
        self.assertEqual(tree.root.freq, 100)

    def test_optimal_lengths(self):
        tree = HuffmanTree.build(8, {1: 5, 2: 9, 3: 12, 4: 13, 5: 16, 6: 45})
        self.assertEqual(tree.total_bits(), 224)
        self.assertEqual(tree.encode_table()[6][0], 1)

    def test_branch_convention(self):
        tree = HuffmanTree.build(2, {0: 1, 1: 10})
        self.assertEqual(tree.root.left.symbol, 1)
        self.assertEqual(tree.root.right.symbol, 0)
        self.assertEqual(tree.encode_table(), {1: (1, 0), 0: (1, 1)})

    def test_dictionary_preorder(self):
        tree = HuffmanTree.build(3, {0: 1, 1: 2, 2: 4, 3: 8})
        self.assertEqual(
            [(e.bit_length, e.code) for e in tree.dictionary()],
            [(1, 0b0), (2, 0b10), (3, 0b110), (3, 0b111)])
        self.assertEqual([e.symbol for e in tree.dictionary()], [3, 2, 1, 0])

    def test_prefix_free(self):
        random.seed(7)
        for _ in range(20):
            data = bytes(random.randint(0, 40) for _ in range(300))
            for width in CANDIDATE_WIDTHS:
                self.assertPrefixFree(HuffmanTree.build(width, observe(width, data)))

    def test_skewed_tree_no_recursion_limit(self):
        frequencies = {symbol: 2 ** symbol for symbol in range(200)}
        tree = HuffmanTree.build(8, frequencies)
        lengths = sorted(length for length, _ in tree.encode_table().values())
        self.assertEqual(lengths[-1], 199)
        self.assertPrefixFree(tree)

    def test_single_symbol(self):
        tree = HuffmanTree.build(8, {0xAA: 500})
        self.assertTrue(tree.root.is_leaf)
        self.assertEqual(tree.dictionary(), [DictEntry(1, 0, 0xAA)])
        self.assertEqual(tree.total_bits(), 500)

    def test_empty(self):
        tree = HuffmanTree.build(4, {})
        self.assertIsNone(tree.root)
        self.assertEqual(tree.dictionary(), [])
        self.assertEqual(tree.estimate_size(), HEADER_SIZE)

    def test_estimate(self):
        tree = HuffmanTree.build(2, {0: 3, 1: 1, 2: 1})
        # длины 1, 2, 2 -> 3 + 2 + 2 = 7 бит -> 1 байт
        self.assertEqual(tree.estimate_size(), HEADER_SIZE + 3 * ENTRY_SIZE + 1)


class TestCodecFormat(unittest.TestCase):
    def test_layout(self):
        data = b'\x00\xff\x00'
        tree = HuffmanTree.build(8, observe(8, data))
        container = CodecFormat.serialize(8, data, tree.dictionary())

        width, original_size, count = struct.unpack('>BQQ', container[:17])
        self.assertEqual((width, original_size, count), (8, 3, 2))
        self.assertEqual(len(container), HEADER_SIZE + 2 * ENTRY_SIZE + 1)

        bit_length, code, symbol = struct.unpack('>IQQ', container[17:37])
        self.assertEqual((bit_length, code, symbol), (1, 0, 0x00))
        # коды 0, 1, 0 -> 010 + дополнение
        self.assertEqual(container[-1], 0b01000000)

    def test_read_header(self):
        data = b'abracadabra'
        container = Compressor().compress(data)
        header, entries, pos = CodecFormat.read_header(container)
        self.assertEqual(header.original_size, len(data))
        self.assertEqual(header.entry_count, len(entries))
        self.assertEqual(pos, HEADER_SIZE + ENTRY_SIZE * len(entries))

    def test_trailing_bits_ignored(self):
        data = b'\x12\x34\x56'
        tree = HuffmanTree.build(5, observe(5, data))
        container = CodecFormat.serialize(5, data, tree.dictionary())
        self.assertEqual(CodecFormat.deserialize(container), data)
        self.assertEqual(CodecFormat.deserialize(container + b'\xff\xff'), data)

    def test_width_one_decodes(self):
        data = b'width one'
        tree = HuffmanTree.build(1, observe(1, data))
        container = CodecFormat.serialize(1, data, tree.dictionary())
        self.assertEqual(CodecFormat.deserialize(container), data)

    def test_truncated_header(self):
        with self.assertRaises(MalformedContainer):
            CodecFormat.deserialize(b'\x08\x00\x00')

    def test_truncated_dictionary(self):
        container = Compressor().compress(b'hello world')
        with self.assertRaises(MalformedContainer):
            CodecFormat.deserialize(container[:HEADER_SIZE + ENTRY_SIZE - 1])

    def test_truncated_payload(self):
        data = b'hello world, hello huffman'
        container = Compressor().compress(data)
        with self.assertRaises(MalformedContainer):
            CodecFormat.deserialize(container[:-2])

    def test_invalid_width(self):
        container = bytearray(Compressor().compress(b'hello'))
        container[0] = 9
        with self.assertRaises(MalformedContainer):
            CodecFormat.deserialize(bytes(container))

    def test_unknown_code(self):
        # словарь знает только код '0', в данных идёт '1'
        container = (struct.pack('>BQQ', 8, 1, 1)
                     + struct.pack('>IQQ', 1, 0, 0x41)
                     + b'\x80')
        with self.assertRaises(UnknownCode):
            CodecFormat.deserialize(container)

    def test_errors_are_value_errors(self):
        self.assertTrue(issubclass(MalformedContainer, ValueError))
        self.assertTrue(issubclass(UnknownCode, ValueError))


class TestCompressor(unittest.TestCase):
    def setUp(self):
        self.compressor = Compressor()

    def roundtrip(self, data):
        compressed = self.compressor.compress(data)
        self.assertEqual(self.compressor.decompress(compressed), data)
        return compressed

    def test_empty(self):
        compressed = self.roundtrip(b'')
        self.assertEqual(len(compressed), HEADER_SIZE)
        self.assertEqual(compressed[0], 2)

    def test_single_byte(self):
        self.roundtrip(b'A')

    def test_repeated_byte(self):
        data = b'\xaa' * 500
        compressed = self.roundtrip(data)
        self.assertLess(len(compressed), len(data))

    def test_concrete_scenario(self):
        self.assertEqual(decompress_data(compress_data(b'\x00\xff\x00')), b'\x00\xff\x00')

    def test_every_forced_width(self):
        data = b'The quick brown fox jumps over the lazy dog'
        for width in range(1, 9):
            compressor = Compressor(widths=(width,))
            compressed = compressor.compress(data)
            self.assertEqual(compressed[0], width)
            self.assertEqual(compressor.decompress(compressed), data)

    def test_random_data(self):
        random.seed(42)
        for size in (1, 2, 3, 7, 64, 1000):
            self.roundtrip(bytes(random.randint(0, 255) for _ in range(size)))

    def test_text(self):
        self.roundtrip(b"Lorem ipsum dolor sit amet " * 200)

    def test_optimal_choice(self):
        data = b"abcabcabd" * 30 + bytes(range(50))
        candidates = self.compressor.evaluate(data)
        chosen = self.compressor.choose(data)
        self.assertEqual(chosen.estimated_size, min(c.estimated_size for c in candidates))
        self.assertEqual([c.width for c in candidates], list(CANDIDATE_WIDTHS))

    def test_estimate_is_exact(self):
        data = b"estimate me " * 17
        for candidate in self.compressor.evaluate(data):
            container = self.compressor.compress_candidate(data, candidate)
            self.assertEqual(len(container), candidate.estimated_size)

    def test_tie_keeps_first_width(self):
        # пустой вход: у всех вариантов 17 байт
        self.assertEqual(self.compressor.choose(b'').width, 2)

    def test_dictionary_completeness(self):
        data = bytes(range(0, 256, 3)) * 2
        chosen = self.compressor.choose(data)
        container = self.compressor.compress(data)
        _, entries, _ = CodecFormat.read_header(container)
        symbols = [entry.symbol for entry in entries]
        self.assertEqual(len(symbols), len(set(symbols)))
        self.assertEqual(set(symbols), set(observe(chosen.width, data)))

    def test_declared_length(self):
        random.seed(3)
        for size in range(1, 20):
            data = bytes(random.randint(0, 255) for _ in range(size))
            compressed = self.compressor.compress(data)
            header, _, _ = CodecFormat.read_header(compressed)
            self.assertEqual(len(self.compressor.decompress(compressed)), header.original_size)

    def test_invalid_widths(self):
        with self.assertRaises(ValueError):
            Compressor(widths=())
        with self.assertRaises(ValueError):
            Compressor(widths=(2, 9))


class TestStreams(unittest.TestCase):
    def test_read_byte(self):
        stream = InputStream(io.BytesIO(b'\x01'))
        self.assertEqual(stream.read_byte(), (1, True))
        self.assertEqual(stream.read_byte(), (0, False))

    def test_encode_decode(self):
        data = b"Hello World! " * 50
        compressed = io.BytesIO()
        stats = encode(InputStream(io.BytesIO(data)), OutputStream(compressed))
        self.assertEqual(stats.original_size, len(data))
        self.assertEqual(stats.compressed_size, len(compressed.getvalue()))

        restored = io.BytesIO()
        written = decode(InputStream(io.BytesIO(compressed.getvalue())), OutputStream(restored))
        self.assertEqual(written, len(data))
        self.assertEqual(restored.getvalue(), data)


class TestArchiver(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.archiver = Archiver()

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_compress_decompress_file(self):
        source = os.path.join(self.temp_dir, "input.txt")
        compressed = os.path.join(self.temp_dir, "compressed.bin")
        output = os.path.join(self.temp_dir, "output.txt")

        with open(source, 'wb') as f:
            f.write(b"Content of file 1\n" * 50)

        stats = self.archiver.compress_file(source, compressed)
        self.assertLess(stats.compressed_size, stats.original_size)
        self.assertEqual(os.path.getsize(compressed), stats.compressed_size)

        self.assertEqual(self.archiver.decompress_file(compressed, output), stats.original_size)

        with open(source, 'rb') as f:
            original = f.read()
        with open(output, 'rb') as f:
            restored = f.read()

        self.assertEqual(original, restored)

    def test_missing_file(self):
        missing = os.path.join(self.temp_dir, "missing.txt")
        self.assertIsNone(self.archiver.compress_file(missing, missing + ".bin"))
        self.assertFalse(self.archiver.verify_file(missing))

    def test_verify_file(self):
        source = os.path.join(self.temp_dir, "data.bin")
        with open(source, 'wb') as f:
            f.write(bytes(range(256)) * 4)
        self.assertTrue(self.archiver.verify_file(source))

    def test_compress_in_place(self):
        path = os.path.join(self.temp_dir, "a.txt")
        data = b"hello world" * 10

        with open(path, 'wb') as f:
            f.write(data)

        stats = self.archiver.compress_file(path, path)
        self.assertEqual(stats.original_size, len(data))

        with open(path, 'rb') as f:
            compressed = f.read()

        self.assertEqual(len(compressed), stats.compressed_size)
        self.assertEqual(decompress_data(compressed), data)

        self.assertEqual(self.archiver.decompress_file(path, path), len(data))
        with open(path, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_corrupt_container_keeps_output(self):
        corrupt = os.path.join(self.temp_dir, "corrupt.bin")
        output = os.path.join(self.temp_dir, "output.txt")

        with open(corrupt, 'wb') as f:
            f.write(b'\x08\x00')
        with open(output, 'wb') as f:
            f.write(b'precious')

        with self.assertRaises(MalformedContainer):
            self.archiver.decompress_file(corrupt, output)

        with open(output, 'rb') as f:
            self.assertEqual(f.read(), b'precious')

    def test_show_info(self):
        source = os.path.join(self.temp_dir, "input.txt")
        compressed = os.path.join(self.temp_dir, "compressed.bin")

        with open(source, 'wb') as f:
            f.write(b"abracadabra" * 20)

        stats = Archiver(widths=(8,)).compress_file(source, compressed)

        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            self.archiver.show_info(compressed)

        lines = {line[:24].strip(): line[24:].strip() for line in out.getvalue().splitlines()}
        self.assertEqual(lines['Symbol width'], '8')
        self.assertEqual(lines['Original size'], str(stats.original_size))
        self.assertEqual(lines['Dictionary entries'], '5')
        self.assertEqual(lines['Container size'], str(stats.compressed_size))

    def test_show_info_malformed(self):
        corrupt = os.path.join(self.temp_dir, "corrupt.bin")
        with open(corrupt, 'wb') as f:
            f.write(b'\x08\x00')

        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            self.archiver.show_info(corrupt)

        self.assertIn("Error reading container", out.getvalue())


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        logger.remove()
        logger.add(sys.stderr)
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def run_main(self, *args):
        out = io.StringIO()
        err = io.StringIO()
        with patch.object(sys, 'argv', ['varhuff'] + list(args)), \
                contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            main.main()
        return out.getvalue(), err.getvalue()

    def test_compress_forced_width(self):
        source = os.path.join(self.temp_dir, "input.txt")
        compressed = os.path.join(self.temp_dir, "compressed.bin")
        output = os.path.join(self.temp_dir, "output.txt")
        data = b"The quick brown fox jumps over the lazy dog\n" * 5

        with open(source, 'wb') as f:
            f.write(data)

        self.run_main('compress', source, '-o', compressed, '--width', '3')

        with open(compressed, 'rb') as f:
            self.assertEqual(f.read(1), b'\x03')

        self.run_main('decompress', compressed, '-o', output)

        with open(output, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_error_exit_status(self):
        corrupt = os.path.join(self.temp_dir, "corrupt.bin")
        with open(corrupt, 'wb') as f:
            f.write(b'\x08\x00')

        with self.assertRaises(SystemExit) as ctx:
            self.run_main('decompress', corrupt, '-o', os.path.join(self.temp_dir, "out"))

        self.assertEqual(ctx.exception.code, 1)

    def test_error_message_on_stderr(self):
        corrupt = os.path.join(self.temp_dir, "corrupt.bin")
        with open(corrupt, 'wb') as f:
            f.write(b'\x08\x00')

        err = io.StringIO()
        with patch.object(sys, 'argv', ['varhuff', 'decompress', corrupt, '-o', corrupt + '.out']), \
                contextlib.redirect_stdout(io.StringIO()), contextlib.redirect_stderr(err):
            with self.assertRaises(SystemExit):
                main.main()

        self.assertIn("Error: Container too small", err.getvalue())


def run_tests():
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestBitStream))
    suite.addTests(loader.loadTestsFromTestCase(TestFrequency))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanTree))
    suite.addTests(loader.loadTestsFromTestCase(TestCodecFormat))
    suite.addTests(loader.loadTestsFromTestCase(TestCompressor))
    suite.addTests(loader.loadTestsFromTestCase(TestStreams))
    suite.addTests(loader.loadTestsFromTestCase(TestArchiver))
    suite.addTests(loader.loadTestsFromTestCase(TestCommandLine))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
