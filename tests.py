import unittest
import tempfile
import os
import io
import sys
import random
import shutil
import contextlib
from collections import Counter

from bitstream import BitInputStream, BitOutputStream, END_OF_DATA
from huffman import (HuffmanTree, Leaf, Internal, EOF_SYMBOL, SYMBOL_BITS,
                     MalformedTreeError, TruncatedStreamError, SymbolNotFoundError)
from format import MAGIC_NUMBER, MAGIC_BITS, FormatError, read_header, write_header
from grin import Grin, create_frequency_map
from main import main


def serialize_tree(tree: HuffmanTree) -> bytes:
    output = io.BytesIO()
    with BitOutputStream(output) as bit_out:
        tree.serialize(bit_out)
    return output.getvalue()


def encode_bytes(tree: HuffmanTree, data: bytes) -> bytes:
    output = io.BytesIO()
    with BitOutputStream(output) as bit_out:
        tree.encode(BitInputStream.from_bytes(data), bit_out)
    return output.getvalue()


def decode_bytes(tree: HuffmanTree, data: bytes) -> bytes:
    output = io.BytesIO()
    with BitOutputStream(output) as bit_out:
        tree.decode(BitInputStream.from_bytes(data), bit_out)
    return output.getvalue()


class TestBitStream(unittest.TestCase):
    def test_msb_first_with_padding(self):
        output = io.BytesIO()
        with BitOutputStream(output) as bit_out:
            bit_out.write_bits(0b101, 3)
            bit_out.write_bit(1)
        self.assertEqual(output.getvalue(), b'\xb0')

    def test_write_code(self):
        output = io.BytesIO()
        with BitOutputStream(output) as bit_out:
            bit_out.write_code('1111000011')
            self.assertEqual(bit_out.bits_written, 10)
        self.assertEqual(output.getvalue(), b'\xf0\xc0')

    def test_read_bits_and_end_of_data(self):
        bit_in = BitInputStream.from_bytes(b'\xa5')
        self.assertEqual(bit_in.read_bit(), 1)
        self.assertEqual(bit_in.read_bit(), 0)
        self.assertEqual(bit_in.read_bits(6), 0b100101)
        self.assertEqual(bit_in.read_bit(), END_OF_DATA)
        self.assertEqual(bit_in.bits_read, 8)

    def test_read_bits_past_end(self):
        bit_in = BitInputStream.from_bytes(b'\xff')
        self.assertEqual(bit_in.read_bits(9), END_OF_DATA)

    def test_aligned_byte_reads(self):
        bit_in = BitInputStream.from_bytes(b'\x01\x02')
        self.assertEqual(bit_in.read_bits(8), 1)
        self.assertEqual(bit_in.read_bits(8), 2)
        self.assertEqual(bit_in.read_bits(8), END_OF_DATA)

    def test_multi_byte_value(self):
        output = io.BytesIO()
        with BitOutputStream(output) as bit_out:
            bit_out.write_bits(MAGIC_NUMBER, 32)
        self.assertEqual(output.getvalue(), b'\x00\x00\x07\x36')
        self.assertEqual(BitInputStream.from_bytes(output.getvalue()).read_bits(32), MAGIC_NUMBER)

    def test_invalid_values(self):
        bit_out = BitOutputStream(io.BytesIO())
        with self.assertRaises(ValueError):
            bit_out.write_bits(512, SYMBOL_BITS)
        with self.assertRaises(ValueError):
            bit_out.write_bits(-1, 8)
        with self.assertRaises(ValueError):
            bit_out.write_bit(2)

    def test_borrowed_file_stays_open(self):
        output = io.BytesIO()
        bit_out = BitOutputStream(output)
        bit_out.write_bit(1)
        bit_out.close()
        self.assertFalse(output.closed)
        self.assertEqual(output.getvalue(), b'\x80')


class TestHuffmanTree(unittest.TestCase):
    def test_eof_injected(self):
        freqs = {0: 1000}
        tree = HuffmanTree.from_frequencies(freqs)
        self.assertEqual(freqs, {0: 1000})
        self.assertEqual(tree.leaf_count, 2)
        self.assertEqual(tree.internal_count, 1)
        self.assertIn(EOF_SYMBOL, tree.codes)

    def test_repeated_zero_byte_payload(self):
        tree = HuffmanTree.from_frequencies({0: 1000})
        self.assertEqual(tree.codes, {EOF_SYMBOL: '0', 0: '1'})

        encoded = encode_bytes(tree, b'\x00' * 1000)
        self.assertEqual(encoded, b'\xff' * 125 + b'\x00')
        self.assertEqual(decode_bytes(tree, encoded), b'\x00' * 1000)

    def test_tie_break_is_insertion_order(self):
        tree = HuffmanTree.from_frequencies({ord('b'): 1, ord('a'): 1})
        self.assertEqual(tree.root, Internal(
            Leaf(EOF_SYMBOL, 1),
            Internal(Leaf(ord('a'), 1), Leaf(ord('b'), 1))
        ))
        self.assertEqual(tree.codes, {EOF_SYMBOL: '0', ord('a'): '10', ord('b'): '11'})

    def test_deterministic_serialization(self):
        data = b"the quick brown fox jumps over the lazy dog" * 3
        freqs = dict(Counter(data))
        first = serialize_tree(HuffmanTree.from_frequencies(freqs))
        reversed_freqs = dict(reversed(list(freqs.items())))
        second = serialize_tree(HuffmanTree.from_frequencies(reversed_freqs))
        self.assertEqual(first, second)

    def test_prefix_free(self):
        random.seed(7)
        freqs = {s: random.randint(1, 500) for s in range(256)}
        tree = HuffmanTree.from_frequencies(freqs)
        codes = list(tree.codes.values())
        self.assertEqual(len(codes), 257)
        for i, a in enumerate(codes):
            for j, b in enumerate(codes):
                if i != j:
                    self.assertFalse(b.startswith(a), f"{a} is a prefix of {b}")

    def test_frequent_symbols_get_shorter_codes(self):
        tree = HuffmanTree.from_frequencies({ord('a'): 100, ord('b'): 10, ord('c'): 1})
        self.assertLess(len(tree.codes[ord('a')]), len(tree.codes[ord('c')]))

    def test_serialization_roundtrip(self):
        tree = HuffmanTree.from_frequencies(Counter(b"abracadabra"))
        output = io.BytesIO()
        with BitOutputStream(output) as bit_out:
            tree.serialize(bit_out)
            self.assertEqual(bit_out.bits_written, tree.serialized_bits)

        restored = HuffmanTree.deserialize(BitInputStream.from_bytes(output.getvalue()))
        self.assertEqual(restored.codes, tree.codes)

    def test_find(self):
        tree = HuffmanTree.from_frequencies(Counter(b"mississippi"))
        for symbol, code in tree.codes.items():
            self.assertEqual(tree.find(symbol), code)
        self.assertIsNone(tree.find(ord('z')))

    def test_single_leaf_tree(self):
        tree = HuffmanTree.from_frequencies({})
        self.assertEqual(tree.root, Leaf(EOF_SYMBOL, 1))
        self.assertEqual(tree.codes, {EOF_SYMBOL: ''})
        self.assertEqual(encode_bytes(tree, b''), b'')
        self.assertEqual(decode_bytes(tree, b''), b'')

        restored = HuffmanTree.deserialize(BitInputStream.from_bytes(serialize_tree(tree)))
        self.assertEqual(restored.root, Leaf(EOF_SYMBOL))

    def test_invalid_frequencies(self):
        with self.assertRaises(ValueError):
            HuffmanTree.from_frequencies({300: 1})
        with self.assertRaises(ValueError):
            HuffmanTree.from_frequencies({1: -5})

    def test_encode_unknown_symbol(self):
        tree = HuffmanTree.from_frequencies({ord('a'): 1})
        with self.assertRaises(SymbolNotFoundError):
            encode_bytes(tree, b"ab")

    def test_decode_truncated(self):
        tree = HuffmanTree.from_frequencies({ord('a'): 5, ord('b'): 3})
        with self.assertRaises(TruncatedStreamError):
            decode_bytes(tree, b'')

        encoded = encode_bytes(tree, b"ab" * 50)
        with self.assertRaises(TruncatedStreamError):
            decode_bytes(tree, encoded[:len(encoded) // 2])

    def test_decode_ignores_padding(self):
        tree = HuffmanTree.from_frequencies(Counter(b"hello"))
        encoded = encode_bytes(tree, b"hello")
        self.assertEqual(decode_bytes(tree, encoded + b'\xff\xff'), b"hello")


class TestTreeDeserialization(unittest.TestCase):
    def write(self, *fields) -> bytes:
        output = io.BytesIO()
        with BitOutputStream(output) as bit_out:
            for value, width in fields:
                bit_out.write_bits(value, width)
        return output.getvalue()

    def test_truncated_tree(self):
        with self.assertRaises(MalformedTreeError):
            HuffmanTree.deserialize(BitInputStream.from_bytes(b'\x80'))
        with self.assertRaises(MalformedTreeError):
            HuffmanTree.deserialize(BitInputStream.from_bytes(b''))

    def test_tree_without_eof(self):
        data = self.write((1, 1), (0, 1), (ord('a'), SYMBOL_BITS), (0, 1), (ord('b'), SYMBOL_BITS))
        with self.assertRaises(MalformedTreeError):
            HuffmanTree.deserialize(BitInputStream.from_bytes(data))

    def test_symbol_out_of_range(self):
        data = self.write((0, 1), (511, SYMBOL_BITS))
        with self.assertRaises(MalformedTreeError):
            HuffmanTree.deserialize(BitInputStream.from_bytes(data))

    def test_duplicate_symbol(self):
        data = self.write((1, 1), (0, 1), (EOF_SYMBOL, SYMBOL_BITS), (0, 1), (EOF_SYMBOL, SYMBOL_BITS))
        with self.assertRaises(MalformedTreeError):
            HuffmanTree.deserialize(BitInputStream.from_bytes(data))

    def test_too_deep(self):
        with self.assertRaises(MalformedTreeError):
            HuffmanTree.deserialize(BitInputStream.from_bytes(b'\xff' * 64))


class TestFormat(unittest.TestCase):
    def test_header_roundtrip(self):
        output = io.BytesIO()
        with BitOutputStream(output) as bit_out:
            write_header(bit_out)
        self.assertEqual(len(output.getvalue()) * 8, MAGIC_BITS)
        read_header(BitInputStream.from_bytes(output.getvalue()))

    def test_bad_magic(self):
        with self.assertRaises(FormatError):
            read_header(BitInputStream.from_bytes(b'GRIN'))

    def test_short_header(self):
        with self.assertRaises(FormatError):
            read_header(BitInputStream.from_bytes(b'\x00\x00'))


class TestGrin(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.grin = Grin(verbose=False)

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def path(self, name: str) -> str:
        return os.path.join(self.temp_dir, name)

    def write_file(self, name: str, data: bytes) -> str:
        file_path = self.path(name)
        with open(file_path, 'wb') as f:
            f.write(data)
        return file_path

    def read_file(self, file_path: str) -> bytes:
        with open(file_path, 'rb') as f:
            return f.read()

    def roundtrip(self, data: bytes) -> bytes:
        source = self.write_file("source.bin", data)
        encoded = self.path("source.grin")
        decoded = self.path("decoded.bin")
        self.grin.encode_file(source, encoded)
        self.grin.decode_file(encoded, decoded)
        return self.read_file(decoded)

    def test_roundtrip_text(self):
        data = b"Hello World! " * 100
        self.assertEqual(self.roundtrip(data), data)

    def test_roundtrip_empty(self):
        self.assertEqual(self.roundtrip(b""), b"")

    def test_roundtrip_all_bytes(self):
        data = bytes(range(256)) * 4
        self.assertEqual(self.roundtrip(data), data)

    def test_roundtrip_random(self):
        random.seed(42)
        data = bytes(random.randint(0, 255) for _ in range(5000))
        self.assertEqual(self.roundtrip(data), data)

    def test_roundtrip_single_symbol(self):
        data = b"A" * 777
        self.assertEqual(self.roundtrip(data), data)
        info = self.grin.describe_file(self.path("source.grin"))
        self.assertEqual(info.leaf_count, 2)

    def test_empty_file_layout(self):
        source = self.write_file("empty.bin", b"")
        encoded = self.path("empty.grin")
        self.assertEqual(create_frequency_map(source), {})

        stats = self.grin.encode_file(source, encoded)
        self.assertEqual(stats.original_size, 0)
        # 32 бита заголовка + лист EOF из 10 бит
        self.assertEqual(self.read_file(encoded), b'\x00\x00\x07\x36\x40\x00')
        self.assertEqual(stats.compressed_size, 6)

    def test_compresses_repetitive_data(self):
        source = self.write_file("text.txt", b"Lorem ipsum dolor sit amet " * 200)
        stats = self.grin.encode_file(source, self.path("text.grin"))
        self.assertEqual(stats.original_size, 27 * 200)
        self.assertLess(stats.compressed_size, stats.original_size)
        self.assertLess(stats.ratio, 100)

    def test_frequency_map(self):
        source = self.write_file("freq.bin", b"aab\x00")
        self.assertEqual(create_frequency_map(source), {ord('a'): 2, ord('b'): 1, 0: 1})

    def test_bad_magic_produces_no_output(self):
        source = self.write_file("bogus.grin", b"\x00\x00\x00\x00\xff\xff")
        output = self.path("out.bin")
        with self.assertRaises(FormatError):
            self.grin.decode_file(source, output)
        self.assertFalse(os.path.exists(output))

    def test_truncated_file_removes_output(self):
        source = self.write_file("long.txt", b"truncation test data " * 300)
        encoded = self.path("long.grin")
        self.grin.encode_file(source, encoded)

        data = self.read_file(encoded)
        damaged = self.write_file("damaged.grin", data[:len(data) // 2])
        output = self.path("out.txt")
        with self.assertRaises(TruncatedStreamError):
            self.grin.decode_file(damaged, output)
        self.assertFalse(os.path.exists(output))

    def test_describe_file(self):
        source = self.write_file("aab.txt", b"aab")
        encoded = self.path("aab.grin")
        self.grin.encode_file(source, encoded)

        info = self.grin.describe_file(encoded)
        self.assertEqual(info.leaf_count, 3)
        self.assertEqual(info.internal_count, 2)
        self.assertEqual(info.tree_bits, 32)
        self.assertEqual(set(info.code_lengths), {ord('a'), ord('b'), EOF_SYMBOL})


class TestMain(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_encode_decode_commands(self):
        source = os.path.join(self.temp_dir, "in.txt")
        encoded = os.path.join(self.temp_dir, "in.grin")
        decoded = os.path.join(self.temp_dir, "out.txt")
        with open(source, 'wb') as f:
            f.write(b"command line roundtrip\n" * 20)

        with contextlib.redirect_stdout(io.StringIO()):
            self.assertEqual(main(['encode', source, encoded]), 0)
            self.assertEqual(main(['-q', 'decode', encoded, decoded]), 0)
            self.assertEqual(main(['info', encoded]), 0)

        with open(decoded, 'rb') as f:
            self.assertEqual(f.read(), b"command line roundtrip\n" * 20)

    def test_decode_error_exit_code(self):
        source = os.path.join(self.temp_dir, "plain.txt")
        with open(source, 'wb') as f:
            f.write(b"not a grin file")

        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            code = main(['-q', 'decode', source, os.path.join(self.temp_dir, "out")])
        self.assertEqual(code, 1)
        self.assertIn("Error:", stderr.getvalue())

    def test_usage(self):
        with contextlib.redirect_stdout(io.StringIO()):
            self.assertEqual(main([]), 2)

        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main(['compress', 'a', 'b'])
            self.assertEqual(ctx.exception.code, 2)

            with self.assertRaises(SystemExit):
                main(['encode', 'only-one-path'])


def run_tests():
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestBitStream))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanTree))
    suite.addTests(loader.loadTestsFromTestCase(TestTreeDeserialization))
    suite.addTests(loader.loadTestsFromTestCase(TestFormat))
    suite.addTests(loader.loadTestsFromTestCase(TestGrin))
    suite.addTests(loader.loadTestsFromTestCase(TestMain))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
