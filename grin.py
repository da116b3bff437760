"""
Сжатие и разжатие файлов кодом Хаффмана в формате .grin.
"""

import os
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from bitstream import BitInputStream, BitOutputStream
from format import read_header, write_header
from huffman import EOF_SYMBOL, HuffmanTree


CHUNK_SIZE = 64 * 1024


@dataclass
class EncodeStats:
    original_size: int
    compressed_size: int

    @property
    def ratio(self) -> float:
        return (self.compressed_size / self.original_size * 100) if self.original_size > 0 else 0


@dataclass
class TreeInfo:
    leaf_count: int
    internal_count: int
    height: int
    tree_bits: int
    code_lengths: Dict[int, int]


def create_frequency_map(file_path: str) -> Counter:
    freqs = Counter()

    with open(file_path, 'rb') as f:
        while True:
            chunk = f.read(CHUNK_SIZE)
            if not chunk:
                break
            freqs.update(chunk)

    return freqs


def _remove_partial(path: str):
    if os.path.exists(path):
        os.remove(path)


class Grin:
    def __init__(self, verbose: bool = True):
        self.verbose = verbose

    def encode_file(self, input_path: str, output_path: str) -> EncodeStats:
        freqs = create_frequency_map(input_path)
        tree = HuffmanTree.from_frequencies(freqs)

        if self.verbose:
            print(f"Encoding {Path(input_path).name}...", end=" ")

        try:
            with BitInputStream(input_path) as bit_in, BitOutputStream(output_path) as bit_out:
                write_header(bit_out)
                tree.serialize(bit_out)
                original_size = tree.encode(bit_in, bit_out)
        except Exception:
            _remove_partial(output_path)
            raise

        stats = EncodeStats(
            original_size=original_size,
            compressed_size=os.path.getsize(output_path)
        )

        if self.verbose:
            print(f"OK ({stats.ratio:.1f}%)")

        return stats

    def decode_file(self, input_path: str, output_path: str) -> int:
        with BitInputStream(input_path) as bit_in:
            # заголовок проверяется до создания выходного файла
            read_header(bit_in)
            tree = HuffmanTree.deserialize(bit_in)

            if self.verbose:
                print(f"Decoding {Path(input_path).name}...", end=" ")

            try:
                with BitOutputStream(output_path) as bit_out:
                    written = tree.decode(bit_in, bit_out)
            except Exception:
                _remove_partial(output_path)
                raise

        if self.verbose:
            print(f"OK ({written} bytes)")

        return written

    def describe_file(self, input_path: str) -> TreeInfo:
        with BitInputStream(input_path) as bit_in:
            read_header(bit_in)
            tree = HuffmanTree.deserialize(bit_in)

        return TreeInfo(
            leaf_count=tree.leaf_count,
            internal_count=tree.internal_count,
            height=tree.height,
            tree_bits=tree.serialized_bits,
            code_lengths={symbol: len(code) for symbol, code in tree.codes.items()}
        )

    def print_info(self, input_path: str):
        info = self.describe_file(input_path)

        print(f"Leaves: {info.leaf_count}  Internal nodes: {info.internal_count}  "
              f"Height: {info.height}  Tree size: {info.tree_bits} bits")
        print(f"{'Symbol':<10} {'Code length':>12}")
        print("-" * 23)

        for symbol in sorted(info.code_lengths, key=lambda s: (info.code_lengths[s], s)):
            label = 'EOF' if symbol == EOF_SYMBOL else f"0x{symbol:02x}"
            print(f"{label:<10} {info.code_lengths[symbol]:>12}")
