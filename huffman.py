"""
Дерево Хаффмана над 9-битными символами: 256 значений байта
и служебный символ конца потока.

Дерево строится по таблице частот либо читается из битового потока,
после чего не изменяется.
"""

import heapq
import itertools
from dataclasses import dataclass
from typing import Dict, Iterator, Mapping, Optional, Tuple, Union

from bitstream import END_OF_DATA, BitInputStream, BitOutputStream


EOF_SYMBOL = 256
SYMBOL_BITS = 9
BYTE_BITS = 8

# больше 257 листьев быть не может
MAX_DEPTH = EOF_SYMBOL


class MalformedTreeError(ValueError):
    pass


class TruncatedStreamError(ValueError):
    pass


class SymbolNotFoundError(LookupError):
    pass


@dataclass(frozen=True)
class Leaf:
    symbol: int
    freq: int = 0


@dataclass(frozen=True)
class Internal:
    left: 'Node'
    right: 'Node'

    @property
    def freq(self) -> int:
        return self.left.freq + self.right.freq


Node = Union[Leaf, Internal]


class HuffmanTree:
    """Неизменяемое дерево кодов Хаффмана.

    Коды символов вычисляются один раз при создании дерева:
    '0' означает переход влево, '1' вправо.
    """

    def __init__(self, root: Node, eof: int = EOF_SYMBOL):
        self.root = root
        self.eof = eof
        self.codes: Dict[int, str] = dict(self._walk(root, ''))

    @classmethod
    def from_frequencies(cls, frequencies: Mapping[int, int]) -> 'HuffmanTree':
        freqs = dict(frequencies)
        freqs.setdefault(EOF_SYMBOL, 1)

        # (частота, порядок вставки, узел): при равных частотах
        # первым извлекается узел, вставленный раньше
        order = itertools.count()
        heap = []
        for symbol in sorted(freqs):
            freq = freqs[symbol]
            if not 0 <= symbol <= EOF_SYMBOL:
                raise ValueError(f"Symbol out of range: {symbol}")
            if freq < 0:
                raise ValueError(f"Negative frequency for symbol {symbol}: {freq}")
            heap.append((freq, next(order), Leaf(symbol, freq)))

        heapq.heapify(heap)

        while len(heap) > 1:
            left_freq, _, left = heapq.heappop(heap)
            right_freq, _, right = heapq.heappop(heap)
            heapq.heappush(heap, (left_freq + right_freq, next(order),
                                  Internal(left, right)))

        return cls(heap[0][2])

    @classmethod
    def deserialize(cls, bit_in: BitInputStream) -> 'HuffmanTree':
        root = cls._read_node(bit_in, 0)

        seen = set()
        for symbol, _ in cls._walk(root, ''):
            if symbol in seen:
                raise MalformedTreeError(f"Duplicate symbol in tree: {symbol}")
            seen.add(symbol)

        if EOF_SYMBOL not in seen:
            raise MalformedTreeError("Tree has no end-of-stream symbol")

        return cls(root)

    @classmethod
    def _read_node(cls, bit_in: BitInputStream, depth: int) -> Node:
        if depth > MAX_DEPTH:
            raise MalformedTreeError("Tree is deeper than any valid tree")

        bit = bit_in.read_bit()
        if bit == END_OF_DATA:
            raise MalformedTreeError("Stream ended inside the tree")

        if bit == 0:
            symbol = bit_in.read_bits(SYMBOL_BITS)
            if symbol == END_OF_DATA:
                raise MalformedTreeError("Stream ended inside a leaf")
            if symbol > EOF_SYMBOL:
                raise MalformedTreeError(f"Invalid symbol: {symbol}")
            return Leaf(symbol)

        left = cls._read_node(bit_in, depth + 1)
        right = cls._read_node(bit_in, depth + 1)
        return Internal(left, right)

    def serialize(self, bit_out: BitOutputStream):
        self._write_node(self.root, bit_out)

    def _write_node(self, node: Node, bit_out: BitOutputStream):
        if isinstance(node, Leaf):
            bit_out.write_bit(0)
            bit_out.write_bits(node.symbol, SYMBOL_BITS)
        else:
            bit_out.write_bit(1)
            self._write_node(node.left, bit_out)
            self._write_node(node.right, bit_out)

    @staticmethod
    def _walk(node: Node, path: str) -> Iterator[Tuple[int, str]]:
        if isinstance(node, Leaf):
            yield node.symbol, path
            return

        yield from HuffmanTree._walk(node.left, path + '0')
        yield from HuffmanTree._walk(node.right, path + '1')

    def find(self, symbol: int) -> Optional[str]:
        """Ищет путь от корня до листа с символом обходом в глубину."""

        def search(node: Node, path: str) -> Optional[str]:
            if isinstance(node, Leaf):
                return path if node.symbol == symbol else None

            found = search(node.left, path + '0')
            if found is not None:
                return found
            return search(node.right, path + '1')

        return search(self.root, '')

    @property
    def leaf_count(self) -> int:
        return len(self.codes)

    @property
    def internal_count(self) -> int:
        return self.leaf_count - 1

    @property
    def height(self) -> int:
        return max(len(code) for code in self.codes.values())

    @property
    def serialized_bits(self) -> int:
        return self.leaf_count * (1 + SYMBOL_BITS) + self.internal_count

    def encode(self, bit_in: BitInputStream, bit_out: BitOutputStream) -> int:
        count = 0

        while True:
            symbol = bit_in.read_bits(BYTE_BITS)
            if symbol == END_OF_DATA:
                break

            code = self.codes.get(symbol)
            if code is None:
                raise SymbolNotFoundError(f"No code for symbol {symbol}")

            bit_out.write_code(code)
            count += 1

        bit_out.write_code(self.codes[self.eof])
        return count

    def decode(self, bit_in: BitInputStream, bit_out: BitOutputStream) -> int:
        count = 0
        current = self.root

        # дерево из одного листа: это лист конца потока, код пустой
        if isinstance(current, Leaf):
            return count

        while True:
            bit = bit_in.read_bit()
            if bit == END_OF_DATA:
                raise TruncatedStreamError(
                    f"Stream ended before end-of-stream code after {count} bytes")

            current = current.right if bit else current.left

            if isinstance(current, Leaf):
                if current.symbol == self.eof:
                    return count

                bit_out.write_bits(current.symbol, BYTE_BITS)
                count += 1
                current = self.root
