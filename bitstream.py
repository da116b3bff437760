"""
Побитовое чтение и запись поверх байтовых файлов.
Биты упаковываются в байт начиная со старшего.
"""

import io
from typing import BinaryIO, Union


END_OF_DATA = -1

Source = Union[str, BinaryIO]


class BitInputStream:
    def __init__(self, source: Source):
        if isinstance(source, (str, bytes)) or hasattr(source, '__fspath__'):
            self._file = open(source, 'rb')
            self._owned = True
        else:
            self._file = source
            self._owned = False

        self._buffer = b''
        self._pos = 0
        self._current = 0
        self._bits_left = 0
        self.bits_read = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> 'BitInputStream':
        return cls(io.BytesIO(data))

    def _next_byte(self) -> int:
        if self._pos >= len(self._buffer):
            self._buffer = self._file.read(io.DEFAULT_BUFFER_SIZE)
            self._pos = 0
            if not self._buffer:
                return END_OF_DATA

        byte = self._buffer[self._pos]
        self._pos += 1
        return byte

    def read_bit(self) -> int:
        if self._bits_left == 0:
            byte = self._next_byte()
            if byte == END_OF_DATA:
                return END_OF_DATA
            self._current = byte
            self._bits_left = 8

        self._bits_left -= 1
        self.bits_read += 1
        return (self._current >> self._bits_left) & 1

    def read_bits(self, n: int) -> int:
        # выровненный байт читаем целиком
        if n == 8 and self._bits_left == 0:
            byte = self._next_byte()
            if byte != END_OF_DATA:
                self.bits_read += 8
            return byte

        value = 0
        for _ in range(n):
            bit = self.read_bit()
            if bit == END_OF_DATA:
                return END_OF_DATA
            value = (value << 1) | bit

        return value

    def close(self):
        if self._owned:
            self._file.close()

    def __enter__(self) -> 'BitInputStream':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class BitOutputStream:
    def __init__(self, target: Source):
        if isinstance(target, (str, bytes)) or hasattr(target, '__fspath__'):
            self._file = open(target, 'wb')
            self._owned = True
        else:
            self._file = target
            self._owned = False

        self._buffer = bytearray()
        self._current = 0
        self._filled = 0
        self.bits_written = 0

    def write_bit(self, bit: int):
        if bit not in (0, 1):
            raise ValueError(f"Invalid bit value: {bit}")

        self._current = (self._current << 1) | bit
        self._filled += 1
        self.bits_written += 1

        if self._filled == 8:
            self._buffer.append(self._current)
            self._current = 0
            self._filled = 0

            if len(self._buffer) >= io.DEFAULT_BUFFER_SIZE:
                self._file.write(self._buffer)
                self._buffer.clear()

    def write_bits(self, value: int, n: int):
        if value < 0 or value >> n:
            raise ValueError(f"Value {value} does not fit in {n} bits")

        for i in range(n - 1, -1, -1):
            self.write_bit((value >> i) & 1)

    def write_code(self, code: str):
        for bit in code:
            self.write_bit(1 if bit == '1' else 0)

    def flush(self):
        if self._filled:
            padding = 8 - self._filled
            self._buffer.append(self._current << padding)
            self._current = 0
            self._filled = 0

        if self._buffer:
            self._file.write(self._buffer)
            self._buffer.clear()

        self._file.flush()

    def close(self):
        try:
            self.flush()
        finally:
            if self._owned:
                self._file.close()

    def __enter__(self) -> 'BitOutputStream':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
