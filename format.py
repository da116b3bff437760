"""
Заголовок сжатого файла .grin: 32-битное магическое число,
за которым идут сериализованное дерево и закодированные данные.
"""

from bitstream import END_OF_DATA, BitInputStream, BitOutputStream


MAGIC_NUMBER = 0x736
MAGIC_BITS = 32


class FormatError(ValueError):
    pass


def write_header(bit_out: BitOutputStream):
    bit_out.write_bits(MAGIC_NUMBER, MAGIC_BITS)


def read_header(bit_in: BitInputStream):
    magic = bit_in.read_bits(MAGIC_BITS)

    if magic == END_OF_DATA:
        raise FormatError("File too small for a .grin header")

    if magic != MAGIC_NUMBER:
        raise FormatError(f"Invalid magic number: {magic:#010x}")
