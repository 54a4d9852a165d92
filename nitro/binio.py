import io
import struct
from typing import BinaryIO

from nitro.errors import TruncatedInput


class BinaryReader:
    """Little-endian reader over a seekable binary file object."""

    def __init__(self, stream: BinaryIO):
        self.stream = stream

    @classmethod
    def from_bytes(cls, data: bytes) -> 'BinaryReader':
        return cls(io.BytesIO(data))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        self.stream.close()

    def tell(self) -> int:
        return self.stream.tell()

    def seek(self, offset: int) -> int:
        return self.stream.seek(offset)

    def skip(self, count: int) -> int:
        return self.stream.seek(count, io.SEEK_CUR)

    def size(self) -> int:
        pos = self.stream.tell()
        end = self.stream.seek(0, io.SEEK_END)
        self.stream.seek(pos)
        return end

    def read_bytes(self, count: int) -> bytes:
        if count < 0:
            raise ValueError(f'Negative read length: {count}')
        offset = self.stream.tell()
        data = self.stream.read(count)
        if len(data) < count:
            raise TruncatedInput(offset, count, len(data))
        return data

    def read_all(self) -> bytes:
        return self.stream.read()

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read_u16(self) -> int:
        return struct.unpack('<H', self.read_bytes(2))[0]

    def read_u32(self) -> int:
        return struct.unpack('<I', self.read_bytes(4))[0]

    def read_u64(self) -> int:
        return struct.unpack('<Q', self.read_bytes(8))[0]

    def read_string(self, length: int, encoding: str='ascii') -> str:
        return self.read_bytes(length).decode(encoding, errors='replace').rstrip('\x00')


class BinaryWriter:
    """Little-endian writer over a seekable binary file object."""

    def __init__(self, stream: BinaryIO):
        self.stream = stream

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        self.stream.close()

    def tell(self) -> int:
        return self.stream.tell()

    def seek(self, offset: int) -> int:
        return self.stream.seek(offset)

    def write_bytes(self, data: bytes) -> int:
        return self.stream.write(data)

    def write_zeros(self, count: int) -> int:
        if count <= 0:
            return 0
        return self.stream.write(b'\x00' * count)

    def write_u8(self, value: int):
        self.stream.write(struct.pack('<B', value & 255))

    def write_u16(self, value: int):
        self.stream.write(struct.pack('<H', value & 65535))

    def write_u32(self, value: int):
        self.stream.write(struct.pack('<I', value & 4294967295))

    def write_u64(self, value: int):
        self.stream.write(struct.pack('<Q', value & 18446744073709551615))

    def write_string(self, text: str, length: int, encoding: str='ascii'):
        raw = text.encode(encoding)[:length]
        self.stream.write(raw + b'\x00' * (length - len(raw)))
