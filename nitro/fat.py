import struct
from dataclasses import dataclass
from typing import List

from nitro.binio import BinaryReader, BinaryWriter
from nitro.tree import NitroDirectory, count_files, iter_files
FAT_ENTRY_SIZE = 8

@dataclass
class FATEntry:
    start_addr: int
    end_addr: int

    @property
    def size(self) -> int:
        return self.end_addr - self.start_addr

    @classmethod
    def from_bytes(cls, data: bytes) -> 'FATEntry':
        start, end = struct.unpack('<II', data[0:8])
        return cls(start, end)

    def to_bytes(self) -> bytes:
        return struct.pack('<II', self.start_addr, self.end_addr)

    def __repr__(self):
        return f'FATEntry(start=0x{self.start_addr:08X}  end=0x{self.end_addr:08X}  size={self.size:,})'

def read_fat(reader: BinaryReader, offset: int, size: int) -> List[FATEntry]:
    reader.seek(offset)
    return [FATEntry(reader.read_u32(), reader.read_u32()) for _ in range(size // FAT_ENTRY_SIZE)]

def calculate_fat_size(root: NitroDirectory, overlay_count: int=0) -> int:
    return FAT_ENTRY_SIZE * (overlay_count + count_files(root))

def build_fat(root: NitroDirectory, overlay_entries: List[FATEntry]) -> List[FATEntry]:
    entries = list(overlay_entries)
    for f in iter_files(root):
        entries.append(FATEntry(f.offset, f.offset + f.size))
    return entries

def write_fat(writer: BinaryWriter, root: NitroDirectory, overlay_entries: List[FATEntry]) -> int:
    """Write overlay ranges followed by every file range; returns bytes written."""
    if not root.is_root:
        raise ValueError('This is not the root directory!')
    raw = bytearray()
    for entry in build_fat(root, overlay_entries):
        raw.extend(entry.to_bytes())
    writer.write_bytes(bytes(raw))
    return len(raw)
