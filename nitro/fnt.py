import struct
from typing import List

from nitro.tree import DIR_ID_MASK, MAX_NAME_LENGTH, NAME_ENCODING, ROOT_DIR_ID, NitroDirectory, iter_directories
MAIN_ENTRY_SIZE = 8

def encode_name(name: str) -> bytes:
    raw = name.encode(NAME_ENCODING)
    if not 0 < len(raw) <= MAX_NAME_LENGTH:
        raise ValueError(f"Name '{name}' must be 1..{MAX_NAME_LENGTH} bytes long")
    return raw

def dir_entry_size(name: str) -> int:
    return 1 + len(encode_name(name)) + 2

def file_entry_size(name: str) -> int:
    return 1 + len(encode_name(name))

def sub_table_size(directory: NitroDirectory) -> int:
    size = 1
    for d in directory.directories:
        size += dir_entry_size(d.name)
    for f in directory.files:
        size += file_entry_size(f.name)
    return size

def calculate_fnt_size(root: NitroDirectory) -> int:
    """Size in bytes of the encoded File Name Table for ``root``."""
    return sum((MAIN_ENTRY_SIZE + sub_table_size(d) for d in iter_directories(root)))

def _ordered_directories(root: NitroDirectory) -> List[NitroDirectory]:
    directories = sorted(iter_directories(root), key=lambda d: d.id & DIR_ID_MASK)
    for index, d in enumerate(directories):
        if d.id & DIR_ID_MASK != index:
            raise ValueError(f'Directory ids are not contiguous: expected 0x{ROOT_DIR_ID | index:04X}, found 0x{d.id:04X}')
    return directories

def encode_sub_table(directory: NitroDirectory) -> bytes:
    table = bytearray()
    for d in directory.directories:
        raw = encode_name(d.name)
        table.append(len(raw) | 128)
        table.extend(raw)
        table.extend(struct.pack('<H', d.id))
    for f in directory.files:
        raw = encode_name(f.name)
        table.append(len(raw))
        table.extend(raw)
    table.append(0)
    return bytes(table)

def first_file_id(directory: NitroDirectory) -> int:
    files = directory.files
    return files[0].id if files else directory.first_file_id

def encode_fnt(root: NitroDirectory) -> bytes:
    """Encode the main table followed by one sub-table per directory, in id order."""
    if not root.is_root:
        raise ValueError('This is not the root directory!')
    directories = _ordered_directories(root)
    main_table = bytearray()
    sub_tables = bytearray()
    sub_table_offset = MAIN_ENTRY_SIZE * len(directories)
    for d in directories:
        parent = d.parent
        parent_field = parent.id if parent is not None else len(directories)
        main_table.extend(struct.pack('<IHH', sub_table_offset + len(sub_tables), first_file_id(d), parent_field))
        sub_tables.extend(encode_sub_table(d))
    return bytes(main_table + sub_tables)
