"""In-memory model of the Nitro file system.

A ROM stores its virtual file system as two tables: the File Name Table
(names and directory structure) and the File Allocation Table (byte ranges
indexed by file id). ``load_tree`` rebuilds the directory tree from an image,
``build_tree_from_host`` rebuilds it from an extracted ``data/`` folder and
predicts where every file body will land in the output image.

File ids are handed out depth-first in name order, with a directory's
subdirectories numbered before its own files. The File Name Table only stores
the first id of each directory, so this order is the contract between the
two tables.
"""
import weakref
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set

from nitro.binio import BinaryReader
from nitro.errors import InvalidHostEntry, MalformedNameTable
ROOT_DIR_ID = 61440
DIR_ID_MASK = 4095
NAME_ENCODING = 'ascii'
MAX_NAME_LENGTH = 127
RESERVED_NAMES = ('.', '..')
FORBIDDEN_NAME_CHARS = '/\\\x00'

class NitroFile:

    def __init__(self, name: str, file_id: int, offset: int, size: int, parent: Optional['NitroDirectory']=None):
        self.name = name
        self.id = file_id
        self.offset = offset
        self.size = size
        self._parent = weakref.ref(parent) if parent is not None else None

    @property
    def parent(self) -> Optional['NitroDirectory']:
        return self._parent() if self._parent is not None else None

    @property
    def end(self) -> int:
        return self.offset + self.size

    @property
    def path(self) -> str:
        parent = self.parent
        if parent is None or not parent.path:
            return self.name
        return f'{parent.path}/{self.name}'

    def __repr__(self):
        return f"NitroFile(name='{self.name}', id={self.id}, offset=0x{self.offset:08X}, size={self.size:,})"

class NitroDirectory:

    def __init__(self, name: str, dir_id: int, parent: Optional['NitroDirectory']=None):
        self.name = name
        self.id = dir_id
        self.first_file_id = 0
        self._parent = weakref.ref(parent) if parent is not None else None
        self._directories: List[NitroDirectory] = []
        self._files: List[NitroFile] = []

    @property
    def parent(self) -> Optional['NitroDirectory']:
        return self._parent() if self._parent is not None else None

    @property
    def is_root(self) -> bool:
        return self.id == ROOT_DIR_ID

    @property
    def directories(self) -> List['NitroDirectory']:
        return sorted(self._directories, key=lambda d: d.name)

    @property
    def files(self) -> List[NitroFile]:
        return sorted(self._files, key=lambda f: f.name)

    @property
    def path(self) -> str:
        parent = self.parent
        if parent is None:
            return ''
        if not parent.path:
            return self.name
        return f'{parent.path}/{self.name}'

    def add_directory(self, name: str, dir_id: int) -> 'NitroDirectory':
        if any((d.name == name for d in self._directories)):
            raise ValueError(f"Duplicate directory '{name}' in '{self.path or '/'}'")
        directory = NitroDirectory(name, dir_id, self)
        self._directories.append(directory)
        return directory

    def add_file(self, name: str, file_id: int, offset: int, size: int) -> NitroFile:
        if any((f.name == name for f in self._files)):
            raise ValueError(f"Duplicate file '{name}' in '{self.path or '/'}'")
        nitro_file = NitroFile(name, file_id, offset, size, self)
        self._files.append(nitro_file)
        return nitro_file

    def __repr__(self):
        return f"NitroDirectory(name='{self.name}', id=0x{self.id:04X})"

def iter_directories(root: NitroDirectory) -> Iterator[NitroDirectory]:
    """Depth-first pre-order walk; matches directory id order for host-built trees."""
    yield root
    for d in root.directories:
        yield from iter_directories(d)

def iter_files(root: NitroDirectory) -> Iterator[NitroFile]:
    """Files in FAT order: subdirectories first, then the directory's own files."""
    for d in root.directories:
        yield from iter_files(d)
    yield from root.files

def count_directories(root: NitroDirectory) -> int:
    return sum((1 for _ in iter_directories(root)))

def count_files(root: NitroDirectory) -> int:
    return sum((1 for _ in iter_files(root)))

def is_safe_name(name: str) -> bool:
    """True when ``name`` is a single path component that stays inside its parent."""
    if not name or name in RESERVED_NAMES:
        return False
    return not any((c in FORBIDDEN_NAME_CHARS for c in name))

def load_tree(reader: BinaryReader, origin: int, fat_entries: List) -> NitroDirectory:
    """Decode the File Name Table starting at ``origin``.

    ``fat_entries`` is indexed by file id and provides each file's byte range.
    The reader position is left where it was on entry.
    """
    root = NitroDirectory('root', ROOT_DIR_ID)
    _load_dir(root, reader, origin, fat_entries, set())
    return root

def _load_dir(directory: NitroDirectory, reader: BinaryReader, origin: int, fat_entries: List, visited: Set[int]):
    if directory.id in visited:
        raise MalformedNameTable(f'Directory 0x{directory.id:04X} referenced twice')
    visited.add(directory.id)
    position = reader.tell()
    reader.seek(origin + 8 * (directory.id & DIR_ID_MASK))
    sub_table_offset = reader.read_u32()
    file_id = reader.read_u16()
    directory.first_file_id = file_id
    reader.seek(origin + sub_table_offset)
    while True:
        entry_offset = reader.tell()
        type_len = reader.read_u8()
        if type_len == 0:
            break
        if type_len == 128 or type_len == 255:
            raise MalformedNameTable(f'Reserved entry type 0x{type_len:02X}', entry_offset)
        name = reader.read_bytes(type_len & 127).decode(NAME_ENCODING, errors='replace')
        if not is_safe_name(name):
            raise MalformedNameTable(f'Unsafe entry name {name!r}', entry_offset)
        if type_len & 128:
            sub_dir_id = reader.read_u16()
            if sub_dir_id & ~DIR_ID_MASK != ROOT_DIR_ID or sub_dir_id == ROOT_DIR_ID:
                raise MalformedNameTable(f"Invalid directory id 0x{sub_dir_id:04X} for '{name}'", entry_offset)
            try:
                sub_dir = directory.add_directory(name, sub_dir_id)
            except ValueError as e:
                raise MalformedNameTable(str(e), entry_offset) from e
            _load_dir(sub_dir, reader, origin, fat_entries, visited)
        else:
            if file_id >= len(fat_entries):
                raise MalformedNameTable(f"File id {file_id} for '{name}' is outside the FAT ({len(fat_entries)} entries)", entry_offset)
            entry = fat_entries[file_id]
            if entry.end_addr < entry.start_addr:
                raise MalformedNameTable(f"File id {file_id} for '{name}' has an inverted FAT entry {entry}", entry_offset)
            try:
                directory.add_file(name, file_id, entry.start_addr, entry.end_addr - entry.start_addr)
            except ValueError as e:
                raise MalformedNameTable(str(e), entry_offset) from e
            file_id += 1
    reader.seek(position)

class _BuildState:
    """Counters threaded through one host-tree build."""

    def __init__(self, dir_id: int, file_id: int, offset: int):
        self.dir_id = dir_id
        self.file_id = file_id
        self.offset = offset

def build_tree_from_host(root_path: Path, start_dir_id: int=ROOT_DIR_ID, start_file_id: int=0, start_offset: int=0) -> NitroDirectory:
    """Build the directory tree for a host ``data/`` folder.

    Every directory gets the next directory id before its subtree is walked;
    every file gets the next file id and the running byte offset, which then
    advances by the file's size. Only file metadata is read.
    """
    root = NitroDirectory('root', start_dir_id)
    state = _BuildState(start_dir_id, start_file_id, start_offset)
    _build_dir(Path(root_path), root, state)
    return root

def _check_host_name(path: Path):
    try:
        raw = path.name.encode(NAME_ENCODING)
    except UnicodeEncodeError:
        raise InvalidHostEntry(path, f'Name is not {NAME_ENCODING}') from None
    if len(raw) > MAX_NAME_LENGTH:
        raise InvalidHostEntry(path, f'Name is longer than {MAX_NAME_LENGTH} bytes')

def _build_dir(current_path: Path, directory: NitroDirectory, state: _BuildState):
    entries = sorted(current_path.iterdir(), key=lambda p: p.name)
    for path in entries:
        _check_host_name(path)
    for sub_path in entries:
        if sub_path.is_dir():
            state.dir_id += 1
            if state.dir_id > ROOT_DIR_ID | DIR_ID_MASK:
                raise InvalidHostEntry(sub_path, f'More than {DIR_ID_MASK} directories')
            sub_dir = directory.add_directory(sub_path.name, state.dir_id)
            _build_dir(sub_path, sub_dir, state)
    directory.first_file_id = state.file_id
    for file_path in entries:
        if file_path.is_file():
            size = file_path.stat().st_size
            directory.add_file(file_path.name, state.file_id, state.offset, size)
            state.file_id += 1
            state.offset += size

def create_directory_tree(dest: Path, root: NitroDirectory):
    for d in root.directories:
        target = dest / d.name
        target.mkdir(exist_ok=True)
        create_directory_tree(target, d)

def create_file_tree(reader: BinaryReader, dest: Path, root: NitroDirectory) -> Dict[str, int]:
    """Write every file body under ``dest``; existing files are left alone.

    Returns counts of written and skipped files.
    """
    counts = {'written': 0, 'skipped': 0}
    _create_files(reader, dest, root, counts)
    return counts

def _create_files(reader: BinaryReader, dest: Path, directory: NitroDirectory, counts: Dict[str, int]):
    for d in directory.directories:
        _create_files(reader, dest / d.name, d, counts)
    for f in directory.files:
        target = dest / f.name
        if target.exists():
            print(f'[NitroDirectory] Skipping existing file: {f.path}')
            counts['skipped'] += 1
            continue
        reader.seek(f.offset)
        target.write_bytes(reader.read_bytes(f.size))
        counts['written'] += 1
