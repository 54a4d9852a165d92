import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from nitro.binio import BinaryReader, BinaryWriter
from nitro.errors import InputNotFound, NitroError, OffsetMismatch, PermissionDenied
from nitro.fat import FATEntry, build_fat, calculate_fat_size, read_fat, write_fat
from nitro.fnt import calculate_fnt_size, encode_fnt
from nitro.header import HEADER_SIZE, OVERLAY_ENTRY_SIZE, NDSHeader
from nitro.tree import ROOT_DIR_ID, NitroDirectory, build_tree_from_host, count_directories, create_directory_tree, create_file_tree, iter_files, load_tree
BANNER_SIZE = 2112
DATA_DIR = 'data'
OVERLAY_DIR = 'overlay'
HEADER_FILE = 'header.bin'
ARM9_FILE = 'arm9.bin'
ARM9_OVERLAY_TABLE_FILE = 'arm9ovltable.bin'
ARM7_FILE = 'arm7.bin'
ARM7_OVERLAY_TABLE_FILE = 'arm7ovltable.bin'
BANNER_FILE = 'banner.bin'
REQUIRED_ARTIFACTS = [(DATA_DIR, 'data subfolder'), (OVERLAY_DIR, 'overlay subfolder'), (ARM9_FILE, 'arm9 file'), (ARM9_OVERLAY_TABLE_FILE, 'arm9 overlay table file'), (ARM7_FILE, 'arm7 file'), (ARM7_OVERLAY_TABLE_FILE, 'arm7 overlay table file'), (HEADER_FILE, 'header file'), (BANNER_FILE, 'banner file')]
ProgressCallback = Optional[Callable[[str], None]]

def overlay_file_name(index: int) -> str:
    return f'overlay_{index:04d}.bin'

def validate_rom_directory(path: Union[str, Path]) -> None:
    path = Path(path)
    for name, label in REQUIRED_ARTIFACTS:
        if not (path / name).exists():
            raise InputNotFound(path / name, label)

def _progress(callback: ProgressCallback, message: str):
    if callback:
        callback(message)
    else:
        print(f'  [progress] {message}')

@dataclass
class RomInfo:
    path: Path
    header: NDSHeader
    fat_entries: List[FATEntry]
    root: NitroDirectory
    directory_count: int = 0
    files: List = field(default_factory=list)

    def get_display_lines(self) -> List[str]:
        h = self.header
        lines = [f"Game Title : {h.game_title_str}", f'Game Code  : {h.game_code_str}', f'ROM size   : {h.rom_size:,} bytes', f"Checksum   : 0x{h.header_crc16:04X} ({('ok' if h.checksum_valid else 'MISMATCH')})", f'ARM9       : {h.arm9_size:,} bytes @ 0x{h.arm9_rom_addr:08X}  ({h.arm9_overlay_count} overlays)', f'ARM7       : {h.arm7_size:,} bytes @ 0x{h.arm7_rom_addr:08X}  ({h.arm7_overlay_count} overlays)', f'FNT        : {h.filename_size:,} bytes @ 0x{h.filename_table_addr:08X}', f'FAT entries: {h.fat_entry_count} @ 0x{h.fat_addr:08X}', f'Directories: {self.directory_count}', f'Files      : {len(self.files)}', '─' * 50]
        for f in self.files:
            lines.append(f'  {f.id:5d}  0x{f.offset:08X}  {f.size:>10,}  {f.path}')
        return lines

def describe_rom(rom_path: Union[str, Path]) -> RomInfo:
    rom_path = Path(rom_path)
    if not rom_path.is_file():
        raise InputNotFound(rom_path, 'ROM file')
    with open(rom_path, 'rb') as f:
        reader = BinaryReader(f)
        header = NDSHeader.read(reader)
        fat_entries = read_fat(reader, header.fat_addr, header.fat_size)
        reader.seek(header.filename_table_addr)
        root = load_tree(reader, header.filename_table_addr, fat_entries)
    return RomInfo(path=rom_path, header=header, fat_entries=fat_entries, root=root, directory_count=count_directories(root), files=list(iter_files(root)))

class RomExtractor:
    """Unpacks a ROM image into the host directory layout."""

    def __init__(self, rom_path: Union[str, Path], out_dir: Union[str, Path], progress_callback: ProgressCallback=None):
        self.rom_path = Path(rom_path)
        self.out_dir = Path(out_dir)
        self.progress_callback = progress_callback
        self.header: Optional[NDSHeader] = None
        self.root: Optional[NitroDirectory] = None
        self.written = 0
        self.skipped = 0

    def extract(self) -> Dict:
        divider = '=' * 60
        print(f'\n{divider}')
        print('ROM EXTRACT START')
        print(f'  Source : {self.rom_path}')
        print(f'  Output : {self.out_dir}')
        print(divider)
        if not self.rom_path.is_file():
            raise InputNotFound(self.rom_path, 'ROM file')
        self._prepare_output_dir()
        with open(self.rom_path, 'rb') as f:
            rom = BinaryReader(f)
            _progress(self.progress_callback, 'Reading ROM header…')
            self.header = NDSHeader.read(rom)
            print(f"[RomExtractor] Header loaded: '{self.header.game_title_str}' ({self.header.game_code_str})")
            _progress(self.progress_callback, 'Loading File Allocation Table…')
            fat_entries = read_fat(rom, self.header.fat_addr, self.header.fat_size)
            print(f'[RomExtractor] FAT loaded: {len(fat_entries)} entries @ 0x{self.header.fat_addr:08X}')
            _progress(self.progress_callback, 'Reading File Name Table…')
            rom.seek(self.header.filename_table_addr)
            self.root = load_tree(rom, self.header.filename_table_addr, fat_entries)
            _progress(self.progress_callback, 'Extracting data files…')
            self._extract_data(rom)
            _progress(self.progress_callback, 'Extracting overlays…')
            self._extract_overlays(rom, fat_entries)
            _progress(self.progress_callback, 'Extracting header, binaries and banner…')
            self._extract_sections(rom)
        summary = {'files': self.written, 'skipped': self.skipped, 'overlays': self.header.overlay_count, 'path': str(self.out_dir)}
        print(f'\n{divider}')
        print('ROM EXTRACT COMPLETE')
        print(f'  Written: {self.written}  Skipped: {self.skipped}')
        print(f'{divider}\n')
        return summary

    def _prepare_output_dir(self):
        self.out_dir.mkdir(parents=True, exist_ok=True)
        if not os.access(self.out_dir, os.W_OK):
            raise PermissionDenied(self.out_dir)

    def _extract_data(self, rom: BinaryReader):
        data_dir = self.out_dir / DATA_DIR
        data_dir.mkdir(exist_ok=True)
        create_directory_tree(data_dir, self.root)
        counts = create_file_tree(rom, data_dir, self.root)
        self.written += counts['written']
        self.skipped += counts['skipped']
        print(f"[RomExtractor] Data files: {counts['written']} written, {counts['skipped']} skipped")

    def _extract_overlays(self, rom: BinaryReader, fat_entries: List[FATEntry]):
        overlay_dir = self.out_dir / OVERLAY_DIR
        overlay_dir.mkdir(exist_ok=True)
        for i in range(self.header.overlay_count):
            if i >= len(fat_entries):
                raise NitroError(f'Overlay {i} has no FAT entry ({len(fat_entries)} entries)')
            entry = fat_entries[i]
            if entry.end_addr < entry.start_addr:
                raise NitroError(f'Overlay {i} has an inverted FAT entry {entry}')
            self._write_blob(rom, overlay_dir / overlay_file_name(i), entry.start_addr, entry.size)

    def _extract_sections(self, rom: BinaryReader):
        h = self.header
        self._write_blob(rom, self.out_dir / HEADER_FILE, 0, max(h.header_size, HEADER_SIZE))
        self._write_blob(rom, self.out_dir / ARM9_FILE, h.arm9_rom_addr, h.arm9_size)
        self._write_blob(rom, self.out_dir / ARM9_OVERLAY_TABLE_FILE, h.arm9_overlay_addr, h.arm9_overlay_size)
        self._write_blob(rom, self.out_dir / ARM7_FILE, h.arm7_rom_addr, h.arm7_size)
        self._write_blob(rom, self.out_dir / ARM7_OVERLAY_TABLE_FILE, h.arm7_overlay_addr, h.arm7_overlay_size)
        self._write_blob(rom, self.out_dir / BANNER_FILE, h.icon_title_addr, BANNER_SIZE)

    def _write_blob(self, rom: BinaryReader, target: Path, offset: int, size: int):
        if target.exists():
            print(f'[RomExtractor] Skipping existing file: {target.name}')
            self.skipped += 1
            return
        rom.seek(offset)
        target.write_bytes(rom.read_bytes(size))
        self.written += 1

class RomBuilder:
    """Packs a host directory layout into a ROM image.

    Sections are laid out in a fixed order. File offsets are predicted from
    metadata before anything after the overlays is written, so the File Name
    Table and File Allocation Table can be emitted ahead of the file bodies.
    """

    def __init__(self, dir_path: Union[str, Path], rom_path: Union[str, Path], progress_callback: ProgressCallback=None, strict: bool=False):
        self.dir_path = Path(dir_path)
        self.rom_path = Path(rom_path)
        self.progress_callback = progress_callback
        self.strict = strict
        self.header: Optional[NDSHeader] = None
        self.root: Optional[NitroDirectory] = None
        self.overlay_entries: List[FATEntry] = []
        self.offset_mismatches: List[OffsetMismatch] = []
        self._fat_stale = False

    def build(self) -> NDSHeader:
        divider = '=' * 60
        print(f'\n{divider}')
        print('ROM BUILD START')
        print(f'  Source : {self.dir_path}')
        print(f'  Output : {self.rom_path}')
        print(divider)
        validate_rom_directory(self.dir_path)
        out_parent = self.rom_path.resolve().parent
        if not out_parent.is_dir():
            raise InputNotFound(out_parent, 'output directory')
        if not os.access(out_parent, os.W_OK):
            raise PermissionDenied(out_parent)
        with open(self.dir_path / HEADER_FILE, 'rb') as f:
            self.header = NDSHeader.read(BinaryReader(f))
        header = self.header
        overlays = self._overlay_files()
        arm9_count = (self.dir_path / ARM9_OVERLAY_TABLE_FILE).stat().st_size // OVERLAY_ENTRY_SIZE
        arm7_count = (self.dir_path / ARM7_OVERLAY_TABLE_FILE).stat().st_size // OVERLAY_ENTRY_SIZE
        if len(overlays) < arm9_count + arm7_count:
            raise InputNotFound(self.dir_path / OVERLAY_DIR / overlay_file_name(len(overlays)), 'overlay file')
        with open(self.rom_path, 'w+b') as f:
            rom = BinaryWriter(f)
            _progress(self.progress_callback, 'Reserving header…')
            header.write(rom)
            _progress(self.progress_callback, 'Writing ARM9 binary and overlays…')
            header.arm9_rom_addr = rom.tell()
            header.arm9_size = self._copy_into(rom, self.dir_path / ARM9_FILE)
            header.arm9_overlay_addr = rom.tell()
            header.arm9_overlay_size = self._copy_into(rom, self.dir_path / ARM9_OVERLAY_TABLE_FILE)
            self._write_overlays(rom, overlays[:arm9_count])
            _progress(self.progress_callback, 'Writing ARM7 binary and overlays…')
            header.arm7_rom_addr = rom.tell()
            header.arm7_size = self._copy_into(rom, self.dir_path / ARM7_FILE)
            header.arm7_overlay_addr = rom.tell()
            header.arm7_overlay_size = self._copy_into(rom, self.dir_path / ARM7_OVERLAY_TABLE_FILE)
            self._write_overlays(rom, overlays[arm9_count:arm9_count + arm7_count])
            _progress(self.progress_callback, 'Predicting file layout…')
            banner_size = (self.dir_path / BANNER_FILE).stat().st_size
            self.root = self._predict_layout(rom.tell(), len(self.overlay_entries), banner_size)
            _progress(self.progress_callback, 'Writing File Name Table…')
            header.filename_table_addr = rom.tell()
            fnt = encode_fnt(self.root)
            rom.write_bytes(fnt)
            header.filename_size = len(fnt)
            _progress(self.progress_callback, 'Writing File Allocation Table…')
            header.fat_addr = rom.tell()
            header.fat_size = write_fat(rom, self.root, self.overlay_entries)
            _progress(self.progress_callback, 'Writing banner…')
            header.icon_title_addr = rom.tell()
            self._copy_into(rom, self.dir_path / BANNER_FILE)
            _progress(self.progress_callback, 'Writing data files…')
            self.write_file_bodies(rom, self.dir_path / DATA_DIR, self.root)
            header.rom_size = rom.tell()
            if self._fat_stale:
                print(f'[RomBuilder] Patching FAT after {len(self.offset_mismatches)} offset correction(s)')
                rom.seek(header.fat_addr)
                write_fat(rom, self.root, self.overlay_entries)
            _progress(self.progress_callback, 'Updating ROM header…')
            rom.seek(0)
            header.write(rom)
        print(f'\n{divider}')
        print('ROM BUILD COMPLETE')
        print(f'  Files      : {header.fat_entry_count - len(self.overlay_entries)}')
        print(f'  Overlays   : {len(self.overlay_entries)}')
        print(f'  ROM size   : {header.rom_size:,} bytes')
        print(f'  Header CRC : 0x{header.header_crc16:04X}')
        print(f'{divider}\n')
        return header

    def _overlay_files(self) -> List[Path]:
        return sorted((p for p in (self.dir_path / OVERLAY_DIR).iterdir() if p.is_file()), key=lambda p: p.name)

    def _copy_into(self, rom: BinaryWriter, path: Path) -> int:
        with open(path, 'rb') as f:
            data = f.read()
        rom.write_bytes(data)
        return len(data)

    def _write_overlays(self, rom: BinaryWriter, overlays: List[Path]):
        for path in overlays:
            start = rom.tell()
            size = self._copy_into(rom, path)
            self.overlay_entries.append(FATEntry(start, start + size))

    def _predict_layout(self, fnt_offset: int, overlay_count: int, banner_size: int) -> NitroDirectory:
        data_dir = self.dir_path / DATA_DIR
        sizing_tree = build_tree_from_host(data_dir, ROOT_DIR_ID, overlay_count, 0)
        fnt_size = calculate_fnt_size(sizing_tree)
        fat_size = calculate_fat_size(sizing_tree, overlay_count)
        data_offset = fnt_offset + fnt_size + fat_size + banner_size
        print(f'[RomBuilder] Predicted FNT {fnt_size:,} bytes, FAT {fat_size:,} bytes, data @ 0x{data_offset:08X}')
        return build_tree_from_host(data_dir, ROOT_DIR_ID, overlay_count, data_offset)

    def write_file_bodies(self, rom: BinaryWriter, current_dir: Path, directory: NitroDirectory):
        """Write file bodies in FAT order, correcting offsets that drifted from the prediction."""
        for d in directory.directories:
            self.write_file_bodies(rom, current_dir / d.name, d)
        for f in directory.files:
            path = current_dir / f.name
            if not path.is_file():
                raise InputNotFound(path, f'{f.path} file')
            position = rom.tell()
            if f.offset != position:
                mismatch = OffsetMismatch(f.path, f.offset, position)
                if self.strict:
                    raise mismatch
                print(f'[RomBuilder] WARNING: {mismatch}')
                self.offset_mismatches.append(mismatch)
                f.offset = position
                self._fat_stale = True
            size = self._copy_into(rom, path)
            if size != f.size:
                print(f'[RomBuilder] WARNING: {f.path} changed size while building ({f.size:,} -> {size:,} bytes)')
                f.size = size
                self._fat_stale = True

    def fat_entries(self) -> List[FATEntry]:
        return build_fat(self.root, self.overlay_entries)

def extract_rom(rom_path: Union[str, Path], out_dir: Union[str, Path], progress_callback: ProgressCallback=None) -> Dict:
    return RomExtractor(rom_path, out_dir, progress_callback).extract()

def build_rom(dir_path: Union[str, Path], rom_path: Union[str, Path], progress_callback: ProgressCallback=None, strict: bool=False) -> NDSHeader:
    return RomBuilder(dir_path, rom_path, progress_callback, strict).build()
