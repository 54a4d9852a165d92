from pathlib import Path
from typing import List, Optional, Tuple

from nitro.errors import NitroError
from nitro.rom import RomInfo, build_rom, describe_rom, extract_rom

class ROMSelector:
    """Keeps track of the ROM and folder picked in the window and runs the jobs."""

    def __init__(self):
        self.rom_path: Optional[Path] = None
        self.extracted_path: Optional[Path] = None
        self.info: Optional[RomInfo] = None

    def set_rom(self, rom_path) -> bool:
        rom_path = Path(rom_path)
        try:
            self.info = describe_rom(rom_path)
        except (NitroError, OSError) as e:
            print(f'[ROMSelector] ERROR reading {rom_path.name}: {e}')
            self.rom_path = None
            self.info = None
            return False
        self.rom_path = rom_path
        self.extracted_path = rom_path.parent / f'{rom_path.stem}_extracted'
        print(f"[ROMSelector] ROM selected: '{self.info.header.game_title_str}' ({self.info.header.game_code_str})")
        return True

    def get_info_lines(self) -> List[str]:
        if not self.info:
            return ['No ROM selected.']
        return self.info.get_display_lines()

    def extract_rom(self, out_dir=None, callback=None) -> Tuple[bool, str]:
        if not self.rom_path:
            return (False, 'No ROM file selected!')
        if out_dir is not None:
            self.extracted_path = Path(out_dir)
        try:
            summary = extract_rom(self.rom_path, self.extracted_path, callback)
        except (NitroError, OSError) as e:
            return (False, f'ROM extraction failed:\n{e}')
        msg = f"Extracted {summary['files']} files to\n{summary['path']}"
        if summary['skipped']:
            msg += f"\n\n{summary['skipped']} existing file(s) were left untouched."
        return (True, msg)

    def build_rom(self, source_dir, output_path, callback=None) -> Tuple[bool, str]:
        try:
            header = build_rom(source_dir, output_path, callback)
        except (NitroError, OSError) as e:
            return (False, f'ROM build failed:\n{e}')
        lines = ['ROM saved successfully!', '', f'Output         : {Path(output_path).name}', f'Final ROM size : {header.rom_size:,} bytes', f'Header CRC     : 0x{header.header_crc16:04X}']
        return (True, '\n'.join(lines))
