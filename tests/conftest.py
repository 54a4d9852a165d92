"""Shared pytest fixtures: synthetic extracted-ROM folders built in tmp_path."""

import io
from pathlib import Path

import pytest

from nitro.binio import BinaryWriter
from nitro.header import NDSHeader, HEADER_AREA_SIZE
from nitro.rom import BANNER_SIZE, build_rom, overlay_file_name


DEFAULT_DATA = {
    "a.txt": b"AAAA",
    "sub/b.txt": b"BB",
    "sub/deeper/c.bin": bytes(range(37)),
    "sub/deeper/d.bin": b"\x00" * 5,
    "zeta/z.dat": b"last one",
}


def make_header() -> NDSHeader:
    return NDSHeader(
        game_title=b"NITROTEST\x00\x00\x00",
        game_code=b"NTST",
        maker_code=b"01",
        device_capacity=7,
        nds_region=0,
        rom_version=1,
        arm9_entry_addr=0x02000800,
        arm9_ram_addr=0x02000000,
        arm7_entry_addr=0x02380000,
        arm7_ram_addr=0x02380000,
        normal_commands_settings=0x00586000,
        key1_commands_settings=0x001808F8,
        secure_area_crc16=0x1234,
        secure_area_loading_timeout=0x0D7E,
        header_size=HEADER_AREA_SIZE,
        nintendo_logo=bytes(range(156)),
        nintendo_logo_crc=0xCF56,
    )


def header_area_bytes(header: NDSHeader) -> bytes:
    buf = io.BytesIO()
    header.write(BinaryWriter(buf))
    return buf.getvalue()


def write_rom_dir(
    root: Path,
    data: dict = None,
    arm9_overlays: int = 2,
    arm7_overlays: int = 1,
    empty_dirs=("empty",),
) -> Path:
    """Create an extracted-ROM folder layout under ``root``."""
    data = DEFAULT_DATA if data is None else data
    root.mkdir(parents=True, exist_ok=True)
    (root / "header.bin").write_bytes(header_area_bytes(make_header()))
    (root / "arm9.bin").write_bytes(b"\x09" * 0x120)
    (root / "arm9ovltable.bin").write_bytes(b"\x99" * (32 * arm9_overlays))
    (root / "arm7.bin").write_bytes(b"\x07" * 0x84)
    (root / "arm7ovltable.bin").write_bytes(b"\x77" * (32 * arm7_overlays))
    (root / "banner.bin").write_bytes(bytes(i & 0xFF for i in range(BANNER_SIZE)))

    overlay_dir = root / "overlay"
    overlay_dir.mkdir(exist_ok=True)
    for i in range(arm9_overlays + arm7_overlays):
        (overlay_dir / overlay_file_name(i)).write_bytes(bytes([0xA0 + i]) * (16 + i))

    data_dir = root / "data"
    data_dir.mkdir(exist_ok=True)
    for name in empty_dirs:
        (data_dir / name).mkdir(parents=True, exist_ok=True)
    for rel, content in data.items():
        target = data_dir / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
    return root


@pytest.fixture
def rom_dir_factory():
    """Factory for custom extracted-ROM folders."""
    return write_rom_dir


@pytest.fixture
def header_factory():
    return make_header


@pytest.fixture
def rom_dir(tmp_path):
    """An extracted-ROM folder with overlays, nested data and an empty directory."""
    return write_rom_dir(tmp_path / "source")


@pytest.fixture
def built_rom(rom_dir, tmp_path):
    """A ROM image built from ``rom_dir``."""
    rom_path = tmp_path / "built.nds"
    build_rom(rom_dir, rom_path)
    return rom_path
