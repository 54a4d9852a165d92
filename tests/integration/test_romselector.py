"""Tests for the GUI-independent ROM selection controller."""

from gui.romselector import ROMSelector


def test_set_rom_reads_info(built_rom):
    selector = ROMSelector()
    assert selector.set_rom(built_rom)
    assert selector.extracted_path == built_rom.parent / "built_extracted"
    assert any("NTST" in line for line in selector.get_info_lines())


def test_set_rom_rejects_garbage(tmp_path):
    bad = tmp_path / "bad.nds"
    bad.write_bytes(b"\x01" * 10)
    selector = ROMSelector()
    assert not selector.set_rom(bad)
    assert selector.rom_path is None
    assert selector.get_info_lines() == ["No ROM selected."]


def test_extract_requires_rom():
    ok, message = ROMSelector().extract_rom()
    assert not ok
    assert "No ROM" in message


def test_extract_and_build(built_rom, tmp_path):
    selector = ROMSelector()
    selector.set_rom(built_rom)
    messages = []
    ok, message = selector.extract_rom(tmp_path / "x", messages.append)
    assert ok, message
    assert messages

    ok, message = selector.build_rom(tmp_path / "x", tmp_path / "again.nds")
    assert ok, message
    assert (tmp_path / "again.nds").read_bytes() == built_rom.read_bytes()


def test_build_failure_is_reported(tmp_path):
    ok, message = ROMSelector().build_rom(tmp_path / "missing", tmp_path / "out.nds")
    assert not ok
    assert "not found" in message
