"""Unit tests for the directory tree model: host builds and image decoding."""

import gc
import io
import struct

import pytest

from nitro.binio import BinaryReader
from nitro.errors import InvalidHostEntry, MalformedNameTable, NitroError
from nitro.fat import FATEntry
from nitro.fnt import encode_fnt
from nitro.tree import (
    ROOT_DIR_ID,
    NitroDirectory,
    build_tree_from_host,
    create_directory_tree,
    create_file_tree,
    iter_directories,
    iter_files,
    load_tree,
)


def _write_files(root, files):
    for rel, content in files.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
    return root


@pytest.fixture
def simple_host(tmp_path):
    """Root with a.txt (4 bytes) and sub/b.txt (2 bytes)."""
    return _write_files(tmp_path / "data", {"a.txt": b"AAAA", "sub/b.txt": b"BB"})


class TestBuildTreeFromHost:
    def test_subdirectory_files_come_first(self, simple_host):
        root = build_tree_from_host(simple_host, ROOT_DIR_ID, 0, 0)
        files = {f.path: f for f in iter_files(root)}
        assert files["sub/b.txt"].id == 0
        assert files["a.txt"].id == 1
        assert [f.path for f in iter_files(root)] == ["sub/b.txt", "a.txt"]

    def test_offsets_follow_file_order(self, simple_host):
        root = build_tree_from_host(simple_host, ROOT_DIR_ID, 0, 0x1000)
        b_file, a_file = list(iter_files(root))
        assert (b_file.offset, b_file.size) == (0x1000, 2)
        assert (a_file.offset, a_file.size) == (0x1002, 4)

    def test_first_file_ids(self, simple_host):
        root = build_tree_from_host(simple_host, ROOT_DIR_ID, 5, 0)
        sub = root.directories[0]
        assert sub.first_file_id == 5
        assert root.first_file_id == 6

    def test_ids_are_contiguous_from_base(self, tmp_path):
        files = {
            "b/x/1": b"1",
            "b/x/2": b"22",
            "b/y": b"333",
            "a/q": b"4444",
            "c/empty_sibling/z": b"",
            "top": b"55555",
        }
        data = _write_files(tmp_path / "data", files)
        root = build_tree_from_host(data, ROOT_DIR_ID, 7, 0)
        ids = [f.id for f in iter_files(root)]
        assert ids == list(range(7, 7 + len(files)))

    def test_offsets_are_monotonic(self, tmp_path):
        files = {f"d{i % 3}/f{i:02d}": bytes(i) for i in range(12)}
        data = _write_files(tmp_path / "data", files)
        ordered = list(iter_files(build_tree_from_host(data, ROOT_DIR_ID, 0, 0x200)))
        for current, following in zip(ordered, ordered[1:]):
            assert current.offset + current.size <= following.offset

    def test_directory_ids_are_depth_first_preorder(self, tmp_path):
        data = tmp_path / "data"
        for rel in ("b/inner", "a", "c"):
            (data / rel).mkdir(parents=True)
        root = build_tree_from_host(data, ROOT_DIR_ID, 0, 0)
        assert [(d.path, d.id) for d in iter_directories(root)] == [
            ("", 0xF000),
            ("a", 0xF001),
            ("b", 0xF002),
            ("b/inner", 0xF003),
            ("c", 0xF004),
        ]

    def test_empty_directory_gets_id_and_next_file_id(self, tmp_path):
        data = _write_files(tmp_path / "data", {"z.bin": b"z"})
        (data / "empty").mkdir()
        root = build_tree_from_host(data, ROOT_DIR_ID, 3, 0)
        empty = root.directories[0]
        assert empty.id == 0xF001
        assert empty.files == []
        assert empty.first_file_id == 3
        assert root.files[0].id == 3

    def test_separate_builds_do_not_share_counters(self, simple_host):
        first = build_tree_from_host(simple_host, ROOT_DIR_ID, 0, 0)
        second = build_tree_from_host(simple_host, ROOT_DIR_ID, 0, 0)
        assert [f.id for f in iter_files(first)] == [f.id for f in iter_files(second)]
        assert second.directories[0].id == 0xF001

    @pytest.mark.parametrize("name", ["café.bin", "x" * 128])
    def test_unencodable_host_name_is_rejected(self, tmp_path, name):
        data = _write_files(tmp_path / "data", {"ok.bin": b"1"})
        (data / name).write_bytes(b"2")
        with pytest.raises(InvalidHostEntry) as excinfo:
            build_tree_from_host(data, ROOT_DIR_ID, 0, 0)
        assert isinstance(excinfo.value, NitroError)
        assert excinfo.value.path == data / name


class TestNodes:
    def test_paths_use_parent_references(self):
        root = NitroDirectory("root", ROOT_DIR_ID)
        sub = root.add_directory("sub", 0xF001)
        deeper = sub.add_directory("deeper", 0xF002)
        f = deeper.add_file("x.bin", 0, 0, 1)
        assert root.path == ""
        assert deeper.path == "sub/deeper"
        assert f.path == "sub/deeper/x.bin"
        assert f.parent is deeper

    def test_parent_reference_is_weak(self):
        root = NitroDirectory("root", ROOT_DIR_ID)
        f = root.add_file("x.bin", 0, 0, 1)
        del root
        gc.collect()
        assert f.parent is None

    def test_children_sorted_by_name(self):
        root = NitroDirectory("root", ROOT_DIR_ID)
        root.add_directory("zz", 0xF001)
        root.add_directory("aa", 0xF002)
        root.add_file("b", 0, 0, 0)
        root.add_file("a", 1, 0, 0)
        assert [d.name for d in root.directories] == ["aa", "zz"]
        assert [f.name for f in root.files] == ["a", "b"]

    def test_duplicate_names_rejected(self):
        root = NitroDirectory("root", ROOT_DIR_ID)
        root.add_directory("sub", 0xF001)
        root.add_file("x", 0, 0, 0)
        with pytest.raises(ValueError):
            root.add_directory("sub", 0xF002)
        with pytest.raises(ValueError):
            root.add_file("x", 1, 0, 0)


class TestLoadTree:
    def _fat_for(self, root):
        return [FATEntry(f.offset, f.offset + f.size) for f in sorted(iter_files(root), key=lambda f: f.id)]

    def test_decodes_simple_scenario(self, simple_host):
        built = build_tree_from_host(simple_host, ROOT_DIR_ID, 0, 0x100)
        fat = self._fat_for(built)
        assert len(fat) * 8 == 16
        reader = BinaryReader.from_bytes(encode_fnt(built))
        root = load_tree(reader, 0, fat)
        files = {f.path: f for f in iter_files(root)}
        assert set(files) == {"a.txt", "sub/b.txt"}
        assert (files["sub/b.txt"].id, files["sub/b.txt"].offset, files["sub/b.txt"].size) == (0, 0x100, 2)
        assert (files["a.txt"].id, files["a.txt"].offset, files["a.txt"].size) == (1, 0x102, 4)

    def test_decodes_at_origin_and_restores_position(self, simple_host):
        built = build_tree_from_host(simple_host, ROOT_DIR_ID, 0, 0)
        prefix = b"\xEE" * 33
        reader = BinaryReader.from_bytes(prefix + encode_fnt(built))
        reader.seek(33)
        root = load_tree(reader, 33, self._fat_for(built))
        assert reader.tell() == 33
        assert [d.id for d in iter_directories(root)] == [0xF000, 0xF001]

    def test_overlay_ids_are_skipped(self, simple_host):
        built = build_tree_from_host(simple_host, ROOT_DIR_ID, 2, 0x40)
        fat = [FATEntry(0, 0x10), FATEntry(0x10, 0x40)] + [
            FATEntry(f.offset, f.end) for f in iter_files(built)
        ]
        root = load_tree(BinaryReader.from_bytes(encode_fnt(built)), 0, fat)
        assert sorted(f.id for f in iter_files(root)) == [2, 3]

    def _single_dir_table(self, sub_table: bytes) -> bytes:
        return struct.pack("<IHH", 8, 0, 1) + sub_table

    @pytest.mark.parametrize("type_byte", [0x80, 0xFF])
    def test_reserved_type_byte_is_malformed(self, type_byte):
        reader = BinaryReader.from_bytes(self._single_dir_table(bytes([type_byte]) + b"\x00" * 4))
        with pytest.raises(MalformedNameTable):
            load_tree(reader, 0, [])

    def test_file_outside_fat_is_malformed(self):
        reader = BinaryReader.from_bytes(self._single_dir_table(b"\x01x\x00"))
        with pytest.raises(MalformedNameTable, match="outside the FAT"):
            load_tree(reader, 0, [])

    def test_directory_cycle_is_malformed(self):
        sub_table = b"\x81s" + struct.pack("<H", 0xF001) + b"\x00"
        table = struct.pack("<IHH", 16, 0, 2) + struct.pack("<IHH", 16, 0, 0xF000) + sub_table
        with pytest.raises(MalformedNameTable, match="referenced twice"):
            load_tree(BinaryReader.from_bytes(table), 0, [])

    @pytest.mark.parametrize("name", [b".", b"..", b"../x", b"a/b", b"a\\b", b"a\x00b"])
    def test_unsafe_name_is_malformed(self, name):
        reader = BinaryReader.from_bytes(self._single_dir_table(bytes([len(name)]) + name + b"\x00"))
        with pytest.raises(MalformedNameTable, match="Unsafe entry name") as excinfo:
            load_tree(reader, 0, [FATEntry(0, 1)])
        assert excinfo.value.offset == 8

    def test_unsafe_directory_name_is_malformed(self):
        sub_table = b"\x82.." + struct.pack("<H", 0xF001) + b"\x00"
        table = struct.pack("<IHH", 16, 0, 2) + struct.pack("<IHH", 16, 0, 0xF000) + sub_table
        with pytest.raises(MalformedNameTable, match="Unsafe entry name"):
            load_tree(BinaryReader.from_bytes(table), 0, [])

    def test_duplicate_sibling_is_malformed(self):
        reader = BinaryReader.from_bytes(self._single_dir_table(b"\x02aa\x02aa\x00"))
        with pytest.raises(MalformedNameTable, match="Duplicate") as excinfo:
            load_tree(reader, 0, [FATEntry(0, 1), FATEntry(1, 2)])
        assert excinfo.value.offset == 11

    def test_inverted_fat_entry_is_malformed(self):
        reader = BinaryReader.from_bytes(self._single_dir_table(b"\x01x\x00"))
        with pytest.raises(MalformedNameTable, match="inverted"):
            load_tree(reader, 0, [FATEntry(10, 9)])

    def test_directory_id_without_marker_is_malformed(self):
        sub_table = b"\x81s" + struct.pack("<H", 0x0001) + b"\x00"
        with pytest.raises(MalformedNameTable, match="Invalid directory id"):
            load_tree(BinaryReader.from_bytes(self._single_dir_table(sub_table)), 0, [])


class TestHostMaterialisation:
    def test_creates_tree_and_skips_existing(self, simple_host, tmp_path):
        built = build_tree_from_host(simple_host, ROOT_DIR_ID, 0, 0)
        image = io.BytesIO()
        for f in iter_files(built):
            image.seek(f.offset)
            image.write((simple_host / f.path).read_bytes())

        dest = tmp_path / "out"
        dest.mkdir()
        (dest / "a.txt").write_bytes(b"keep")
        create_directory_tree(dest, built)
        counts = create_file_tree(BinaryReader(image), dest, built)

        assert counts == {"written": 1, "skipped": 1}
        assert (dest / "sub" / "b.txt").read_bytes() == b"BB"
        assert (dest / "a.txt").read_bytes() == b"keep"
