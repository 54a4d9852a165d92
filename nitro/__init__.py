from nitro.errors import NitroError, InputNotFound, PermissionDenied, TruncatedInput, MalformedNameTable, OffsetMismatch
from nitro.binio import BinaryReader, BinaryWriter
from nitro.header import NDSHeader, calculate_crc16
from nitro.tree import NitroDirectory, NitroFile, load_tree, build_tree_from_host, iter_files, iter_directories
from nitro.fnt import encode_fnt, calculate_fnt_size
from nitro.fat import FATEntry, read_fat, write_fat, calculate_fat_size
from nitro.rom import RomBuilder, RomExtractor, RomInfo, build_rom, extract_rom, describe_rom, validate_rom_directory
__all__ = ['NitroError', 'InputNotFound', 'PermissionDenied', 'TruncatedInput', 'MalformedNameTable', 'OffsetMismatch', 'BinaryReader', 'BinaryWriter', 'NDSHeader', 'calculate_crc16', 'NitroDirectory', 'NitroFile', 'load_tree', 'build_tree_from_host', 'iter_files', 'iter_directories', 'encode_fnt', 'calculate_fnt_size', 'FATEntry', 'read_fat', 'write_fat', 'calculate_fat_size', 'RomBuilder', 'RomExtractor', 'RomInfo', 'build_rom', 'extract_rom', 'describe_rom', 'validate_rom_directory']
