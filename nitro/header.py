import struct
from dataclasses import dataclass, field

from nitro.binio import BinaryReader, BinaryWriter
from nitro.errors import TruncatedInput
CRC16_TABLE = [0, 49345, 49537, 320, 49921, 960, 640, 49729, 50689, 1728, 1920, 51009, 1280, 50625, 50305, 1088, 52225, 3264, 3456, 52545, 3840, 53185, 52865, 3648, 2560, 51905, 52097, 2880, 51457, 2496, 2176, 51265, 55297, 6336, 6528, 55617, 6912, 56257, 55937, 6720, 7680, 57025, 57217, 8000, 56577, 7616, 7296, 56385, 5120, 54465, 54657, 5440, 55041, 6080, 5760, 54849, 53761, 4800, 4992, 54081, 4352, 53697, 53377, 4160, 61441, 12480, 12672, 61761, 13056, 62401, 62081, 12864, 13824, 63169, 63361, 14144, 62721, 13760, 13440, 62529, 15360, 64705, 64897, 15680, 65281, 16320, 16000, 65089, 64001, 15040, 15232, 64321, 14592, 63937, 63617, 14400, 10240, 59585, 59777, 10560, 60161, 11200, 10880, 59969, 60929, 11968, 12160, 61249, 11520, 60865, 60545, 11328, 58369, 9408, 9600, 58689, 9984, 59329, 59009, 9792, 8704, 58049, 58241, 9024, 57601, 8640, 8320, 57409, 40961, 24768, 24960, 41281, 25344, 41921, 41601, 25152, 26112, 42689, 42881, 26432, 42241, 26048, 25728, 42049, 27648, 44225, 44417, 27968, 44801, 28608, 28288, 44609, 43521, 27328, 27520, 43841, 26880, 43457, 43137, 26688, 30720, 47297, 47489, 31040, 47873, 31680, 31360, 47681, 48641, 32448, 32640, 48961, 32000, 48577, 48257, 31808, 46081, 29888, 30080, 46401, 30464, 47041, 46721, 30272, 29184, 45761, 45953, 29504, 45313, 29120, 28800, 45121, 20480, 37057, 37249, 20800, 37633, 21440, 21120, 37441, 38401, 22208, 22400, 38721, 21760, 38337, 38017, 21568, 39937, 23744, 23936, 40257, 24320, 40897, 40577, 24128, 23040, 39617, 39809, 23360, 39169, 22976, 22656, 38977, 34817, 18624, 18816, 35137, 19200, 35777, 35457, 19008, 19968, 36545, 36737, 20288, 36097, 19904, 19584, 35905, 17408, 33985, 34177, 17728, 34561, 18368, 18048, 34369, 33281, 17088, 17280, 33601, 16640, 33217, 32897, 16448]
HEADER_SIZE = 512
HEADER_AREA_SIZE = 16384
HEADER_CRC_OFFSET = 350
LOGO_SIZE = 156
OVERLAY_ENTRY_SIZE = 32

def calculate_crc16(data: bytes) -> int:
    crc = 65535
    for byte in data:
        crc = crc >> 8 & 255 ^ CRC16_TABLE[(crc ^ byte) & 255]
    return crc & 65535

@dataclass
class NDSHeader:
    game_title: bytes = field(default_factory=lambda: b'\x00' * 12)
    game_code: bytes = field(default_factory=lambda: b'\x00' * 4)
    maker_code: bytes = field(default_factory=lambda: b'\x00' * 2)
    unit_code: int = 0
    encryption_seed_select: int = 0
    device_capacity: int = 0
    nds_region: int = 0
    rom_version: int = 0
    autostart: int = 0
    arm9_rom_addr: int = 0
    arm9_entry_addr: int = 0
    arm9_ram_addr: int = 0
    arm9_size: int = 0
    arm7_rom_addr: int = 0
    arm7_entry_addr: int = 0
    arm7_ram_addr: int = 0
    arm7_size: int = 0
    filename_table_addr: int = 0
    filename_size: int = 0
    fat_addr: int = 0
    fat_size: int = 0
    arm9_overlay_addr: int = 0
    arm9_overlay_size: int = 0
    arm7_overlay_addr: int = 0
    arm7_overlay_size: int = 0
    normal_commands_settings: int = 0
    key1_commands_settings: int = 0
    icon_title_addr: int = 0
    secure_area_crc16: int = 0
    secure_area_loading_timeout: int = 0
    arm9_autoload_list_ram_addr: int = 0
    arm7_autoload_list_ram_addr: int = 0
    secure_area_disable: int = 0
    rom_size: int = 0
    header_size: int = 0
    nintendo_logo: bytes = field(default_factory=lambda: b'\x00' * LOGO_SIZE)
    nintendo_logo_crc: int = 0
    header_crc16: int = 0
    debug_rom_addr: int = 0
    debug_size: int = 0
    debug_ram_addr: int = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> 'NDSHeader':
        if len(data) < HEADER_SIZE:
            raise TruncatedInput(0, HEADER_SIZE, len(data))
        h = cls()
        h.game_title = data[0:12]
        h.game_code = data[12:16]
        h.maker_code = data[16:18]
        h.unit_code = data[18]
        h.encryption_seed_select = data[19]
        h.device_capacity = data[20]
        h.nds_region = data[29]
        h.rom_version = data[30]
        h.autostart = data[31]
        h.arm9_rom_addr, h.arm9_entry_addr, h.arm9_ram_addr, h.arm9_size = struct.unpack_from('<4I', data, 32)
        h.arm7_rom_addr, h.arm7_entry_addr, h.arm7_ram_addr, h.arm7_size = struct.unpack_from('<4I', data, 48)
        h.filename_table_addr, h.filename_size = struct.unpack_from('<II', data, 64)
        h.fat_addr, h.fat_size = struct.unpack_from('<II', data, 72)
        h.arm9_overlay_addr, h.arm9_overlay_size = struct.unpack_from('<II', data, 80)
        h.arm7_overlay_addr, h.arm7_overlay_size = struct.unpack_from('<II', data, 88)
        h.normal_commands_settings = struct.unpack_from('<I', data, 96)[0]
        h.key1_commands_settings = struct.unpack_from('<I', data, 100)[0]
        h.icon_title_addr = struct.unpack_from('<I', data, 104)[0]
        h.secure_area_crc16 = struct.unpack_from('<H', data, 108)[0]
        h.secure_area_loading_timeout = struct.unpack_from('<H', data, 110)[0]
        h.arm9_autoload_list_ram_addr = struct.unpack_from('<I', data, 112)[0]
        h.arm7_autoload_list_ram_addr = struct.unpack_from('<I', data, 116)[0]
        h.secure_area_disable = struct.unpack_from('<Q', data, 120)[0]
        h.rom_size = struct.unpack_from('<I', data, 128)[0]
        h.header_size = struct.unpack_from('<I', data, 132)[0]
        h.nintendo_logo = data[192:348]
        h.nintendo_logo_crc = struct.unpack_from('<H', data, 348)[0]
        h.header_crc16 = struct.unpack_from('<H', data, 350)[0]
        h.debug_rom_addr, h.debug_size, h.debug_ram_addr = struct.unpack_from('<3I', data, 352)
        return h

    @classmethod
    def read(cls, reader: BinaryReader) -> 'NDSHeader':
        return cls.from_bytes(reader.read_bytes(HEADER_SIZE))

    def to_bytes(self) -> bytes:
        """Encode the 512-byte header record.

        Reserved fields and the debug descriptor are written as zero. The
        header checksum is always recomputed from the encoded bytes and
        stored back on the instance.
        """
        data = bytearray(HEADER_SIZE)
        data[0:12] = _fixed(self.game_title, 12)
        data[12:16] = _fixed(self.game_code, 4)
        data[16:18] = _fixed(self.maker_code, 2)
        data[18] = self.unit_code
        data[19] = self.encryption_seed_select
        data[20] = self.device_capacity
        data[29] = self.nds_region
        data[30] = self.rom_version
        data[31] = self.autostart
        struct.pack_into('<4I', data, 32, self.arm9_rom_addr, self.arm9_entry_addr, self.arm9_ram_addr, self.arm9_size)
        struct.pack_into('<4I', data, 48, self.arm7_rom_addr, self.arm7_entry_addr, self.arm7_ram_addr, self.arm7_size)
        struct.pack_into('<II', data, 64, self.filename_table_addr, self.filename_size)
        struct.pack_into('<II', data, 72, self.fat_addr, self.fat_size)
        struct.pack_into('<II', data, 80, self.arm9_overlay_addr, self.arm9_overlay_size)
        struct.pack_into('<II', data, 88, self.arm7_overlay_addr, self.arm7_overlay_size)
        struct.pack_into('<I', data, 96, self.normal_commands_settings)
        struct.pack_into('<I', data, 100, self.key1_commands_settings)
        struct.pack_into('<I', data, 104, self.icon_title_addr)
        struct.pack_into('<H', data, 108, self.secure_area_crc16)
        struct.pack_into('<H', data, 110, self.secure_area_loading_timeout)
        struct.pack_into('<I', data, 112, self.arm9_autoload_list_ram_addr)
        struct.pack_into('<I', data, 116, self.arm7_autoload_list_ram_addr)
        struct.pack_into('<Q', data, 120, self.secure_area_disable)
        struct.pack_into('<I', data, 128, self.rom_size)
        struct.pack_into('<I', data, 132, self.header_size)
        data[192:348] = _fixed(self.nintendo_logo, LOGO_SIZE)
        struct.pack_into('<H', data, 348, self.nintendo_logo_crc)
        self.header_crc16 = calculate_crc16(data[:HEADER_CRC_OFFSET])
        struct.pack_into('<H', data, HEADER_CRC_OFFSET, self.header_crc16)
        return bytes(data)

    def write(self, writer: BinaryWriter):
        # record plus zeroed secure-area padding
        writer.write_bytes(self.to_bytes())
        writer.write_zeros(HEADER_AREA_SIZE - HEADER_SIZE)

    @property
    def checksum_valid(self) -> bool:
        stored = self.header_crc16
        expected = calculate_crc16(self.to_bytes()[:HEADER_CRC_OFFSET])
        self.header_crc16 = stored
        return stored == expected

    @property
    def game_title_str(self) -> str:
        return self.game_title.decode('ascii', errors='ignore').strip('\x00')

    @property
    def game_code_str(self) -> str:
        return self.game_code.decode('ascii', errors='ignore')

    @property
    def fat_entry_count(self) -> int:
        return self.fat_size // 8

    @property
    def arm9_overlay_count(self) -> int:
        return self.arm9_overlay_size // OVERLAY_ENTRY_SIZE

    @property
    def arm7_overlay_count(self) -> int:
        return self.arm7_overlay_size // OVERLAY_ENTRY_SIZE

    @property
    def overlay_count(self) -> int:
        return self.arm9_overlay_count + self.arm7_overlay_count

def _fixed(value: bytes, length: int) -> bytes:
    return bytes(value[:length]).ljust(length, b'\x00')
