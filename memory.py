"""
CHIP-8 Memory
4KB flat address space with the built-in hex font and the ROM region
"""

from errors import RomTooLargeError
from utils import debug_print

MEMORY_SIZE = 0x1000
ADDRESS_MASK = MEMORY_SIZE - 1
ROM_START = 0x200
ROM_CAPACITY = MEMORY_SIZE - ROM_START  # 3584 bytes

FONT_START = 0x50
GLYPH_SIZE = 5

# 4x5 hex digit glyphs 0-F, one byte per row
FONT = bytes(
    [
        0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
        0x20, 0x60, 0x20, 0x20, 0x70,  # 1
        0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
        0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
        0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
        0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
        0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
        0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
        0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
        0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
        0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
        0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
        0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
        0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
        0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
        0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
    ]
)
FONT_END = FONT_START + len(FONT)


def glyph_address(digit):
    """Address of the 5-byte glyph for a hex digit"""
    return FONT_START + GLYPH_SIZE * (digit & 0xF)


def read_rom_file(rom_path):
    """Read a raw ROM image. I/O failures propagate as OSError."""
    with open(rom_path, "rb") as f:
        return f.read()


class Memory:
    def __init__(self):
        self.ram = bytearray(MEMORY_SIZE)
        self.ram[FONT_START:FONT_END] = FONT

    def read(self, addr):
        """Read one byte; addresses wrap at 4KB"""
        return self.ram[addr & ADDRESS_MASK]

    def read_word(self, addr):
        """Read a big-endian 16-bit word"""
        return (self.ram[addr & ADDRESS_MASK] << 8) | self.ram[(addr + 1) & ADDRESS_MASK]

    def read_block(self, addr, length):
        """Read `length` consecutive bytes starting at `addr`, wrapping at 4KB"""
        return bytes(self.ram[(addr + i) & ADDRESS_MASK] for i in range(length))

    def write(self, addr, value):
        """Write one byte from program code; the font region is read-only"""
        addr = addr & ADDRESS_MASK
        if FONT_START <= addr < FONT_END:
            debug_print(f"Memory: dropped write of 0x{value & 0xFF:02X} to font byte 0x{addr:03X}")
            return
        self.ram[addr] = value & 0xFF

    def load_rom(self, data):
        """Copy a ROM image to 0x200. Nothing changes if it does not fit."""
        size = len(data)
        if size > ROM_CAPACITY:
            raise RomTooLargeError(size, ROM_CAPACITY)
        self.ram[ROM_START:ROM_START + size] = data
        debug_print(f"Memory: loaded {size} ROM bytes at 0x{ROM_START:03X}")

    def clear_rom(self):
        """Zero the whole ROM region"""
        self.ram[ROM_START:] = bytes(ROM_CAPACITY)

    def view(self):
        """Read-only view of the full address space"""
        return memoryview(self.ram).toreadonly()
