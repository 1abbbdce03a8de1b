"""
Main CHIP-8 Virtual Machine Class
Coordinates CPU, Memory and Display and exposes the host-facing operations
"""

from cpu import CPU, KEY_COUNT
from disasm import format_instruction
from display import Display
from memory import Memory, read_rom_file
from quirks import Quirks
from utils import debug_print


class Chip8:
    def __init__(self, quirks=None, seed=None):
        # Initialize components
        self.quirks = quirks if quirks is not None else Quirks()
        self.memory = Memory()
        self.display = Display()
        # Written by the host before each step; the list object never changes
        self.keys = [False] * KEY_COUNT
        self.cpu = CPU(self.memory, self.display, self.keys, self.quirks, seed)

    # ------------------------ ROM handling ------------------------
    def load(self, data):
        """Copy a raw ROM image to 0x200.

        Raises RomTooLargeError (a ValueError) without touching any state
        if the image does not fit.
        """
        self.memory.load_rom(data)
        debug_print(f"CHIP-8: ROM loaded ({len(data)} bytes)")

    def load_file(self, rom_path):
        """Read a ROM file and load it; OSError if the file cannot be read"""
        data = read_rom_file(rom_path)
        self.load(data)
        debug_print(f"CHIP-8: ROM '{rom_path}' loaded")

    def unload(self):
        """Reset and zero the ROM region"""
        self.reset()
        self.memory.clear_rom()

    def reset(self):
        """Reinitialize registers, stack, timers, keys and display; ROM bytes stay"""
        self.cpu.reset()
        self.display.reset()
        for i in range(KEY_COUNT):
            self.keys[i] = False
        debug_print("CHIP-8: Reset complete, PC=0x200")

    # ------------------------ Execution ------------------------
    def step(self):
        """Execute exactly one instruction"""
        self.cpu.step()

    def run(self, cycles):
        """Execute `cycles` instructions back to back"""
        for _ in range(cycles):
            self.cpu.step()

    def tick_timers(self):
        """Decrement the delay and sound timers once (host calls this at 60Hz)"""
        self.cpu.decrement_timers()

    def set_keys(self, states):
        """Copy 16 key states into the keypad"""
        for i, held in enumerate(states):
            if i >= KEY_COUNT:
                break
            self.keys[i] = bool(held)

    # ------------------------ Observable state ------------------------
    @property
    def draw_flag(self):
        return self.display.draw_flag

    @draw_flag.setter
    def draw_flag(self, value):
        self.display.draw_flag = value

    @property
    def memory_view(self):
        return self.memory.view()

    @property
    def screen(self):
        return tuple(self.display.screen)

    @property
    def registers(self):
        return tuple(self.cpu.V)

    @property
    def stack(self):
        return tuple(self.cpu.stack)

    @property
    def pc(self):
        return self.cpu.PC

    @property
    def index(self):
        return self.cpu.I

    @property
    def sp(self):
        return self.cpu.SP

    @property
    def delay_timer(self):
        return self.cpu.DT

    @property
    def sound_timer(self):
        return self.cpu.ST

    @property
    def opcode(self):
        return self.cpu.opcode

    @property
    def halted(self):
        return self.cpu.halted

    @property
    def waiting_for_key(self):
        return self.cpu.waiting_for_key

    def get_instruction(self):
        """Disassembly of the last executed instruction"""
        return format_instruction(self.cpu.opcode, self.cpu.opcode_pc, self.quirks)

    def get_screen(self):
        """Get the current screen buffer"""
        return self.screen

    def get_cpu_state(self):
        """Get CPU state for debugging"""
        state = {f"V{i:X}": value for i, value in enumerate(self.cpu.V)}
        state.update(
            {
                "I": self.cpu.I,
                "PC": self.cpu.PC,
                "SP": self.cpu.SP,
                "DT": self.cpu.DT,
                "ST": self.cpu.ST,
            }
        )
        return state
