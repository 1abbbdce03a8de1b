"""
CHIP-8 CPU
Register file, nibble-indexed opcode dispatch and the instruction set,
including the CHIP-48 / SUPER-CHIP 1.1 / COSMAC VIP quirk variants
"""

import random
from collections import namedtuple

from errors import StackError, StackOverflowError, StackUnderflowError
from memory import ADDRESS_MASK, glyph_address
from quirks import LoadStoreMode, Quirks
from utils import debug_print

REGISTER_COUNT = 16
STACK_SIZE = 16
KEY_COUNT = 16
PROGRAM_START = 0x200
INSTRUCTION_SIZE = 2
FLAG = 0xF  # VF: carry / borrow / collision output


class CPU:
    def __init__(self, memory, display, keys, quirks=None, seed=None):
        self.memory = memory
        self.display = display
        self.keys = keys  # Shared with the host, never rebound

        self.quirks = quirks if quirks is not None else Quirks()
        # Per-instance generator so VMs stay independent and seedable
        self.rng = random.Random(seed)
        self.dispatch = build_dispatch_table(self.quirks)

        # Registers
        self.V = [0] * REGISTER_COUNT  # V0-VF
        self.I = 0  # Index register
        self.PC = PROGRAM_START  # Program counter
        self.SP = 0  # Stack pointer (next free slot)
        self.stack = [0] * STACK_SIZE  # Return addresses

        # Timers, decremented at 60Hz by the host
        self.DT = 0  # Delay timer
        self.ST = 0  # Sound timer

        # Last fetched instruction and the address it came from
        self.opcode = 0
        self.opcode_pc = PROGRAM_START

        # Set when a jump lands on itself; purely advisory
        self.halted = False
        # Set while FX0A is polling with no key held
        self.waiting_for_key = False

    def reset(self):
        """Reset the CPU to its power-on state"""
        for i in range(REGISTER_COUNT):
            self.V[i] = 0
        for i in range(STACK_SIZE):
            self.stack[i] = 0
        self.I = 0
        self.PC = PROGRAM_START
        self.SP = 0
        self.DT = 0
        self.ST = 0
        self.opcode = 0
        self.opcode_pc = PROGRAM_START
        self.halted = False
        self.waiting_for_key = False

    def step(self):
        """Fetch, decode and execute one instruction"""
        pc = self.PC
        opcode = self.memory.read_word(pc)
        self.opcode = opcode
        self.opcode_pc = pc
        # Advance first so jumps and skips overwrite or extend this
        self.PC = (pc + INSTRUCTION_SIZE) & ADDRESS_MASK
        self.waiting_for_key = False

        try:
            self.dispatch.main[opcode >> 12](self, opcode)
        except StackError:
            # Leave PC on the faulting call/return
            self.PC = pc
            raise

    def decrement_timers(self):
        """One 60Hz tick of the delay and sound timers"""
        if self.DT > 0:
            self.DT -= 1
        if self.ST > 0:
            self.ST -= 1

    def push_stack(self, address):
        """Push a return address"""
        if self.SP >= STACK_SIZE:
            raise StackOverflowError(self.opcode_pc)
        self.stack[self.SP] = address
        self.SP += 1

    def pop_stack(self):
        """Pop a return address"""
        if self.SP == 0:
            raise StackUnderflowError(self.opcode_pc)
        self.SP -= 1
        return self.stack[self.SP]

    def skip(self):
        self.PC = (self.PC + INSTRUCTION_SIZE) & ADDRESS_MASK

    def _jump(self, target):
        target &= ADDRESS_MASK
        if target == self.opcode_pc:
            if not self.halted:
                debug_print(f"CPU: self-jump at 0x{target:03X}, program has halted")
            self.halted = True
        self.PC = target

    # ------------------------ Secondary tables ------------------------
    def dispatch_0(self, opcode):
        self.dispatch.group_0[opcode & 0xFF](self, opcode)

    def dispatch_8(self, opcode):
        self.dispatch.group_8[opcode & 0xF](self, opcode)

    def dispatch_e(self, opcode):
        self.dispatch.group_e[opcode & 0xF](self, opcode)

    def dispatch_f(self, opcode):
        self.dispatch.group_f[opcode & 0xFF](self, opcode)

    # ------------------------ Instructions ------------------------
    def execute_null(self, opcode):
        # Undefined instructions are skipped over
        debug_print(f"CPU: undefined opcode 0x{opcode:04X} at 0x{self.opcode_pc:03X}, ignored")

    def execute_clear(self, opcode):
        # 00E0
        self.display.clear()

    def execute_return(self, opcode):
        # 00EE
        self.PC = self.pop_stack()

    def execute_jump(self, opcode):
        # 1NNN
        self._jump(opcode & 0xFFF)

    def execute_call(self, opcode):
        # 2NNN
        self.push_stack(self.PC)
        self.PC = opcode & 0xFFF

    def execute_skip_eq_imm(self, opcode):
        # 3XNN
        if self.V[(opcode >> 8) & 0xF] == opcode & 0xFF:
            self.skip()

    def execute_skip_ne_imm(self, opcode):
        # 4XNN
        if self.V[(opcode >> 8) & 0xF] != opcode & 0xFF:
            self.skip()

    def execute_skip_eq_reg(self, opcode):
        # 5XY0
        if self.V[(opcode >> 8) & 0xF] == self.V[(opcode >> 4) & 0xF]:
            self.skip()

    def execute_load_imm(self, opcode):
        # 6XNN
        self.V[(opcode >> 8) & 0xF] = opcode & 0xFF

    def execute_add_imm(self, opcode):
        # 7XNN, no carry flag
        x = (opcode >> 8) & 0xF
        self.V[x] = (self.V[x] + (opcode & 0xFF)) & 0xFF

    def execute_copy(self, opcode):
        # 8XY0
        self.V[(opcode >> 8) & 0xF] = self.V[(opcode >> 4) & 0xF]

    def execute_or(self, opcode):
        # 8XY1
        self.V[(opcode >> 8) & 0xF] |= self.V[(opcode >> 4) & 0xF]

    def execute_and(self, opcode):
        # 8XY2
        self.V[(opcode >> 8) & 0xF] &= self.V[(opcode >> 4) & 0xF]

    def execute_xor(self, opcode):
        # 8XY3
        self.V[(opcode >> 8) & 0xF] ^= self.V[(opcode >> 4) & 0xF]

    def execute_add(self, opcode):
        # 8XY4
        x = (opcode >> 8) & 0xF
        result = self.V[x] + self.V[(opcode >> 4) & 0xF]
        self.V[x] = result & 0xFF
        self.V[FLAG] = 1 if result > 0xFF else 0

    def execute_sub(self, opcode):
        # 8XY5, VF = NOT borrow
        x = (opcode >> 8) & 0xF
        vx = self.V[x]
        vy = self.V[(opcode >> 4) & 0xF]
        self.V[x] = (vx - vy) & 0xFF
        self.V[FLAG] = 1 if vx >= vy else 0

    def execute_shr(self, opcode):
        # 8XY6, shifts VY into VX
        vy = self.V[(opcode >> 4) & 0xF]
        self.V[(opcode >> 8) & 0xF] = vy >> 1
        self.V[FLAG] = vy & 1

    def execute_subn(self, opcode):
        # 8XY7, VX = VY - VX
        x = (opcode >> 8) & 0xF
        vx = self.V[x]
        vy = self.V[(opcode >> 4) & 0xF]
        self.V[x] = (vy - vx) & 0xFF
        self.V[FLAG] = 1 if vy >= vx else 0

    def execute_shl(self, opcode):
        # 8XYE, shifts VY into VX
        vy = self.V[(opcode >> 4) & 0xF]
        self.V[(opcode >> 8) & 0xF] = (vy << 1) & 0xFF
        self.V[FLAG] = vy >> 7

    def execute_skip_ne_reg(self, opcode):
        # 9XY0
        if self.V[(opcode >> 8) & 0xF] != self.V[(opcode >> 4) & 0xF]:
            self.skip()

    def execute_set_index(self, opcode):
        # ANNN
        self.I = opcode & 0xFFF

    def execute_jump_v0(self, opcode):
        # BNNN
        self._jump(self.V[0] + (opcode & 0xFFF))

    def execute_random(self, opcode):
        # CXNN
        self.V[(opcode >> 8) & 0xF] = self.rng.randint(0, 0xFF) & opcode & 0xFF

    def execute_draw(self, opcode):
        # DXYN
        x = self.V[(opcode >> 8) & 0xF]
        y = self.V[(opcode >> 4) & 0xF]
        rows = self.memory.read_block(self.I, opcode & 0xF)
        collision = self.display.draw_sprite(x, y, rows)
        self.V[FLAG] = 1 if collision else 0

    def execute_skip_key(self, opcode):
        # EX9E
        if self.keys[self.V[(opcode >> 8) & 0xF] & 0xF]:
            self.skip()

    def execute_skip_not_key(self, opcode):
        # EXA1
        if not self.keys[self.V[(opcode >> 8) & 0xF] & 0xF]:
            self.skip()

    def execute_get_delay(self, opcode):
        # FX07
        self.V[(opcode >> 8) & 0xF] = self.DT

    def execute_wait_key(self, opcode):
        # FX0A, polls: re-executes itself until a key is held
        for key, held in enumerate(self.keys):
            if held:
                self.V[(opcode >> 8) & 0xF] = key
                return
        self.PC = (self.PC - INSTRUCTION_SIZE) & ADDRESS_MASK
        self.waiting_for_key = True

    def execute_set_delay(self, opcode):
        # FX15
        self.DT = self.V[(opcode >> 8) & 0xF]

    def execute_set_sound(self, opcode):
        # FX18
        self.ST = self.V[(opcode >> 8) & 0xF]

    def execute_add_index(self, opcode):
        # FX1E, overflow judged on I before the add
        vx = self.V[(opcode >> 8) & 0xF]
        overflow = self.I + vx > 0xFF
        self.I = (self.I + vx) & 0xFFFF
        self.V[FLAG] = 1 if overflow else 0

    def execute_font(self, opcode):
        # FX29
        self.I = glyph_address(self.V[(opcode >> 8) & 0xF])

    def execute_bcd(self, opcode):
        # FX33
        value = self.V[(opcode >> 8) & 0xF]
        self.memory.write(self.I, value // 100)
        self.memory.write(self.I + 1, value // 10 % 10)
        self.memory.write(self.I + 2, value % 10)

    def _store_registers(self, last):
        for i in range(last + 1):
            self.memory.write(self.I + i, self.V[i])

    def _load_registers(self, last):
        for i in range(last + 1):
            self.V[i] = self.memory.read(self.I + i)

    def execute_store(self, opcode):
        # FX55, CHIP-8: I += X + 1
        x = (opcode >> 8) & 0xF
        self._store_registers(x)
        self.I = (self.I + x + 1) & 0xFFFF

    def execute_load(self, opcode):
        # FX65, CHIP-8: I += X + 1
        x = (opcode >> 8) & 0xF
        self._load_registers(x)
        self.I = (self.I + x + 1) & 0xFFFF

    # ------------------------ Quirk variants ------------------------
    def execute_or_vip(self, opcode):
        self.execute_or(opcode)
        self.V[FLAG] = 0

    def execute_and_vip(self, opcode):
        self.execute_and(opcode)
        self.V[FLAG] = 0

    def execute_xor_vip(self, opcode):
        self.execute_xor(opcode)
        self.V[FLAG] = 0

    def execute_shr_chip48(self, opcode):
        x = (opcode >> 8) & 0xF
        vx = self.V[x]
        self.V[x] = vx >> 1
        self.V[FLAG] = vx & 1

    def execute_shl_chip48(self, opcode):
        x = (opcode >> 8) & 0xF
        vx = self.V[x]
        self.V[x] = (vx << 1) & 0xFF
        self.V[FLAG] = vx >> 7

    def execute_jump_vx(self, opcode):
        # BXNN: X doubles as the high nibble of the target and the register
        x = (opcode >> 8) & 0xF
        self._jump(self.V[x] + (opcode & 0xFFF))

    def execute_store_chip48(self, opcode):
        x = (opcode >> 8) & 0xF
        self._store_registers(x)
        self.I = (self.I + x) & 0xFFFF

    def execute_load_chip48(self, opcode):
        x = (opcode >> 8) & 0xF
        self._load_registers(x)
        self.I = (self.I + x) & 0xFFFF

    def execute_store_schip11(self, opcode):
        self._store_registers((opcode >> 8) & 0xF)

    def execute_load_schip11(self, opcode):
        self._load_registers((opcode >> 8) & 0xF)


DispatchTable = namedtuple("DispatchTable", ["main", "group_0", "group_8", "group_e", "group_f"])


def build_dispatch_table(quirks):
    """Build the opcode tables for a quirk selection.

    Pure: the same Quirks always yields an equal table. Every slot holds a
    plain CPU function taking (cpu, opcode); unused slots hold execute_null.
    """
    null = CPU.execute_null

    main = [null] * 0x10
    main[0x0] = CPU.dispatch_0
    main[0x1] = CPU.execute_jump
    main[0x2] = CPU.execute_call
    main[0x3] = CPU.execute_skip_eq_imm
    main[0x4] = CPU.execute_skip_ne_imm
    main[0x5] = CPU.execute_skip_eq_reg
    main[0x6] = CPU.execute_load_imm
    main[0x7] = CPU.execute_add_imm
    main[0x8] = CPU.dispatch_8
    main[0x9] = CPU.execute_skip_ne_reg
    main[0xA] = CPU.execute_set_index
    main[0xB] = CPU.execute_jump_v0
    main[0xC] = CPU.execute_random
    main[0xD] = CPU.execute_draw
    main[0xE] = CPU.dispatch_e
    main[0xF] = CPU.dispatch_f

    group_0 = [null] * 0x100  # keyed by low byte
    group_0[0xE0] = CPU.execute_clear
    group_0[0xEE] = CPU.execute_return

    group_8 = [null] * 0x10  # keyed by low nibble
    group_8[0x0] = CPU.execute_copy
    group_8[0x1] = CPU.execute_or
    group_8[0x2] = CPU.execute_and
    group_8[0x3] = CPU.execute_xor
    group_8[0x4] = CPU.execute_add
    group_8[0x5] = CPU.execute_sub
    group_8[0x6] = CPU.execute_shr
    group_8[0x7] = CPU.execute_subn
    group_8[0xE] = CPU.execute_shl

    group_e = [null] * 0x10  # keyed by low nibble
    group_e[0x1] = CPU.execute_skip_not_key
    group_e[0xE] = CPU.execute_skip_key

    group_f = [null] * 0x100  # keyed by low byte
    group_f[0x07] = CPU.execute_get_delay
    group_f[0x0A] = CPU.execute_wait_key
    group_f[0x15] = CPU.execute_set_delay
    group_f[0x18] = CPU.execute_set_sound
    group_f[0x1E] = CPU.execute_add_index
    group_f[0x29] = CPU.execute_font
    group_f[0x33] = CPU.execute_bcd
    group_f[0x55] = CPU.execute_store
    group_f[0x65] = CPU.execute_load

    # Dialect overrides
    if quirks.vip_alu:
        group_8[0x1] = CPU.execute_or_vip
        group_8[0x2] = CPU.execute_and_vip
        group_8[0x3] = CPU.execute_xor_vip
    if quirks.chip48_jump:
        main[0xB] = CPU.execute_jump_vx
    if quirks.chip48_shift:
        group_8[0x6] = CPU.execute_shr_chip48
        group_8[0xE] = CPU.execute_shl_chip48
    if quirks.load_store is LoadStoreMode.CHIP48:
        group_f[0x55] = CPU.execute_store_chip48
        group_f[0x65] = CPU.execute_load_chip48
    elif quirks.load_store is LoadStoreMode.SCHIP11:
        group_f[0x55] = CPU.execute_store_schip11
        group_f[0x65] = CPU.execute_load_schip11

    return DispatchTable(tuple(main), tuple(group_0), tuple(group_8), tuple(group_e), tuple(group_f))
