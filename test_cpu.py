#!/usr/bin/env python3
"""
Instruction semantics tests for the CHIP-8 CPU
"""

import pytest

from chip8 import Chip8
from errors import StackOverflowError, StackUnderflowError
from memory import FONT_START
from quirks import LoadStoreMode, Quirks
from utils import set_debug


def make_vm(words, quirks=None, seed=None):
    """Build a VM with the given 16-bit words loaded at 0x200"""
    vm = Chip8(quirks, seed=seed)
    data = bytearray()
    for word in words:
        data += word.to_bytes(2, "big")
    vm.load(bytes(data))
    return vm


def test_load_immediate_every_register():
    """6XNN then reading VX yields NN exactly"""
    for x in range(16):
        vm = make_vm([0x6000 | (x << 8) | 0xA7])
        vm.step()
        assert vm.registers[x] == 0xA7
        assert vm.pc == 0x202


def test_add_immediate_wraps_without_flag():
    vm = make_vm([0x63FF, 0x6F05, 0x7301])
    vm.run(3)
    assert vm.registers[3] == 0x00
    assert vm.registers[0xF] == 0x05, "7XNN must not touch VF"


def test_add_with_carry():
    vm = make_vm([0x61FF, 0x6201, 0x8124])
    vm.run(3)
    assert vm.registers[1] == 0x00
    assert vm.registers[0xF] == 1

    vm = make_vm([0x6101, 0x6201, 0x8124])
    vm.run(3)
    assert vm.registers[1] == 0x02
    assert vm.registers[0xF] == 0


def test_subtract_borrow_flag():
    vm = make_vm([0x6105, 0x6203, 0x8125])
    vm.run(3)
    assert vm.registers[1] == 0x02
    assert vm.registers[0xF] == 1, "no borrow"

    vm = make_vm([0x6103, 0x6205, 0x8125])
    vm.run(3)
    assert vm.registers[1] == 0xFE
    assert vm.registers[0xF] == 0, "borrow"

    # Equal operands do not borrow
    vm = make_vm([0x6107, 0x6207, 0x8125])
    vm.run(3)
    assert vm.registers[1] == 0x00
    assert vm.registers[0xF] == 1


def test_reverse_subtract():
    vm = make_vm([0x6103, 0x6205, 0x8127])
    vm.run(3)
    assert vm.registers[1] == 0x02
    assert vm.registers[0xF] == 1

    vm = make_vm([0x6105, 0x6203, 0x8127])
    vm.run(3)
    assert vm.registers[1] == 0xFE
    assert vm.registers[0xF] == 0


def test_flag_register_as_destination_keeps_flag():
    """With X = F the flag is written last and wins"""
    vm = make_vm([0x6FFF, 0x6101, 0x8F14])
    vm.run(3)
    assert vm.registers[0xF] == 1


def test_logic_ops_standard_keep_flag():
    vm = make_vm([0x6F07, 0x610C, 0x620A, 0x8121, 0x6305, 0x8322, 0x6406, 0x8423])
    vm.run(8)
    assert vm.registers[1] == 0x0E
    assert vm.registers[3] == 0x05 & 0x0A
    assert vm.registers[4] == 0x06 ^ 0x0A
    assert vm.registers[0xF] == 0x07


def test_copy_register():
    vm = make_vm([0x6242, 0x8120])
    vm.run(2)
    assert vm.registers[1] == 0x42


def test_skips():
    # 3XNN taken, 4XNN not taken
    vm = make_vm([0x6133, 0x3133])
    vm.run(2)
    assert vm.pc == 0x206
    vm = make_vm([0x6133, 0x4133])
    vm.run(2)
    assert vm.pc == 0x204
    # 5XY0 / 9XY0
    vm = make_vm([0x6111, 0x6211, 0x5120])
    vm.run(3)
    assert vm.pc == 0x208
    vm = make_vm([0x6111, 0x6212, 0x9120])
    vm.run(3)
    assert vm.pc == 0x208
    vm = make_vm([0x6111, 0x6211, 0x9120])
    vm.run(3)
    assert vm.pc == 0x206


def test_jump_call_return():
    vm = make_vm([0x2206, 0x0000, 0x0000, 0x00EE])
    vm.step()
    assert vm.pc == 0x206
    assert vm.sp == 1
    assert vm.stack[0] == 0x202
    vm.step()
    assert vm.pc == 0x202
    assert vm.sp == 0

    vm = make_vm([0x1ABC])
    vm.step()
    assert vm.pc == 0xABC
    assert not vm.halted


def test_self_jump_sets_halted():
    vm = make_vm([0x1200])
    vm.step()
    assert vm.pc == 0x200
    assert vm.halted
    vm.step()
    assert vm.pc == 0x200


def test_jump_target_wraps_to_memory():
    """V0 + NNN past 0xFFF lands back inside the 4KB space"""
    vm = make_vm([0x60FF, 0xBFFF], Quirks(chip48_jump=False))
    vm.run(2)
    print(f"PC after BFFF with V0=0xFF: 0x{vm.pc:03X}")
    assert vm.pc == 0x0FE
    assert vm.get_cpu_state()["PC"] == 0x0FE


def test_wrapped_self_jump_sets_halted():
    vm = make_vm([])
    vm.memory.ram[0x0F0:0x0F2] = bytes([0xBF, 0xFF])
    vm.cpu.PC = 0x0F0
    vm.cpu.V[0] = 0xF1
    vm.step()
    assert vm.pc == 0x0F0
    assert vm.halted


def test_call_and_skip_at_end_of_memory():
    """Return addresses and skips past 0xFFE wrap to the bottom of memory"""
    vm = make_vm([])
    vm.memory.ram[0xFFE:0x1000] = bytes([0x23, 0x00])
    vm.memory.ram[0x300:0x302] = bytes([0x00, 0xEE])
    vm.cpu.PC = 0xFFE
    vm.step()
    assert vm.stack[0] == 0x000
    vm.step()
    assert vm.pc == 0x000

    vm = make_vm([])
    vm.memory.ram[0xFFE:0x1000] = bytes([0x30, 0x00])
    vm.cpu.PC = 0xFFE
    vm.step()
    assert vm.pc == 0x002


def test_stack_overflow_is_reported():
    """The 17th nested call faults and leaves PC on the call"""
    vm = make_vm([0x2200])
    for _ in range(16):
        vm.step()
    assert vm.sp == 16
    with pytest.raises(StackOverflowError) as excinfo:
        vm.step()
    assert excinfo.value.address == 0x200
    assert vm.pc == 0x200
    assert vm.sp == 16


def test_stack_underflow_is_reported():
    vm = make_vm([0x00EE])
    with pytest.raises(StackUnderflowError):
        vm.step()
    assert vm.pc == 0x200
    assert vm.sp == 0


def test_set_index_and_jump_v0():
    vm = make_vm([0xA123, 0x6010, 0xB300], Quirks(chip48_jump=False))
    vm.run(3)
    assert vm.index == 0x123
    assert vm.pc == 0x310


def test_random_is_masked_and_seeded():
    a = make_vm([0xC10F] * 8, seed=1234)
    b = make_vm([0xC10F] * 8, seed=1234)
    values_a = []
    values_b = []
    for _ in range(8):
        a.step()
        b.step()
        values_a.append(a.registers[1])
        values_b.append(b.registers[1])
    assert values_a == values_b
    assert all(v & 0xF0 == 0 for v in values_a)

    vm = make_vm([0xC200], seed=5)
    vm.step()
    assert vm.registers[2] == 0


def test_draw_collision_and_redraw():
    """Drawing the same sprite twice erases it and reports a collision"""
    vm = make_vm([0xA050, 0x6000, 0x6100, 0xD015, 0xD015])
    vm.run(4)
    assert vm.registers[0xF] == 0
    assert vm.display.lit_count() == 14  # glyph "0"
    vm.draw_flag = False
    vm.step()
    assert vm.registers[0xF] == 1
    assert vm.display.lit_count() == 0
    assert vm.draw_flag


def test_draw_zero_rows_sets_redraw():
    vm = make_vm([0xD010])
    vm.draw_flag = False
    vm.step()
    assert vm.draw_flag
    assert vm.registers[0xF] == 0


def test_clear_screen():
    vm = make_vm([0xA050, 0xD005, 0x00E0])
    vm.run(2)
    assert vm.display.lit_count() > 0
    vm.draw_flag = False
    vm.step()
    assert all(cell == 0 for cell in vm.screen)
    assert vm.draw_flag


def test_key_skips():
    vm = make_vm([0x6105, 0xE19E])
    vm.keys[5] = True
    vm.run(2)
    assert vm.pc == 0x206

    vm = make_vm([0x6105, 0xE1A1])
    vm.keys[5] = True
    vm.run(2)
    assert vm.pc == 0x204

    vm = make_vm([0x6105, 0xE1A1])
    vm.run(2)
    assert vm.pc == 0x206


def test_wait_for_key_polls():
    """FX0A holds PC until a key is held, then stores the lowest one"""
    vm = make_vm([0xF30A, 0x0000])
    for _ in range(3):
        vm.step()
        assert vm.pc == 0x200
        assert vm.waiting_for_key
    vm.keys[0xB] = True
    vm.keys[0x7] = True
    vm.step()
    assert vm.pc == 0x202
    assert vm.registers[3] == 0x7
    assert not vm.waiting_for_key


def test_timer_transfers():
    vm = make_vm([0x6130, 0xF115, 0xF118, 0xF207])
    vm.run(4)
    assert vm.delay_timer == 0x30
    assert vm.sound_timer == 0x30
    assert vm.registers[2] == 0x30


def test_add_to_index_overflow_uses_value_before_add():
    vm = make_vm([0xA0F0, 0x6110, 0xF11E])
    vm.run(3)
    assert vm.index == 0x100
    assert vm.registers[0xF] == 1

    # 0xE0 + 0x10 = 0xF0 fits; a double add (0x100) would not
    vm = make_vm([0xA0E0, 0x6110, 0xF11E])
    vm.run(3)
    assert vm.index == 0xF0
    assert vm.registers[0xF] == 0


def test_font_address():
    vm = make_vm([0x610A, 0xF129])
    vm.run(2)
    assert vm.index == FONT_START + 5 * 0xA


def test_bcd():
    for value, digits in [(0, (0, 0, 0)), (9, (0, 0, 9)), (255, (2, 5, 5)), (137, (1, 3, 7))]:
        vm = make_vm([0xA300, 0x6100 | value, 0xF133])
        vm.run(3)
        mem = vm.memory_view
        assert (mem[0x300], mem[0x301], mem[0x302]) == digits


@pytest.mark.parametrize(
    "mode, expected",
    [
        (LoadStoreMode.CHIP8, 0x304),
        (LoadStoreMode.CHIP48, 0x303),
        (LoadStoreMode.SCHIP11, 0x300),
    ],
)
def test_bulk_store_and_load_increment(mode, expected):
    quirks = Quirks(load_store=mode)
    vm = make_vm([0x6011, 0x6122, 0x6233, 0x6344, 0xA300, 0xF355], quirks)
    vm.run(6)
    assert bytes(vm.memory_view[0x300:0x305]) == bytes([0x11, 0x22, 0x33, 0x44, 0x00])
    assert vm.index == expected

    vm = make_vm([0xA300, 0xF365], quirks)
    vm.memory.ram[0x300:0x305] = bytes([9, 8, 7, 6, 5])
    vm.run(2)
    assert vm.registers[:5] == (9, 8, 7, 6, 0)
    assert vm.index == expected


def test_undefined_opcode_is_ignored():
    vm = make_vm([0x0000, 0x0123, 0xE1FF, 0xF1FF, 0x8128, 0x6142])
    vm.run(6)
    assert vm.registers[1] == 0x42
    assert vm.pc == 0x20C
    assert not vm.halted


def test_debug_output_for_undefined_opcode(capsys):
    vm = make_vm([0x0123])
    set_debug(True)
    try:
        vm.step()
    finally:
        set_debug(False)
    assert "undefined opcode 0x0123 at 0x200" in capsys.readouterr().out

    vm = make_vm([0x0123])
    vm.step()
    assert capsys.readouterr().out == ""


def test_writes_to_font_are_dropped():
    vm = make_vm([0xA050, 0x60FF, 0xF055])
    vm.run(3)
    assert vm.memory_view[0x50] == 0xF0


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, "-v"]))
