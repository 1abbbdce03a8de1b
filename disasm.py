#!/usr/bin/env python3
"""
CHIP-8 disassembler
Renders instruction words as Octo-style text for host display and ROM listings
"""

import argparse
import sys

from memory import ROM_START, read_rom_file
from quirks import LoadStoreMode, Quirks, get_preset


def describe_opcode(opcode, quirks=None):
    """Mnemonic text for one 16-bit instruction word"""
    quirks = quirks if quirks is not None else Quirks()
    top = opcode >> 12
    x = (opcode >> 8) & 0xF
    y = (opcode >> 4) & 0xF
    n = opcode & 0xF
    nn = opcode & 0xFF
    nnn = opcode & 0xFFF

    if top == 0x0 and nn == 0xE0:
        return "clear"
    if top == 0x0 and nn == 0xEE:
        return "return"
    if top == 0x1:
        return f"jump 0x{nnn:03X}"
    if top == 0x2:
        return f":call 0x{nnn:03X}"
    if top == 0x3:
        return f"if v{x:X} != {nn} then"
    if top == 0x4:
        return f"if v{x:X} == {nn} then"
    if top == 0x5:
        return f"if v{x:X} != v{y:X} then"
    if top == 0x6:
        return f"v{x:X} := {nn}"
    if top == 0x7:
        return f"v{x:X} += {nn}"
    if top == 0x8:
        alu = {
            0x0: ":=",
            0x1: "|=",
            0x2: "&=",
            0x3: "^=",
            0x4: "+=",
            0x5: "-=",
            0x7: "=-",
        }
        if n in alu:
            return f"v{x:X} {alu[n]} v{y:X}"
        if n == 0x6:
            return f"v{x:X} >>= 1" if quirks.chip48_shift else f"v{x:X} >>= v{y:X}"
        if n == 0xE:
            return f"v{x:X} <<= 1" if quirks.chip48_shift else f"v{x:X} <<= v{y:X}"
    if top == 0x9:
        return f"if v{x:X} == v{y:X} then"
    if top == 0xA:
        return f"i := 0x{nnn:03X}"
    if top == 0xB:
        if quirks.chip48_jump:
            return f"jump0 0x{nn:02X} + v{x:X}"
        return f"jump0 0x{nnn:03X}"
    if top == 0xC:
        return f"v{x:X} := random {nn}"
    if top == 0xD:
        return f"sprite v{x:X} v{y:X} {n}"
    if top == 0xE:
        if n == 0xE:
            return f"if v{x:X} -key then"
        if n == 0x1:
            return f"if v{x:X} key then"
    if top == 0xF:
        misc = {
            0x07: f"v{x:X} := delay",
            0x0A: f"v{x:X} := key",
            0x15: f"delay := v{x:X}",
            0x18: f"buzzer := v{x:X}",
            0x1E: f"i += v{x:X}",
            0x29: f"i := hex v{x:X}",
            0x33: f"bcd v{x:X}",
            0x55: f"save v{x:X}",
            0x65: f"load v{x:X}",
        }
        if nn in misc:
            text = misc[nn]
            if nn in (0x55, 0x65) and quirks.load_store is LoadStoreMode.SCHIP11:
                text += " (i fixed)"
            return text
    return "null"


def format_instruction(opcode, pc, quirks=None):
    """One log line: address, raw word and mnemonic"""
    return f"0x{pc:X} - {opcode:04X} -> {describe_opcode(opcode, quirks)}"


def disassemble(data, start_addr=ROM_START, count=None, quirks=None):
    """List a ROM image word by word; a trailing odd byte is shown as data"""
    output = []
    offset = 0
    while offset + 1 < len(data):
        if count is not None and len(output) >= count:
            return output
        opcode = (data[offset] << 8) | data[offset + 1]
        output.append(f"  {format_instruction(opcode, start_addr + offset, quirks)}")
        offset += 2
    if offset < len(data) and (count is None or len(output) < count):
        output.append(f"  0x{start_addr + offset:X} - {data[offset]:02X}   -> .byte 0x{data[offset]:02X}")
    return output


def main(argv=None):
    parser = argparse.ArgumentParser(description="Disassemble a CHIP-8 ROM image.")
    parser.add_argument("rom", help="Path to ROM file")
    parser.add_argument("--quirks", default=None, help="Quirk preset used to render variant opcodes")
    parser.add_argument("--count", type=int, default=None, help="Maximum number of lines")
    args = parser.parse_args(argv)

    try:
        data = read_rom_file(args.rom)
        quirks = get_preset(args.quirks) if args.quirks else None
    except (OSError, KeyError) as e:
        print(f"Failed to disassemble {args.rom}: {e}")
        return 1

    for line in disassemble(data, ROM_START, args.count, quirks):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
