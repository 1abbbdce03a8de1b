#!/usr/bin/env python3
import sys
import time
import argparse

import config
from chip8 import Chip8
from errors import Chip8Error
from quirks import QUIRK_PRESETS, get_preset
from utils import set_debug


def main(argv=None):
    parser = argparse.ArgumentParser(description="Headless CHIP-8 run without a window.")
    parser.add_argument("rom", help="Path to ROM file")
    parser.add_argument(
        "--quirks",
        default=config.OUTPUT["default_quirks"],
        choices=sorted(QUIRK_PRESETS),
        help="Dialect preset",
    )
    parser.add_argument("--cycles", type=int, default=config.OUTPUT["default_cycles"], help="Number of instructions to run")
    parser.add_argument(
        "--ips",
        type=int,
        default=config.TIMING["ips"] * config.TIMING["multiplier"],
        help="Simulated instructions per second (sets how often the 60Hz timers tick)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for the CXNN random generator")
    parser.add_argument("--screenshot", default=None, help="Save the final display to this image file")
    parser.add_argument("--scale", type=int, default=config.OUTPUT["screenshot_scale"], help="Screenshot scale factor")
    parser.add_argument("--trace", action="store_true", help="Print every executed instruction")
    parser.add_argument("--debug", action="store_true", help="Enable interpreter diagnostics")
    args = parser.parse_args(argv)

    set_debug(args.debug)
    if args.debug:
        for line in config.describe():
            print(line)

    vm = Chip8(get_preset(args.quirks), seed=args.seed)

    try:
        vm.load_file(args.rom)
    except (OSError, Chip8Error) as e:
        print(f"Failed to load ROM: {args.rom} ({e})")
        return 1

    # Timers tick once per ips/60 instructions of simulated time
    cycles_per_tick = max(1, args.ips // config.TIMING["timer_hz"])

    start = time.time()
    executed = 0
    fault = None
    try:
        for _ in range(args.cycles):
            vm.step()
            executed += 1
            if args.trace:
                print(vm.get_instruction())
            if executed % cycles_per_tick == 0:
                vm.tick_timers()
            if vm.halted:
                break
    except Chip8Error as e:
        fault = e
    elapsed = time.time() - start

    if args.screenshot:
        try:
            saved = vm.display.save_screenshot(args.screenshot, args.scale)
            print(f"Screenshot saved as: {saved}")
        except OSError as e:
            print(f"Error saving screenshot: {e}")

    sys.stdout.write(
        f"Headless run complete: cycles={executed}, elapsed={elapsed:.3f}s, pc=0x{vm.pc:03X}, "
        f"lit={vm.display.lit_count()}, halted={vm.halted}\n"
    )
    if fault is not None:
        print(f"Stopped on fault: {fault}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
