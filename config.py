"""
Host runtime configuration for the CHIP-8 interpreter
Defaults used by the instance manager and the headless runner
"""

# Scheduling
TIMING = {
    "ips": 60,  # Scheduled instruction slots per second
    "timer_hz": 60,  # DT/ST always decay at 60Hz
    "multiplier": 10,  # Instructions per slot, 600 instructions/s overall
    "max_ips": 144,
    "max_multiplier": 50,
}

# Per-instance host state
INSTANCE = {
    "instruction_log_max": 1000,  # Entries kept in each instruction log
    "input_enabled": False,
}

# Headless runner output
OUTPUT = {
    "screenshot_scale": 8,  # 64x32 -> 512x256
    "default_cycles": 2000,
    "default_quirks": "chip48",
}


def timer_interval():
    """Seconds between timer ticks"""
    return 1.0 / TIMING["timer_hz"]


def describe():
    """Printable summary of the active host settings"""
    lines = ["Host settings:"]
    for category, opts in [
        ("Timing", TIMING),
        ("Instance", INSTANCE),
        ("Output", OUTPUT),
    ]:
        values = ", ".join(f"{k}={v}" for k, v in opts.items())
        lines.append(f"  {category}: {values}")
    return lines
