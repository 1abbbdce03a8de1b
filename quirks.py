"""
CHIP-8 dialect quirks
Selects, per VM, which historical variant of the ambiguous opcodes to run
"""

from dataclasses import dataclass
from enum import Enum


class LoadStoreMode(Enum):
    """How far FX55 / FX65 advance I after copying V0..VX"""

    CHIP8 = "chip8"  # I += X + 1
    CHIP48 = "chip48"  # I += X (one less than it should)
    SCHIP11 = "schip11"  # I unchanged


@dataclass(frozen=True)
class Quirks:
    """Immutable quirk selection, fixed when the VM is built"""

    vip_alu: bool = False  # 8XY1 / 8XY2 / 8XY3 reset VF to 0
    chip48_jump: bool = False  # BNNN becomes BXNN: jump to XNN + VX
    chip48_shift: bool = True  # 8XY6 / 8XYE shift VX in place, VY ignored
    load_store: LoadStoreMode = LoadStoreMode.CHIP48

    def describe(self):
        """Human-readable summary, one (label, value) pair per axis"""
        return [
            ("COSMAC VIP Logic", "Yes" if self.vip_alu else "No"),
            ("CHIP48 Jump", "Yes" if self.chip48_jump else "No"),
            ("CHIP48 Shift", "Yes" if self.chip48_shift else "No"),
            ("L/S Mode", LOAD_STORE_LABELS[self.load_store]),
        ]


LOAD_STORE_LABELS = {
    LoadStoreMode.CHIP8: "CHIP8",
    LoadStoreMode.CHIP48: "CHIP48",
    LoadStoreMode.SCHIP11: "SUPER-CHIP 1.1",
}

QUIRK_PRESETS = {
    "chip8": Quirks(chip48_shift=False, load_store=LoadStoreMode.CHIP8),
    "vip": Quirks(vip_alu=True, chip48_shift=False, load_store=LoadStoreMode.CHIP8),
    "chip48": Quirks(chip48_jump=True, chip48_shift=True, load_store=LoadStoreMode.CHIP48),
    "schip11": Quirks(chip48_jump=True, chip48_shift=True, load_store=LoadStoreMode.SCHIP11),
}


def get_preset(name):
    """Look up a named dialect; raises KeyError listing the known names"""
    try:
        return QUIRK_PRESETS[name.lower()]
    except KeyError:
        known = ", ".join(sorted(QUIRK_PRESETS))
        raise KeyError(f"Unknown quirk preset '{name}' (known: {known})") from None
