"""
CHIP-8 interpreter exceptions
"""


class Chip8Error(Exception):
    """Base for interpreter-generated errors."""
    pass


class RomTooLargeError(Chip8Error, ValueError):
    def __init__(self, size: int, capacity: int):
        self.size = size
        self.capacity = capacity
        super().__init__(
            f"ROM is {size} bytes but only {capacity} bytes fit in memory"
        )


class StackError(Chip8Error):
    """Raised when a call or return would leave the 16-slot stack."""

    def __init__(self, address: int, message: str = ""):
        self.address = address
        super().__init__(message or f"Stack fault at 0x{address:03X}")


class StackOverflowError(StackError):
    def __init__(self, address: int):
        super().__init__(address, f"Stack overflow: call at 0x{address:03X} with 16 return addresses pushed")


class StackUnderflowError(StackError):
    def __init__(self, address: int):
        super().__init__(address, f"Stack underflow: return at 0x{address:03X} with an empty stack")
