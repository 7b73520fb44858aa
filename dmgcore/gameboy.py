"""Basic Game Boy hardware constants and the screen colour type."""

from __future__ import annotations

from enum import IntEnum

CPU_SPEED_HZ = 4_194_304
HIRAM_SIZE = 0x80
HIRAM_EMPTY = bytes(HIRAM_SIZE)
ROM_BANK_SIZE = 0x4000
RAM_BANK_SIZE = 0x2000
SCREEN_WIDTH = 160
SCREEN_HEIGHT = 144
SCREEN_PIXELS = SCREEN_WIDTH * SCREEN_HEIGHT


class Color(IntEnum):
    """One of the four shades a pixel can have."""

    OFF = 0
    LIGHT = 1
    DARK = 2
    ON = 3

    @classmethod
    def from_u8(cls, value: int) -> Color:
        """Map a raw value to a colour; anything unknown is OFF."""
        try:
            return cls(value)
        except ValueError:
            return cls.OFF


def empty_screen() -> list[Color]:
    """Return a new screen buffer with every pixel off."""
    return [Color.OFF] * SCREEN_PIXELS