"""Game Boy (DMG) emulator core: CPU, cartridge headers, boot ROMs and shared types."""

__version__ = "0.1.0"