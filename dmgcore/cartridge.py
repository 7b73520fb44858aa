"""Cartridge ROM images and their header."""

from __future__ import annotations

import zlib
from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from os import PathLike
from pathlib import Path

from dmgcore.gameboy import ROM_BANK_SIZE

_NINTENDO_LOGO_CRC32 = 0x4619_5417
_MULTICART_SIZE = 1_048_576


class CartridgeError(Exception):
    """The data is not a valid cartridge."""

    def __init__(self, msg: str) -> None:
        super().__init__(f"Invalid cartridge: {msg}")
        self.msg = msg


class Mbc(Enum):
    """Memory bank controller families."""

    NO_MBC = "NoMbc"
    MBC1 = "Mbc1"
    MBC2 = "Mbc2"
    MBC3 = "Mbc3"
    MBC5 = "Mbc5"
    MBC6 = "Mbc6"
    MBC7 = "Mbc7"
    HUC1 = "Huc1"
    HUC3 = "Huc3"


_MBC_FIELDS = {
    Mbc.NO_MBC: ("ram", "battery"),
    Mbc.MBC1: ("ram", "battery", "multicart"),
    Mbc.MBC2: ("battery",),
    Mbc.MBC3: ("ram", "battery", "rtc"),
    Mbc.MBC5: ("ram", "battery", "rumble"),
}


@dataclass(frozen=True)
class CartridgeType:
    """The controller and extra hardware of a cartridge."""

    mbc: Mbc
    ram: bool = False
    battery: bool = False
    multicart: bool = False
    rtc: bool = False
    rumble: bool = False

    @classmethod
    def from_code(cls, value: int) -> CartridgeType:
        try:
            return _TYPE_CODES[value]
        except KeyError:
            raise CartridgeError(f"Unsupported cartridge type {value:02x}") from None

    def has_ram_chip(self) -> bool:
        if self.mbc is Mbc.MBC2:
            # MBC2 has internal RAM and doesn't use a RAM chip
            return False
        if self.mbc in (Mbc.MBC6, Mbc.MBC7, Mbc.HUC1, Mbc.HUC3):
            return True
        return self.ram

    def __str__(self) -> str:
        fields = _MBC_FIELDS.get(self.mbc, ())
        if not fields:
            return self.mbc.value
        inner = ", ".join(f"{name}={getattr(self, name)}" for name in fields)
        return f"{self.mbc.value}({inner})"


_TYPE_CODES = {
    0x00: CartridgeType(Mbc.NO_MBC),
    0x08: CartridgeType(Mbc.NO_MBC, ram=True),
    0x09: CartridgeType(Mbc.NO_MBC, ram=True, battery=True),
    0x01: CartridgeType(Mbc.MBC1),
    0x02: CartridgeType(Mbc.MBC1, ram=True),
    0x03: CartridgeType(Mbc.MBC1, ram=True, battery=True),
    0x05: CartridgeType(Mbc.MBC2),
    0x06: CartridgeType(Mbc.MBC2, battery=True),
    0x11: CartridgeType(Mbc.MBC3),
    0x12: CartridgeType(Mbc.MBC3, ram=True),
    0x13: CartridgeType(Mbc.MBC3, ram=True, battery=True),
    0x0F: CartridgeType(Mbc.MBC3, battery=True, rtc=True),
    0x10: CartridgeType(Mbc.MBC3, ram=True, battery=True, rtc=True),
    0x19: CartridgeType(Mbc.MBC5),
    0x1A: CartridgeType(Mbc.MBC5, ram=True),
    0x1B: CartridgeType(Mbc.MBC5, ram=True, battery=True),
    0x1C: CartridgeType(Mbc.MBC5, rumble=True),
    0x1D: CartridgeType(Mbc.MBC5, ram=True, rumble=True),
    0x1E: CartridgeType(Mbc.MBC5, ram=True, battery=True, rumble=True),
    0x20: CartridgeType(Mbc.MBC6),
    0x22: CartridgeType(Mbc.MBC7),
    0xFF: CartridgeType(Mbc.HUC1),
    0xFE: CartridgeType(Mbc.HUC3),
}


class CartridgeRomSize(IntEnum):
    """ROM size as coded in the cartridge header."""

    NO_ROM_BANKS = 0x00
    ROM_BANKS_4 = 0x01
    ROM_BANKS_8 = 0x02
    ROM_BANKS_16 = 0x03
    ROM_BANKS_32 = 0x04
    ROM_BANKS_64 = 0x05
    ROM_BANKS_128 = 0x06
    ROM_BANKS_256 = 0x07
    ROM_BANKS_512 = 0x08

    @classmethod
    def from_code(cls, value: int) -> CartridgeRomSize:
        try:
            return cls(value)
        except ValueError:
            raise CartridgeError(f"Unsupported rom size {value:02x}") from None

    def banks(self) -> int:
        return 2 << int(self)

    def size(self) -> int:
        return self.banks() * ROM_BANK_SIZE

    def __str__(self) -> str:
        return _ROM_LABELS[self]


_ROM_LABELS = {
    CartridgeRomSize.NO_ROM_BANKS: "256 kbit",
    CartridgeRomSize.ROM_BANKS_4: "512 kbit",
    CartridgeRomSize.ROM_BANKS_8: "1 Mbit",
    CartridgeRomSize.ROM_BANKS_16: "2 Mbit",
    CartridgeRomSize.ROM_BANKS_32: "4 Mbit",
    CartridgeRomSize.ROM_BANKS_64: "8 Mbit",
    CartridgeRomSize.ROM_BANKS_128: "16 Mbit",
    CartridgeRomSize.ROM_BANKS_256: "32 Mbit",
    CartridgeRomSize.ROM_BANKS_512: "64 Mbit",
}


class CartridgeRamSize(IntEnum):
    """External RAM size as coded in the cartridge header."""

    NO_RAM = 0x00
    RAM_2K = 0x01
    RAM_8K = 0x02
    RAM_32K = 0x03
    RAM_128K = 0x04
    RAM_64K = 0x05

    @classmethod
    def from_code(cls, value: int) -> CartridgeRamSize:
        try:
            return cls(value)
        except ValueError:
            raise CartridgeError(f"Unsupported ram size {value:02x}") from None

    def size(self) -> int:
        return _RAM_BYTES[self]

    def __str__(self) -> str:
        return _RAM_LABELS[self]


_RAM_BYTES = {
    CartridgeRamSize.NO_RAM: 0,
    CartridgeRamSize.RAM_2K: 2048,
    CartridgeRamSize.RAM_8K: 8192,
    CartridgeRamSize.RAM_32K: 32768,
    CartridgeRamSize.RAM_128K: 131_072,
    CartridgeRamSize.RAM_64K: 65536,
}

_RAM_LABELS = {
    CartridgeRamSize.NO_RAM: "-",
    CartridgeRamSize.RAM_2K: "16 kbit",
    CartridgeRamSize.RAM_8K: "64 kbit",
    CartridgeRamSize.RAM_32K: "256 kbit",
    CartridgeRamSize.RAM_128K: "1 Mbit",
    CartridgeRamSize.RAM_64K: "512 kbit",
}


@dataclass(frozen=True)
class Cartridge:
    """A validated cartridge ROM image."""

    data: bytes
    title: str
    cartridge_type: CartridgeType
    rom_size: CartridgeRomSize
    ram_size: CartridgeRamSize

    @classmethod
    def no_cartridge(cls) -> Cartridge:
        return cls(
            data=b"\xff\xff",
            title="-",
            cartridge_type=CartridgeType(Mbc.NO_MBC),
            rom_size=CartridgeRomSize.NO_ROM_BANKS,
            ram_size=CartridgeRamSize.NO_RAM,
        )

    @classmethod
    def from_path(cls, path: str | PathLike[str]) -> Cartridge:
        """Load a cartridge from a file; OSError propagates on read failure."""
        return cls.from_data(Path(path).read_bytes())

    @classmethod
    def from_data(cls, data: bytes) -> Cartridge:
        data = bytes(data)
        if len(data) < 0x8000 or len(data) % 0x4000 != 0:
            raise CartridgeError(f"Invalid length: {len(data)} bytes")

        new_cartridge = data[0x14B] == 0x33
        raw_title = data[0x134:0x13F] if new_cartridge else data[0x134:0x143]
        try:
            title = raw_title.decode("utf-8").rstrip("\0")
        except UnicodeDecodeError:
            raise CartridgeError("Invalid ROM title") from None

        cartridge_type = CartridgeType.from_code(data[0x147])
        if cartridge_type.mbc is Mbc.MBC1:
            cartridge_type = replace(cartridge_type, multicart=is_mbc1_multicart(data))
        rom_size = CartridgeRomSize.from_code(data[0x148])
        ram_size = CartridgeRamSize.from_code(data[0x149])

        if cartridge_type.has_ram_chip() and ram_size is CartridgeRamSize.NO_RAM:
            raise CartridgeError(f"{cartridge_type} cartridge without ram")
        if not cartridge_type.has_ram_chip() and ram_size is not CartridgeRamSize.NO_RAM:
            raise CartridgeError(
                f"{cartridge_type} cartridge with ram size {data[0x149]:02x}"
            )
        if len(data) != rom_size.size():
            raise CartridgeError(
                f"Expected {rom_size.size()} bytes of cartridge ROM, got {len(data)}"
            )

        return cls(
            data=data,
            title=title,
            cartridge_type=cartridge_type,
            rom_size=rom_size,
            ram_size=ram_size,
        )


def is_mbc1_multicart(rom: bytes) -> bool:
    """Tell whether an MBC1 ROM is a multicart holding several games."""
    # Only 8 Mbit MBC1 multicarts exist; other sizes have no known wiring.
    if len(rom) != _MULTICART_SIZE:
        return False
    logo_count = sum(
        1
        for page in range(4)
        if zlib.crc32(rom[page * 0x40000 + 0x0104 : page * 0x40000 + 0x0134])
        == _NINTENDO_LOGO_CRC32
    )
    # A menu plus at least two games must carry valid logo data.
    return logo_count >= 3