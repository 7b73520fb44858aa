"""Game Boy hardware models."""

from __future__ import annotations

from enum import Enum


class Model(Enum):
    """A Game Boy hardware model."""

    DMG0 = "Dmg0"
    DMG = "Dmg"
    MGB = "Mgb"
    SGB = "Sgb"
    SGB2 = "Sgb2"

    def bootrom_file_name(self) -> str:
        return _BOOTROM_FILE_NAMES[self]

    def __str__(self) -> str:
        return _DESCRIPTIONS[self]


_BOOTROM_FILE_NAMES = {
    Model.DMG0: "dmg0_boot.bin",
    Model.DMG: "dmg_boot.bin",
    Model.MGB: "mgb_boot.bin",
    Model.SGB: "sgb_boot.bin",
    Model.SGB2: "sgb2_boot.bin",
}

_DESCRIPTIONS = {
    Model.DMG0: "DMG (Game Boy), early version",
    Model.DMG: "DMG (Game Boy)",
    Model.MGB: "MGB (Game Boy Pocket)",
    Model.SGB: "SGB (Super Game Boy)",
    Model.SGB2: "SGB2 (Super Game Boy 2)",
}

DEFAULT_MODEL_PRIORITY = (Model.DMG, Model.MGB, Model.SGB2, Model.SGB, Model.DMG0)