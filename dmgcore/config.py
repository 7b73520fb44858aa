"""Hardware configuration for an emulation session."""

from __future__ import annotations

from dataclasses import dataclass

from dmgcore.cartridge import Cartridge
from dmgcore.model import Model


@dataclass(frozen=True)
class HardwareConfig:
    """Model, optional boot ROM data and inserted cartridge."""

    model: Model
    bootrom: bytes | None
    cartridge: Cartridge