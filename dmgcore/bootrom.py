"""Boot ROM images and where to find them."""

from __future__ import annotations

import logging
import zlib
from collections.abc import Iterable
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

import platformdirs

from dmgcore.model import DEFAULT_MODEL_PRIORITY, Model

logger = logging.getLogger(__name__)

BOOTROM_SIZE = 0x100

_CHECKSUM_MODELS = {
    0xC2F5_CC97: Model.DMG0,
    0x59C8_598E: Model.DMG,
    0xE692_0754: Model.MGB,
    0xEC8A_83B9: Model.SGB,
    0x53D0_DD63: Model.SGB2,
}


class BootromError(Exception):
    """A boot ROM could not be loaded."""

    def __init__(self, source: BaseException | None = None, message: str | None = None) -> None:
        self.source = source
        super().__init__(message if message is not None else f"IO error: {source}")


class BootromChecksumError(BootromError):
    """The boot ROM data does not match any known model."""

    def __init__(self, crc32: int) -> None:
        self.crc32 = crc32
        super().__init__(None, f"Unrecognized boot ROM checksum: 0x{crc32:08x}")


def bootroms_dir() -> Path:
    """Directory in the user's data area where boot ROMs are kept."""
    return platformdirs.user_data_path("dmgcore") / "bootroms"


@dataclass(frozen=True)
class Bootrom:
    """A recognised boot ROM and the model it belongs to."""

    model: Model
    data: bytes

    @classmethod
    def from_path(cls, path: str | PathLike[str]) -> Bootrom:
        try:
            with open(path, "rb") as file:
                data = file.read(BOOTROM_SIZE)
        except OSError as error:
            raise BootromError(error) from error
        if len(data) < BOOTROM_SIZE:
            raise BootromError(EOFError("failed to fill whole buffer"))
        return cls.from_data(data)

    @classmethod
    def from_data(cls, data: bytes) -> Bootrom:
        data = bytes(data)
        if len(data) != BOOTROM_SIZE:
            raise ValueError(f"Boot ROM must be {BOOTROM_SIZE} bytes, got {len(data)}")
        checksum = zlib.crc32(data)
        model = _CHECKSUM_MODELS.get(checksum)
        if model is None:
            raise BootromChecksumError(checksum)
        return cls(model=model, data=data)

    @classmethod
    def lookup(cls, models: Iterable[Model] = ()) -> Bootrom | None:
        """Find a boot ROM for the first available model, or None."""
        wanted = tuple(models) or DEFAULT_MODEL_PRIORITY
        directories = [bootroms_dir(), Path.cwd()]
        candidates = [
            directory / model.bootrom_file_name()
            for directory in directories
            for model in wanted
        ]
        for path in candidates:
            logger.debug("Scanning %s for a boot ROM", path)
            try:
                bootrom = cls.from_path(path)
            except BootromError as error:
                if not isinstance(error.source, FileNotFoundError):
                    logger.warning('Warning: Boot rom "%s" (%s)', path, error)
                continue
            logger.info("Using %s boot ROM from %s", bootrom.model, path)
            return bootrom
        return None

    def save_to_data_dir(self) -> Path:
        """Write the boot ROM to the data directory and return its path."""
        directory = bootroms_dir()
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.model.bootrom_file_name()
        path.write_bytes(self.data)
        logger.info("Saved %s boot ROM to %s", self.model, path)
        return path