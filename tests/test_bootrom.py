import logging
import struct
import zlib

import platformdirs
import pytest

from dmgcore.bootrom import (
    BOOTROM_SIZE,
    Bootrom,
    BootromChecksumError,
    BootromError,
    bootroms_dir,
)
from dmgcore.model import Model

_CRCS = {
    Model.DMG0: 0xC2F5_CC97,
    Model.DMG: 0x59C8_598E,
    Model.MGB: 0xE692_0754,
    Model.SGB: 0xEC8A_83B9,
    Model.SGB2: 0x53D0_DD63,
}


def _crc_table():
    table = []
    for i in range(256):
        c = i
        for _ in range(8):
            c = (c >> 1) ^ 0xEDB88320 if c & 1 else c >> 1
        table.append(c)
    return table


def _forge(target):
    """Build boot ROM sized data whose CRC-32 equals target."""
    table = _crc_table()
    reverse = [0] * 256
    for i, entry in enumerate(table):
        reverse[entry >> 24] = ((entry << 8) ^ i) & 0xFFFFFFFF
    prefix = bytes(BOOTROM_SIZE - 4)
    forward = zlib.crc32(prefix) ^ 0xFFFFFFFF
    backward = target ^ 0xFFFFFFFF
    for byte in struct.pack("<L", forward)[::-1]:
        backward = ((backward << 8) & 0xFFFFFFFF) ^ reverse[backward >> 24] ^ byte
    data = prefix + struct.pack("<L", backward)
    assert zlib.crc32(data) == target
    return data


@pytest.fixture
def dirs(tmp_path, monkeypatch):
    root = tmp_path / "data"
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setattr(platformdirs, "user_data_path", lambda *a, **k: root)
    monkeypatch.chdir(work)
    return root / "bootroms", work


@pytest.mark.parametrize("model", list(_CRCS))
def test_from_data_recognises_model(model):
    data = _forge(_CRCS[model])
    bootrom = Bootrom.from_data(data)
    assert bootrom.model is model
    assert bootrom.data == data


def test_from_data_unknown_checksum():
    data = bytes(BOOTROM_SIZE)
    with pytest.raises(BootromChecksumError) as info:
        Bootrom.from_data(data)
    assert info.value.crc32 == zlib.crc32(data)
    assert str(info.value) == f"Unrecognized boot ROM checksum: 0x{zlib.crc32(data):08x}"


def test_from_data_wrong_length():
    with pytest.raises(ValueError):
        Bootrom.from_data(bytes(10))


def test_from_path_reads_first_block(tmp_path):
    data = _forge(_CRCS[Model.SGB])
    path = tmp_path / "rom.bin"
    path.write_bytes(data + b"\x01\x02")
    assert Bootrom.from_path(path) == Bootrom(Model.SGB, data)


def test_from_path_missing_file(tmp_path):
    with pytest.raises(BootromError) as info:
        Bootrom.from_path(tmp_path / "absent.bin")
    assert isinstance(info.value.source, FileNotFoundError)


def test_from_path_short_file(tmp_path):
    path = tmp_path / "short.bin"
    path.write_bytes(bytes(10))
    with pytest.raises(BootromError) as info:
        Bootrom.from_path(path)
    assert not isinstance(info.value, BootromChecksumError)
    assert str(info.value).startswith("IO error: ")


def test_bootroms_dir(dirs):
    data_dir, _ = dirs
    assert bootroms_dir() == data_dir


def test_lookup_nothing_found(dirs):
    assert Bootrom.lookup([]) is None


def test_lookup_from_cwd(dirs):
    _, work = dirs
    data = _forge(_CRCS[Model.MGB])
    (work / Model.MGB.bootrom_file_name()).write_bytes(data)
    found = Bootrom.lookup([])
    assert found == Bootrom(Model.MGB, data)


def test_lookup_follows_default_priority(dirs):
    data_dir, _ = dirs
    data_dir.mkdir(parents=True)
    for model in (Model.DMG0, Model.DMG):
        (data_dir / model.bootrom_file_name()).write_bytes(_forge(_CRCS[model]))
    assert Bootrom.lookup([]).model is Model.DMG


def test_lookup_respects_requested_models(dirs):
    _, work = dirs
    for model in (Model.DMG, Model.SGB2):
        (work / model.bootrom_file_name()).write_bytes(_forge(_CRCS[model]))
    assert Bootrom.lookup([Model.SGB2]).model is Model.SGB2


def test_lookup_skips_invalid_with_warning(dirs, caplog):
    data_dir, work = dirs
    data_dir.mkdir(parents=True)
    (data_dir / Model.DMG.bootrom_file_name()).write_bytes(bytes(BOOTROM_SIZE))
    data = _forge(_CRCS[Model.DMG])
    (work / Model.DMG.bootrom_file_name()).write_bytes(data)
    with caplog.at_level(logging.WARNING):
        found = Bootrom.lookup([Model.DMG])
    assert found == Bootrom(Model.DMG, data)
    assert "Unrecognized boot ROM checksum" in caplog.text


def test_save_to_data_dir_round_trip(dirs):
    data_dir, _ = dirs
    bootrom = Bootrom.from_data(_forge(_CRCS[Model.SGB2]))
    path = bootrom.save_to_data_dir()
    assert path == data_dir / Model.SGB2.bootrom_file_name()
    assert Bootrom.from_path(path) == bootrom
    assert Bootrom.lookup([Model.SGB2]) == bootrom