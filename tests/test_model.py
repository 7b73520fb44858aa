import pytest

from dmgcore.model import DEFAULT_MODEL_PRIORITY, Model


@pytest.mark.parametrize(
    "model, name",
    [
        (Model.DMG0, "dmg0_boot.bin"),
        (Model.DMG, "dmg_boot.bin"),
        (Model.MGB, "mgb_boot.bin"),
        (Model.SGB, "sgb_boot.bin"),
        (Model.SGB2, "sgb2_boot.bin"),
    ],
)
def test_bootrom_file_name(model, name):
    assert model.bootrom_file_name() == name


def test_str():
    assert Model.__str__(Model.MGB) == "MGB (Game Boy Pocket)"
    assert Model.__str__(Model.DMG0) == "DMG (Game Boy), early version"
    assert Model.__str__(Model.SGB2) == "SGB2 (Super Game Boy 2)"


def test_file_names_unique():
    names = set()
    names.add(Model.bootrom_file_name(Model.DMG0))
    names.add(Model.bootrom_file_name(Model.DMG))
    names.add(Model.bootrom_file_name(Model.MGB))
    names.add(Model.bootrom_file_name(Model.SGB))
    names.add(Model.bootrom_file_name(Model.SGB2))
    assert len(names) == len(Model)


def test_default_priority_covers_all_models():
    assert Model.bootrom_file_name(DEFAULT_MODEL_PRIORITY[0]) == "dmg_boot.bin"
    assert Model.bootrom_file_name(DEFAULT_MODEL_PRIORITY[-1]) == "dmg0_boot.bin"
    assert DEFAULT_MODEL_PRIORITY[0] is Model.DMG
    assert set(DEFAULT_MODEL_PRIORITY) == set(Model)