from pathlib import Path

import pytest

from mcmanager.standard import Context, LoaderKind, InstallationCatalog, Installation, \
    format_installation_id, format_modpack_id, parse_installation_id


def test_context(tmp_path):

    context = Context(tmp_path)
    assert context.versions_dir == tmp_path / "versions"
    assert context.get_installation_dir("1.20.1_forge") == tmp_path / "versions" / "1.20.1_forge"

    tmp = context.gen_tmp_path()
    assert tmp.parent == context.tmp_dir
    assert tmp != context.gen_tmp_path()
    assert not tmp.exists()


def test_default_context():
    assert isinstance(Context().main_dir, Path)


@pytest.mark.parametrize("release_id, loader, installation_id", [
    ("1.20.1", None, "1.20.1"),
    ("1.20", LoaderKind.FABRIC, "1.20_fabric"),
    ("1.20.1", LoaderKind.FORGE, "1.20.1_forge"),
    ("1.20.1", LoaderKind.QUILT, "1.20.1_quilt"),
])
def test_installation_id(release_id, loader, installation_id):
    assert format_installation_id(release_id, loader) == installation_id
    assert parse_installation_id(installation_id) == (release_id, loader, False)


def test_modpack_id():
    assert format_modpack_id("1.20.1") == "1.20.1_modpack"
    assert parse_installation_id("1.20.1_modpack") == ("1.20.1", None, True)


def test_unknown_suffix():
    assert parse_installation_id("1.20.1_custom") == ("1.20.1_custom", None, False)
    assert parse_installation_id("23w31a") == ("23w31a", None, False)


def test_loader_display_name():
    assert LoaderKind.FABRIC.display_name == "Fabric"
    assert LoaderKind("forge") is LoaderKind.FORGE


def test_catalog(tmp_context):

    catalog = InstallationCatalog(tmp_context)
    assert catalog.scan() == []

    complete = tmp_context.get_installation_dir("1.20.1")
    (complete / "mods").mkdir(parents=True)
    (complete / "client.jar").write_bytes(b"client")
    (complete / "mods" / "sodium-0.5.jar").write_bytes(b"mod")
    (complete / "mods" / "iris.jar").write_bytes(b"mod")
    (complete / "mods" / "config").mkdir()

    fabric = tmp_context.get_installation_dir("1.20.1_fabric")
    fabric.mkdir()
    (fabric / "installer.jar").write_bytes(b"installer")

    # Interrupted install, the directory exists without its artifact.
    incomplete = tmp_context.get_installation_dir("1.19.4_forge")
    (incomplete / "mods").mkdir(parents=True)

    modpack = tmp_context.get_installation_dir("1.18.2_modpack")
    modpack.mkdir()
    (modpack / "manifest.json").write_text("{}")

    # Plain files are not installations.
    (tmp_context.versions_dir / "notes.txt").write_text("notes")

    installations = catalog.scan()
    assert [inst.id for inst in installations] == ["1.18.2_modpack", "1.19.4_forge", "1.20.1", "1.20.1_fabric"]

    by_id = {inst.id: inst for inst in installations}
    assert [mod.name for mod in by_id["1.20.1"].mods] == ["iris", "sodium-0.5"]
    assert by_id["1.20.1"].is_complete
    assert by_id["1.20.1_fabric"].is_complete
    assert by_id["1.20.1_fabric"].loader_kind == LoaderKind.FABRIC
    assert not by_id["1.19.4_forge"].is_complete
    assert by_id["1.18.2_modpack"].modpack
    assert by_id["1.18.2_modpack"].is_complete
    assert by_id["1.18.2_modpack"].release_id == "1.18.2"


def test_installation_without_mods(tmp_path):
    install_dir = tmp_path / "1.20.1"
    install_dir.mkdir()
    inst = Installation.from_dir(install_dir)
    assert inst.mods == []
    assert not inst.is_complete
