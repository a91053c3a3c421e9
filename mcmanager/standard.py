"""Definition of the standard on-disk layout of installed versions, the context holding
the directories and the catalog re-scanning them.

Each installed version lives in its own directory under the versions directory, named
after the release and optional loader: `<release>`, `<release>_<loader>` or
`<release>_modpack`. This name is the only persisted association between a directory
and its release/loader, it's parsed into typed fields as soon as it is read.
"""

from pathlib import Path
from uuid import uuid4
from enum import Enum

from .util import get_default_main_dir

from typing import Optional, Iterator, List, Tuple


CLIENT_JAR_NAME = "client.jar"
INSTALLER_JAR_NAME = "installer.jar"
MODS_DIR_NAME = "mods"
MODPACK_MANIFEST_NAME = "manifest.json"
MODPACK_SUFFIX = "modpack"


class Context:
    """Context of the installations. This defines the directory where versions are 
    installed and a scratch directory used for partial downloads and archive 
    extraction, both are in the same main directory so that files can be atomically
    moved from the scratch directory to a version directory.
    """

    def __init__(self, main_dir: Optional[Path] = None) -> None:
        """Construct an installation context.

        :param main_dir: The main directory where versions are installed. If not 
        specified, the platform's default is used (see `get_default_main_dir`).
        """
        self.main_dir = get_default_main_dir() if main_dir is None else main_dir
        self.versions_dir = self.main_dir / "versions"
        self.tmp_dir = self.main_dir / "tmp"

    def get_installation_dir(self, installation_id: str) -> Path:
        """Get the directory of an installation given its id (directory name).
        """
        return self.versions_dir / installation_id

    def gen_tmp_path(self) -> Path:
        """Generate a random path in the scratch directory. Note that nothing is 
        created by this method, only the path is returned.
        """
        return self.tmp_dir / str(uuid4())


class LoaderKind(Enum):
    """The mod loaders that can be selected when installing a version. The value is
    the suffix used in installation directory names. Quilt can be selected but has no
    installer implementation.
    """
    FABRIC = "fabric"
    FORGE = "forge"
    QUILT = "quilt"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


def format_installation_id(release_id: str, loader: Optional[LoaderKind] = None) -> str:
    """Return the directory name of an installation for a release and optional loader.
    """
    return release_id if loader is None else f"{release_id}_{loader.value}"


def format_modpack_id(release_id: str) -> str:
    """Return the directory name of an imported modpack for the given release.
    """
    return f"{release_id}_{MODPACK_SUFFIX}"


def parse_installation_id(installation_id: str) -> Tuple[str, Optional[LoaderKind], bool]:
    """Parse an installation directory name into its release id, optional loader and
    modpack flag. This is the inverse of `format_installation_id` and 
    `format_modpack_id`.

    Release ids containing an underscore are not supported: a release id ending with
    a loader suffix, such as "foo_forge", can't be distinguished from a Forge install.
    """

    parts = installation_id.rsplit("_", 1)
    if len(parts) == 2:
        release_id, suffix = parts
        if suffix == MODPACK_SUFFIX:
            return release_id, None, True
        for loader in LoaderKind:
            if loader.value == suffix:
                return release_id, loader, False

    return installation_id, None, False


class Mod:
    """A mod file present in the mods directory of an installation.
    """

    __slots__ = "name", "file"

    def __init__(self, name: str, file: Path) -> None:
        self.name = name
        self.file = file

    def __repr__(self) -> str:
        return f"<Mod {self.name}>"


class Installation:
    """An installed version as read from the filesystem.

    The installation is said complete when its artifact is present, the client JAR or
    the loader installer JAR (or the manifest for modpacks). An interrupted install 
    still appears in the catalog, but incomplete.
    """

    __slots__ = "id", "release_id", "loader_kind", "modpack", "dir", "mods_dir", "is_complete", "mods"

    def __init__(self, id: str, dir: Path) -> None:
        self.id = id
        self.release_id, self.loader_kind, self.modpack = parse_installation_id(id)
        self.dir = dir
        self.mods_dir = dir / MODS_DIR_NAME
        self.is_complete = False
        self.mods: List[Mod] = []

    @classmethod
    def from_dir(cls, dir: Path) -> "Installation":
        """Read an installation from its directory, listing its mods and checking if
        it is complete.
        """

        inst = cls(dir.name, dir)

        if inst.modpack:
            inst.is_complete = (dir / MODPACK_MANIFEST_NAME).is_file()
        else:
            inst.is_complete = inst.client_jar_file().is_file() or inst.installer_jar_file().is_file()

        if inst.mods_dir.is_dir():
            for mod_file in sorted(inst.mods_dir.iterdir()):
                if mod_file.is_file():
                    inst.mods.append(Mod(mod_file.stem, mod_file))

        return inst

    def client_jar_file(self) -> Path:
        return self.dir / CLIENT_JAR_NAME

    def installer_jar_file(self) -> Path:
        return self.dir / INSTALLER_JAR_NAME

    def __str__(self) -> str:
        return self.id

    def __repr__(self) -> str:
        return f"<Installation {self.id}>"


class InstallationCatalog:
    """View of the installed versions, always rebuilt by re-scanning the versions 
    directory and never updated incrementally.
    """

    def __init__(self, context: Context) -> None:
        self.context = context

    def iter_installations(self) -> Iterator[Installation]:
        """Iterate over installations in the versions directory, in name order.
        """
        if self.context.versions_dir.is_dir():
            for install_dir in sorted(self.context.versions_dir.iterdir()):
                if install_dir.is_dir():
                    yield Installation.from_dir(install_dir)

    def scan(self) -> List[Installation]:
        """Return the list of all installations.
        """
        return list(self.iter_installations())
