"""Installation pipeline: planning which artifact to download for a release and an 
optional loader, and orchestrating the install itself.

The orchestrator owns the shared state (operation state, installations catalog, 
releases and loader versions), which is only modified from the thread calling its 
methods. All network and file work happens in background operations that only compute
values and hand them back.
"""

from zipfile import ZipFile, BadZipFile
from json import JSONDecodeError
from pathlib import Path
import shutil
import zlib
import json

from .standard import Context, LoaderKind, Installation, InstallationCatalog, \
    format_installation_id, format_modpack_id, \
    CLIENT_JAR_NAME, INSTALLER_JAR_NAME, MODS_DIR_NAME, MODPACK_MANIFEST_NAME
from .metadata import MetadataClient, LoaderVersion
from .download import ArtifactFetcher
from .task import Operation, OperationState, Watcher

from typing import Optional, List, Any


class InstallationPlan:
    """Describe what should be downloaded for an installation, and where. The artifact
    URL is always resolved when a plan exists.
    """

    __slots__ = "release_id", "loader_kind", "loader_version", "artifact_url", "target_dir"

    def __init__(self, 
        release_id: str, 
        loader_kind: Optional[LoaderKind], 
        loader_version: Optional[str],
        artifact_url: str, 
        target_dir: Path
    ) -> None:
        self.release_id = release_id
        self.loader_kind = loader_kind
        self.loader_version = loader_version
        self.artifact_url = artifact_url
        self.target_dir = target_dir

    @property
    def id(self) -> str:
        return format_installation_id(self.release_id, self.loader_kind)

    @property
    def artifact_name(self) -> str:
        """The file name of the artifact in the target directory, the client JAR for a
        direct install or the installer JAR when a loader is used.
        """
        return CLIENT_JAR_NAME if self.loader_kind is None else INSTALLER_JAR_NAME

    def __repr__(self) -> str:
        return f"<InstallationPlan {self.id} {self.artifact_url}>"


class InstallationPlanner:
    """Resolve the metadata needed for installing a release with an optional loader.
    """

    def __init__(self, context: Context, client: Optional[MetadataClient] = None) -> None:
        self.context = context
        self.client = client or MetadataClient()

    def plan(self, release_id: str, loader: Optional[LoaderKind] = None, *, 
        watcher: Optional[Watcher] = None
    ) -> InstallationPlan:
        """Plan the installation. Without loader, the client JAR of the release is 
        used. With Fabric, the installer of the first (latest) loader version returned
        for the release is used, with Forge the installer of the first version in 
        catalog order that matches the release.

        The release id is not checked against the manifest beforehand, an unknown 
        release just fails when resolving its URL.

        :raises UnsupportedLoader: If the loader has no installer, before any request.
        :raises ReleaseNotFound: If no artifact URL could be resolved.
        """

        watcher = watcher or Watcher()

        if loader is not None and loader not in (LoaderKind.FABRIC, LoaderKind.FORGE):
            raise UnsupportedLoader(loader)

        installation_id = format_installation_id(release_id, loader)
        target_dir = self.context.get_installation_dir(installation_id)
        loader_version = None

        if loader is None:
            url = self.client.fetch_release_download_url(release_id, watcher=watcher)
        else:
            versions = self.client.fetch_loader_versions(release_id, loader, watcher=watcher)
            if len(versions):
                loader_version = versions[0].version
                if loader == LoaderKind.FABRIC:
                    url = self.client.fabric_installer_url(loader_version)
                else:
                    url = self.client.forge_installer_url(loader_version)
            else:
                url = None

        if url is None:
            raise ReleaseNotFound(installation_id)

        plan = InstallationPlan(release_id, loader, loader_version, url, target_dir)
        watcher.handle(PlanResolvedEvent(plan))
        return plan


class InstallationOrchestrator:
    """Owner of the end-to-end install flows and of the state shared with the user
    interface. Each public method runs its work as a background operation, waits for
    it while forwarding its events, and only then updates the shared state.

    The state is RUNNING while an operation is in progress, then SUCCEEDED or FAILED,
    in which case the error is kept in `reason` and also raised to the caller.
    """

    def __init__(self, context: Optional[Context] = None, *,
        client: Optional[MetadataClient] = None,
        fetcher: Optional[ArtifactFetcher] = None,
    ) -> None:

        self.context = context or Context()
        self.client = client or MetadataClient()
        self.planner = InstallationPlanner(self.context, self.client)
        self.fetcher = fetcher or ArtifactFetcher(self.context)
        self.catalog = InstallationCatalog(self.context)

        self.state = OperationState.IDLE
        self.reason: Optional[BaseException] = None
        self.installations: List[Installation] = []
        self.available_releases: List[str] = []
        self.loader_versions: List[LoaderVersion] = []

    def refresh(self, *, watcher: Optional[Watcher] = None) -> List[Installation]:
        """Rebuild the installations list by re-scanning the versions directory.
        """
        self.installations = self.catalog.scan()
        if watcher is not None:
            watcher.handle(CatalogRefreshedEvent(len(self.installations)))
        return self.installations

    def get_installation(self, installation_id: str) -> Optional[Installation]:
        """Get an installation of the last catalog scan from its id.
        """
        for installation in self.installations:
            if installation.id == installation_id:
                return installation
        return None

    def fetch_available_releases(self, *, watcher: Optional[Watcher] = None) -> List[str]:
        """Fetch the ids of all releases available in the manifest.
        """
        op = Operation("releases", lambda w: self.client.fetch_release_manifest(watcher=w))
        self.available_releases = self._run(op, watcher, refresh=False)
        return self.available_releases

    def fetch_loader_versions(self, release_id: str, *, watcher: Optional[Watcher] = None) -> List[LoaderVersion]:
        """Look up Fabric and Forge versions compatible with the given release. Both 
        lookups run concurrently and this waits for both of them, whatever the order 
        they complete in. A failing lookup doesn't discard the other's versions.

        :return: Fabric versions followed by Forge versions.
        """

        watcher = watcher or Watcher()

        def lookup(kind: LoaderKind) -> Operation:
            return Operation(f"{kind.value} versions", 
                lambda w: self.client.fetch_loader_versions(release_id, kind, watcher=w))

        self.state = OperationState.RUNNING
        self.reason = None

        # Both operations must be started before waiting any of them.
        ops = [lookup(LoaderKind.FABRIC).start(), lookup(LoaderKind.FORGE).start()]

        versions: List[LoaderVersion] = []
        for op in ops:
            try:
                versions.extend(op.wait(watcher))
            except Exception as error:
                watcher.handle(LoaderLookupFailedEvent(op.name, error))
        
        self.loader_versions = versions
        self.state = OperationState.SUCCEEDED
        return versions

    def install(self, release_id: str, loader: Optional[LoaderKind] = None, *, 
        watcher: Optional[Watcher] = None
    ) -> Installation:
        """Install the given release with an optional loader. The catalog is refreshed
        only once the artifact has been completely fetched, or once the install failed.

        :raises UnsupportedLoader: If the loader has no installer implementation.
        :raises ReleaseNotFound: If the artifact URL could not be resolved.
        :raises ArtifactFetchFailed: If the download failed, the version directory 
        that was already created is left as-is.
        """
        op = Operation(f"install {release_id}", lambda w: self._install(release_id, loader, w))
        plan: InstallationPlan = self._run(op, watcher, refresh=True)
        return self.get_installation(plan.id) or Installation.from_dir(plan.target_dir)

    def import_modpack(self, archive: Path, *, watcher: Optional[Watcher] = None) -> Installation:
        """Import a modpack archive as a new installation named after the release given
        in its manifest, `<release>_modpack`. Any previous installation with the same
        name is deleted first. There is no rollback if copying fails midway.

        :raises ImportMalformed: If the archive or its manifest is invalid.
        """
        op = Operation(f"import {archive.name}", lambda w: self._import_modpack(archive, w))
        install_dir: Path = self._run(op, watcher, refresh=True)
        return self.get_installation(install_dir.name) or Installation.from_dir(install_dir)

    def _run(self, op: Operation, watcher: Optional[Watcher], *, refresh: bool) -> Any:
        """Internal function to start an operation and wait for it, updating the state.
        """

        self.state = OperationState.RUNNING
        self.reason = None

        try:
            try:
                return op.start().wait(watcher)
            finally:
                if refresh:
                    self.refresh(watcher=watcher)
        finally:
            self.state = op.state
            self.reason = op.reason

    def _install(self, release_id: str, loader: Optional[LoaderKind], watcher: Watcher) -> InstallationPlan:
        """Background part of the install.
        """

        watcher.handle(InstallStartEvent(release_id, loader))

        plan = self.planner.plan(release_id, loader, watcher=watcher)

        plan.target_dir.mkdir(parents=True, exist_ok=True)
        (plan.target_dir / MODS_DIR_NAME).mkdir(exist_ok=True)

        self.fetcher.fetch(plan.artifact_url, plan.target_dir, plan.artifact_name, watcher=watcher)
        return plan

    def _import_modpack(self, archive: Path, watcher: Watcher) -> Path:
        """Background part of the modpack import.
        """

        watcher.handle(ImportStartEvent(archive))

        extract_dir = self.context.gen_tmp_path()
        try:

            if not archive.is_file():
                raise ImportMalformed(ImportMalformed.INVALID_ARCHIVE, f"{archive} is not a file")

            # Unsupported compression and truncated or corrupted members are also
            # raised while extracting.
            try:
                with ZipFile(archive) as zf:
                    zf.extractall(extract_dir)
            except (BadZipFile, NotImplementedError, EOFError, zlib.error) as error:
                raise ImportMalformed(ImportMalformed.INVALID_ARCHIVE, str(error))

            release_id = read_modpack_release(extract_dir / MODPACK_MANIFEST_NAME)

            mods_entry = extract_dir / MODS_DIR_NAME
            if mods_entry.exists() and not mods_entry.is_dir():
                raise ImportMalformed(ImportMalformed.INVALID_ARCHIVE, f"{MODS_DIR_NAME} is not a directory")

            install_dir = self.context.get_installation_dir(format_modpack_id(release_id))
            if install_dir.exists():
                shutil.rmtree(install_dir)
            install_dir.mkdir(parents=True)

            for item in extract_dir.iterdir():
                if item.is_dir():
                    shutil.copytree(item, install_dir / item.name)
                else:
                    shutil.copy2(item, install_dir / item.name)

            (install_dir / MODS_DIR_NAME).mkdir(exist_ok=True)

        finally:
            shutil.rmtree(extract_dir, ignore_errors=True)

        watcher.handle(ImportedEvent(install_dir.name))
        return install_dir


def read_modpack_release(manifest_file: Path) -> str:
    """Read the release id from a modpack's manifest, `{minecraft: {version}}`.

    :raises ImportMalformed: If the manifest is missing or invalid.
    """

    try:
        with manifest_file.open("rt", encoding="utf-8") as fp:
            manifest = json.load(fp)
    except FileNotFoundError:
        raise ImportMalformed(ImportMalformed.MANIFEST_NOT_FOUND, MODPACK_MANIFEST_NAME)
    except (JSONDecodeError, UnicodeDecodeError) as error:
        raise ImportMalformed(ImportMalformed.INVALID_MANIFEST, str(error))

    try:
        release_id = manifest["minecraft"]["version"]
    except (KeyError, TypeError):
        raise ImportMalformed(ImportMalformed.INVALID_MANIFEST, "/minecraft/version")

    # The release is used as a directory name, it must not escape the versions dir.
    if not isinstance(release_id, str) or not len(release_id) \
        or release_id in (".", "..") or "/" in release_id or "\\" in release_id:
        raise ImportMalformed(ImportMalformed.INVALID_MANIFEST, "/minecraft/version")

    return release_id


class UnsupportedLoader(Exception):
    """Raised when planning an install for a loader without installer implementation.
    """
    def __init__(self, loader: LoaderKind) -> None:
        self.loader = loader

    def __str__(self) -> str:
        return repr(self.loader.value)

class ReleaseNotFound(Exception):
    """Raised when no artifact URL could be resolved for an installation, the release
    may not exist, have no compatible loader, or the metadata may be unavailable. The
    id of the installation is given.
    """
    def __init__(self, installation_id: str) -> None:
        self.installation_id = installation_id

    def __str__(self) -> str:
        return repr(self.installation_id)

class ImportMalformed(Exception):
    """Raised when a modpack archive can't be imported, the reason is given as code.
    """

    INVALID_ARCHIVE = "invalid_archive"
    MANIFEST_NOT_FOUND = "manifest_not_found"
    INVALID_MANIFEST = "invalid_manifest"

    def __init__(self, code: str, detail: str) -> None:
        self.code = code
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.code}: {self.detail}"


class InstallStartEvent:
    """Event triggered when an install starts.
    """
    __slots__ = "release_id", "loader"
    def __init__(self, release_id: str, loader: Optional[LoaderKind]) -> None:
        self.release_id = release_id
        self.loader = loader

class PlanResolvedEvent:
    """Event triggered when the artifact to download has been resolved.
    """
    __slots__ = "plan",
    def __init__(self, plan: InstallationPlan) -> None:
        self.plan = plan

class CatalogRefreshedEvent:
    __slots__ = "count",
    def __init__(self, count: int) -> None:
        self.count = count

class LoaderLookupFailedEvent:
    """Event triggered when one of the concurrent loader lookups failed unexpectedly.
    """
    __slots__ = "name", "error"
    def __init__(self, name: str, error: Exception) -> None:
        self.name = name
        self.error = error

class ImportStartEvent:
    __slots__ = "archive",
    def __init__(self, archive: Path) -> None:
        self.archive = archive

class ImportedEvent:
    __slots__ = "installation_id",
    def __init__(self, installation_id: str) -> None:
        self.installation_id = installation_id
