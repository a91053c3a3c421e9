"""Client of the external metadata catalogs: Mojang's release manifest with its 
per-release descriptors, and the Fabric and Forge loader version lists.

Every public method of the client degrades to an empty result when a catalog can't be
reached or decoded, an empty result must therefore be interpreted as "unknown" and not
as "incompatible". Such failures are reported to the watcher as 
`MetadataUnavailableEvent` so that they can still be logged.
"""

from json import JSONDecodeError

from .standard import LoaderKind
from .util import MavenArtifact
from .http import http_request, HttpError
from .task import Watcher

from typing import Optional, List, FrozenSet, Any


VERSION_MANIFEST_URL = "https://launchermeta.mojang.com/mc/game/version_manifest.json"
FABRIC_META_URL = "https://meta.fabricmc.net/v2/"
FABRIC_MAVEN_URL = "https://maven.fabricmc.net/"
FORGE_METADATA_URL = "https://files.minecraftforge.net/net/minecraftforge/forge/maven-metadata.json"
FORGE_MAVEN_URL = "https://maven.minecraftforge.net/"


class LoaderVersion:
    """A loader version returned by a loader catalog. This is only produced when 
    joining metadata and never persisted.
    """

    __slots__ = "kind", "version", "id", "display_name", "compatible_release_ids"

    def __init__(self, kind: LoaderKind, version: str, compatible_release_ids: FrozenSet[str]) -> None:
        self.kind = kind
        self.version = version
        self.id = f"{kind.value}_{version}"
        self.display_name = f"{kind.display_name} {version}"
        self.compatible_release_ids = compatible_release_ids

    def __eq__(self, other) -> bool:
        return isinstance(other, LoaderVersion) and \
            (self.kind, self.version, self.compatible_release_ids) == \
            (other.kind, other.version, other.compatible_release_ids)

    def __hash__(self) -> int:
        return hash((self.kind, self.version, self.compatible_release_ids))

    def __repr__(self) -> str:
        return f"<LoaderVersion {self.id}>"


def forge_version_matches(release_id: str, forge_version: str) -> bool:
    """Compatibility test between a release and a Forge version string. 
    
    This is a plain substring containment, kept for compatibility with existing 
    installs, it gives false positives such as release "1.2" matching "1.20.1-47.1.0".
    """
    return release_id in forge_version


class MetadataClient:
    """Stateless accessor for the metadata catalogs, only doing network I/O. The
    endpoints can be changed, for example to point to a mirror.
    """

    def __init__(self, *,
        manifest_url: str = VERSION_MANIFEST_URL,
        fabric_meta_url: str = FABRIC_META_URL,
        fabric_maven_url: str = FABRIC_MAVEN_URL,
        forge_metadata_url: str = FORGE_METADATA_URL,
        forge_maven_url: str = FORGE_MAVEN_URL,
    ) -> None:
        self.manifest_url = manifest_url
        self.fabric_meta_url = fabric_meta_url
        self.fabric_maven_url = fabric_maven_url
        self.forge_metadata_url = forge_metadata_url
        self.forge_maven_url = forge_maven_url

    def fetch_release_manifest(self, *, watcher: Optional[Watcher] = None) -> List[str]:
        """Return all release ids of the manifest, in manifest order. Empty if the 
        manifest is unavailable.
        """
        try:
            return [str(version["id"]) for version in self._request_manifest()]
        except (KeyError, TypeError) as error:
            self._unavailable(MetadataUnavailable("manifest", error), watcher)
        except MetadataUnavailable as error:
            self._unavailable(error, watcher)
        return []

    def fetch_release_download_url(self, release_id: str, *, watcher: Optional[Watcher] = None) -> Optional[str]:
        """Resolve the client JAR URL of the given release. This requires three hops:
        the manifest, the release descriptor found by exact id in the manifest and then
        the `downloads.client.url` field of the descriptor.

        :return: The URL, none if the release is not found or any hop fails.
        """
        try:
            return self._request_release_download_url(release_id)
        except MetadataUnavailable as error:
            self._unavailable(error, watcher)
            return None

    def fetch_loader_versions(self, release_id: str, kind: LoaderKind, *, watcher: Optional[Watcher] = None) -> List[LoaderVersion]:
        """Return loader versions of the given kind that are compatible with a release.
        Fabric versions are kept in response order, the first one being the latest. 
        Forge versions are kept in catalog order. Quilt has no catalog and always 
        returns an empty list.
        """
        try:
            if kind == LoaderKind.FABRIC:
                return self._request_fabric_versions(release_id)
            elif kind == LoaderKind.FORGE:
                return self._request_forge_versions(release_id)
            else:
                return []
        except MetadataUnavailable as error:
            self._unavailable(error, watcher)
            return []

    def fabric_installer_url(self, loader_version: str) -> str:
        """Return the URL of the Fabric installer JAR for the given loader version.
        """
        artifact = MavenArtifact("net.fabricmc", "fabric-installer", loader_version)
        return f"{self.fabric_maven_url}{artifact.file_path()}"

    def forge_installer_url(self, forge_version: str) -> str:
        """Return the URL of the Forge installer JAR for the given full Forge version.
        """
        artifact = MavenArtifact("net.minecraftforge", "forge", forge_version, classifier="installer")
        return f"{self.forge_maven_url}{artifact.file_path()}"

    def _request_json(self, what: str, url: str) -> Any:
        try:
            return http_request("GET", url, accept="application/json").json()
        except (HttpError, JSONDecodeError, UnicodeDecodeError) as error:
            raise MetadataUnavailable(what, error)

    def _request_manifest(self) -> list:
        data = self._request_json("manifest", self.manifest_url)
        versions = data.get("versions") if isinstance(data, dict) else None
        if not isinstance(versions, list):
            raise MetadataUnavailable("manifest", None)
        return versions

    def _request_release_download_url(self, release_id: str) -> Optional[str]:

        descriptor_url = None
        for version in self._request_manifest():
            if isinstance(version, dict) and version.get("id") == release_id:
                descriptor_url = version.get("url")
                break
        
        if not isinstance(descriptor_url, str):
            return None

        descriptor = self._request_json("release", descriptor_url)
        try:
            url = descriptor["downloads"]["client"]["url"]
        except (KeyError, TypeError) as error:
            raise MetadataUnavailable("release", error)
        
        if not isinstance(url, str):
            raise MetadataUnavailable("release", None)
        return url

    def _request_fabric_versions(self, release_id: str) -> List[LoaderVersion]:
        data = self._request_json("fabric", f"{self.fabric_meta_url}versions/loader/{release_id}")
        try:
            return [
                LoaderVersion(LoaderKind.FABRIC, str(obj["loader"]["version"]), frozenset((release_id,)))
                for obj in data
            ]
        except (KeyError, TypeError) as error:
            raise MetadataUnavailable("fabric", error)

    def _request_forge_versions(self, release_id: str) -> List[LoaderVersion]:
        data = self._request_json("forge", self.forge_metadata_url)
        try:
            versions = data["versions"]
            return [
                LoaderVersion(LoaderKind.FORGE, version, frozenset((release_id,)))
                for version in versions
                if isinstance(version, str) and forge_version_matches(release_id, version)
            ]
        except (KeyError, TypeError) as error:
            raise MetadataUnavailable("forge", error)

    def _unavailable(self, error: "MetadataUnavailable", watcher: Optional[Watcher]) -> None:
        if watcher is not None:
            watcher.handle(MetadataUnavailableEvent(error.what, error.origin))


class MetadataUnavailable(Exception):
    """Raised internally when a catalog can't be requested or decoded. The catalog is
    named by `what` ("manifest", "release", "fabric" or "forge") and the underlying 
    error, if any, is given in `origin`.
    """

    def __init__(self, what: str, origin: Optional[Exception]) -> None:
        self.what = what
        self.origin = origin

    def __str__(self) -> str:
        return f"{self.what}: {self.origin!r}"


class MetadataUnavailableEvent:
    """Event triggered when a catalog lookup failed and degraded to an empty result.
    """
    __slots__ = "what", "origin"
    def __init__(self, what: str, origin: Optional[Exception]) -> None:
        self.what = what
        self.origin = origin
