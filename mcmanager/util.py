"""Global utilities used internally. The functions can be used externally but upward
compatibility is not guaranteed unless explicitly specified.
"""

from pathlib import Path
import platform

from typing import Optional


jvm_bin_filename = "javaw.exe" if platform.system() == "Windows" else "java"


def get_default_main_dir() -> Path:
    """Internal function to get the default directory where versions are installed.
    """
    home = Path.home()
    return {
        "Windows": home.joinpath("AppData", "Roaming", ".mcmanager"),
        "Darwin": home.joinpath("Library", "Application Support", "mcmanager"),
    }.get(platform.system(), home / ".mcmanager")


class MavenArtifact:
    """Coordinates of an artifact in a maven repository, used to compute the URL of
    loader installers.
    """

    __slots__ = "group", "artifact", "version", "classifier"

    def __init__(self, group: str, artifact: str, version: str, classifier: Optional[str] = None) -> None:
        self.group = group
        self.artifact = artifact
        self.version = version
        self.classifier = classifier

    def file_path(self) -> str:
        """Path of the JAR file relative to the repository root, always with forward
        slashes so it can be appended to a URL.

        Artifact `net.fabricmc:fabric-installer:1.0.1` gives 
        `net/fabricmc/fabric-installer/1.0.1/fabric-installer-1.0.1.jar`.
        """
        classifier = "" if self.classifier is None else f"-{self.classifier}"
        file_name = f"{self.artifact}-{self.version}{classifier}.jar"
        return "/".join([*self.group.split("."), self.artifact, self.version, file_name])

    def __repr__(self) -> str:
        return f"<MavenArtifact {self.group}:{self.artifact}:{self.version}>"
