"""Launching of installed versions. Starting the game is delegated to a `Launcher`, 
this module only guarantees that both the installation and the account are resolved
before delegating.
"""

from subprocess import Popen
from pathlib import Path
import time

from .standard import Installation
from .auth import Account
from .util import jvm_bin_filename

from typing import Optional, List


DEFAULT_JVM_ARGS = ["-Xmx2G"]
MAIN_CLASS = "net.minecraft.client.main.Main"


class Launcher:
    """Base class for starting an installation with an authenticated account.
    """

    def launch(self, installation: Installation, account: Account) -> None:
        raise NotImplementedError


class ProcessLauncher(Launcher):
    """Default launcher, running the client JAR of the installation in a new Java 
    process, from the installation directory. This launcher supports KeyboardInterrupt
    handling, the game is killed and waited for.
    """

    def __init__(self, jvm_path: Optional[Path] = None, jvm_args: Optional[List[str]] = None) -> None:
        self.jvm_path = jvm_path
        self.jvm_args = DEFAULT_JVM_ARGS if jvm_args is None else jvm_args

    def launch(self, installation: Installation, account: Account) -> None:

        client_jar = installation.client_jar_file()
        if not client_jar.is_file():
            raise InstallationIncomplete(installation.id)

        process = self.process_create(self.build_args(installation, account), installation.dir)
        self.process_wait(process)

    def build_args(self, installation: Installation, account: Account) -> List[str]:
        """Build the full command line of the game's process.
        """
        client_jar = installation.client_jar_file().absolute()
        return [
            str(self.jvm_path or jvm_bin_filename),
            *self.jvm_args,
            f"-Djava.library.path={installation.dir.absolute() / 'natives'}",
            f"-Dminecraft.client.jar={client_jar}",
            f"-Dminecraft.username={account.username}",
            f"-Dminecraft.uuid={account.uuid}",
            f"-Dminecraft.accessToken={account.access_token}",
            "-cp", str(client_jar),
            MAIN_CLASS,
            "--username", account.username,
            "--uuid", account.uuid,
            "--accessToken", account.access_token,
            "--version", installation.release_id,
            "--gameDir", str(installation.dir.absolute()),
        ]

    def process_create(self, args: List[str], work_dir: Path) -> Popen:
        """This function is called when the process needs to be created with the given
        arguments in the given working directory.
        """
        return Popen(args, cwd=work_dir)

    def process_wait(self, process: Popen) -> None:
        """This function is called with the running game process for waiting the end of
        the process.
        """
        try:
            while process.poll() is None:
                time.sleep(1)
        except KeyboardInterrupt:
            process.kill()
            raise
        finally:
            process.wait()


def launch(installation: Installation, account: Optional[Account], launcher: Optional[Launcher] = None) -> None:
    """Launch an installation with an account, using the default process launcher if 
    none is given.

    :raises NotAuthenticated: If there is no account, checked before anything else.
    :raises InstallationIncomplete: If the installation's artifact is missing.
    """

    if account is None:
        raise NotAuthenticated()

    if not installation.is_complete:
        raise InstallationIncomplete(installation.id)

    (launcher or ProcessLauncher()).launch(installation, account)


class NotAuthenticated(Exception):
    """Raised when launching without an authenticated account.
    """

class InstallationIncomplete(Exception):
    """Raised when launching an installation whose artifact is missing, typically 
    because its install was interrupted.
    """
    def __init__(self, installation_id: str) -> None:
        self.installation_id = installation_id

    def __str__(self) -> str:
        return repr(self.installation_id)
