from pathlib import Path

import pytest

from mcmanager.standard import Installation
from mcmanager.auth import Account
from mcmanager.launch import Launcher, ProcessLauncher, NotAuthenticated, InstallationIncomplete, \
    launch, MAIN_CLASS


class RecordingLauncher(Launcher):

    def __init__(self) -> None:
        self.launched = []

    def launch(self, installation, account) -> None:
        self.launched.append((installation.id, account.username))


@pytest.fixture
def installation(tmp_path):
    install_dir = tmp_path / "versions" / "1.20.1"
    install_dir.mkdir(parents=True)
    (install_dir / "client.jar").write_bytes(b"client")
    return Installation.from_dir(install_dir)


@pytest.fixture
def account():
    return Account("Steve", "0123456789abcdef0123456789abcdef", "game-token")


def test_launch(installation, account):
    launcher = RecordingLauncher()
    launch(installation, account, launcher)
    assert launcher.launched == [("1.20.1", "Steve")]


def test_launch_not_authenticated(tmp_path):

    # Checked first, even with an incomplete installation.
    install_dir = tmp_path / "1.20.1"
    install_dir.mkdir()
    launcher = RecordingLauncher()

    with pytest.raises(NotAuthenticated):
        launch(Installation.from_dir(install_dir), None, launcher)

    assert launcher.launched == []


def test_launch_incomplete(tmp_path, account):

    install_dir = tmp_path / "1.20.1_fabric"
    install_dir.mkdir()
    launcher = RecordingLauncher()

    with pytest.raises(InstallationIncomplete) as exc_info:
        launch(Installation.from_dir(install_dir), account, launcher)

    assert exc_info.value.installation_id == "1.20.1_fabric"
    assert launcher.launched == []


def test_process_launcher_args(installation, account):

    launcher = ProcessLauncher(Path("/opt/java/bin/java"), ["-Xmx4G"])
    args = launcher.build_args(installation, account)

    assert args[0] == str(Path("/opt/java/bin/java"))
    assert args[1] == "-Xmx4G"
    assert "-Dminecraft.username=Steve" in args
    assert "-Dminecraft.accessToken=game-token" in args
    assert MAIN_CLASS in args
    assert args[args.index("-cp") + 1] == str(installation.client_jar_file().absolute())
    assert args[args.index("--version") + 1] == "1.20.1"


def test_process_launcher_default_args(installation, account):
    args = ProcessLauncher().build_args(installation, account)
    assert "-Xmx2G" in args


def test_process_launcher_installer_only(tmp_path, account):

    # Loader installs only have their installer, the game can't be started directly.
    install_dir = tmp_path / "1.20.1_fabric"
    install_dir.mkdir()
    (install_dir / "installer.jar").write_bytes(b"installer")

    installation = Installation.from_dir(install_dir)
    assert installation.is_complete

    with pytest.raises(InstallationIncomplete):
        launch(installation, account, ProcessLauncher())
