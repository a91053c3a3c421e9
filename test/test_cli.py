import pytest

from mcmanager.standard import LoaderKind
from mcmanager.cli import main, get_output, EXIT_OK, EXIT_FAILURE
from mcmanager.cli.parse import register_arguments
from mcmanager.cli.output import MachineOutput, HumanOutput
from mcmanager.cli.lang import get as _, lang


def test_parse_install():

    ns = register_arguments().parse_args(["--main-dir", "/tmp/mc", "install", "1.20.1", "--loader", "fabric"])
    assert ns.subcommand == "install"
    assert ns.release == "1.20.1"
    assert ns.loader is LoaderKind.FABRIC

    ns = register_arguments().parse_args(["install", "1.20.1"])
    assert ns.loader is None

    with pytest.raises(SystemExit):
        register_arguments().parse_args(["install", "1.20.1", "--loader", "rift"])


def test_parse_start():

    ns = register_arguments().parse_args(["start", "-l", "steve@example.com", "--dry", "1.20.1"])
    assert ns.login == "steve@example.com"
    assert ns.dry
    assert ns.installation == "1.20.1"

    # Login is required.
    with pytest.raises(SystemExit):
        register_arguments().parse_args(["start", "1.20.1"])


def test_lang():
    assert _("install.done", id="1.20.1") == "Installed 1.20.1"
    assert _("unknown.key") == "unknown.key"
    assert "auth.error.5.http.404" in lang


def test_machine_output(capsys):

    out = get_output("machine")
    assert isinstance(out, MachineOutput)

    out.task("OK", "install.done", id="1.20.1")
    table = out.table()
    table.add("a,b", "c\nd")
    table.separator()
    table.print()

    assert capsys.readouterr().out.splitlines() == [
        "task:OK,install.done,id=1.20.1",
        "table:2",
        "row:a\\,b,c\\nd",
        "sep:",
    ]


def test_human_table(capsys):

    out = HumanOutput(False)
    table = out.table()
    table.add("Identifier", "Mods")
    table.separator()
    table.add("1.20.1", 3)
    table.print()

    lines = capsys.readouterr().out.splitlines()
    assert lines[1] == "│ Identifier │ Mods │"
    assert lines[3] == "│ 1.20.1     │ 3    │"


def test_main_list(tmp_path, capsys):

    install_dir = tmp_path / "versions" / "1.20.1_fabric"
    (install_dir / "mods").mkdir(parents=True)
    (install_dir / "installer.jar").write_bytes(b"installer")
    (install_dir / "mods" / "sodium.jar").write_bytes(b"mod")

    with pytest.raises(SystemExit) as exc_info:
        main(["--main-dir", str(tmp_path), "--output", "machine", "list"])

    assert exc_info.value.code == EXIT_OK
    lines = capsys.readouterr().out.splitlines()
    assert "row:1.20.1_fabric,1.20.1,Fabric,1,complete" in lines


def test_main_install_unsupported(tmp_path, capsys):

    with pytest.raises(SystemExit) as exc_info:
        main(["--main-dir", str(tmp_path), "--output", "machine", "install", "1.20.1", "--loader", "quilt"])

    assert exc_info.value.code == EXIT_FAILURE
    assert "task:FAILED,install.unsupported_loader,loader=Quilt" in capsys.readouterr().out.splitlines()
    assert not (tmp_path / "versions" / "1.20.1_quilt").exists()


def test_main_search_loader_requires_release(tmp_path, capsys):

    with pytest.raises(SystemExit) as exc_info:
        main(["--main-dir", str(tmp_path), "--output", "machine", "search", "-k", "loader"])

    assert exc_info.value.code == EXIT_FAILURE


def test_human_halt_color(capsys, monkeypatch):

    monkeypatch.setenv("COLUMNS", "80")
    out = HumanOutput(True)
    out.task("HALT", "cancelled")
    out.finish()

    text = capsys.readouterr().out
    assert "\033[33m HALT \033[0m" in text
    assert "Cancelled." in text


def refuse_login(ns, email, anonymise=False):
    raise AssertionError("login must not be prompted")


@pytest.mark.parametrize("files, expected", [
    ([], "task:FAILED,start.incomplete,id=1.20.1_fabric"),
    (["installer.jar"], "task:FAILED,start.no_client,id=1.20.1_fabric"),
])
def test_main_start_not_startable(tmp_path, capsys, monkeypatch, files, expected):

    install_dir = tmp_path / "versions" / "1.20.1_fabric"
    install_dir.mkdir(parents=True)
    for name in files:
        (install_dir / name).write_bytes(b"jar")

    monkeypatch.setattr("mcmanager.cli.prompt_microsoft_authenticate", refuse_login)

    with pytest.raises(SystemExit) as exc_info:
        main(["--main-dir", str(tmp_path), "--output", "machine", "start", "-l", "steve@example.com", "1.20.1_fabric"])

    assert exc_info.value.code == EXIT_FAILURE
    assert expected in capsys.readouterr().out.splitlines()


def test_main_login_cancelled(tmp_path, capsys, monkeypatch):

    import webbrowser
    from http.server import HTTPServer

    def interrupt(self):
        raise KeyboardInterrupt

    monkeypatch.setattr("mcmanager.cli.MICROSOFT_SERVER_PORT", 0)
    monkeypatch.setattr(webbrowser, "open", lambda url: True)
    monkeypatch.setattr(HTTPServer, "handle_request", interrupt)

    with pytest.raises(SystemExit) as exc_info:
        main(["--main-dir", str(tmp_path), "--output", "machine", "login", "steve@example.com"])

    assert exc_info.value.code == EXIT_FAILURE
    assert "task:HALT,cancelled" in capsys.readouterr().out.splitlines()
