"""Main entry point of the command line interface.
"""

from subprocess import Popen
from pathlib import Path
import socket
import sys

from .parse import register_arguments, RootNs, SearchNs, InstallNs, ImportNs, LoginNs, StartNs
from .util import format_number, anonymize_email
from .output import Output, HumanOutput, MachineOutput, OutputTable
from .lang import get as _, lang

from ..standard import Context
from ..task import SimpleWatcher, run_operation
from ..metadata import MetadataUnavailableEvent
from ..download import ArtifactFetchFailed, ArtifactFetchingEvent, ArtifactFetchedEvent
from ..install import InstallationOrchestrator, UnsupportedLoader, ReleaseNotFound, \
    ImportMalformed, InstallStartEvent, PlanResolvedEvent, LoaderLookupFailedEvent, \
    ImportStartEvent, ImportedEvent
from ..auth import Account, CredentialChain, CredentialStageFailed, CredentialStageEvent, \
    get_authentication_url, get_logout_url, check_token_id
from ..launch import ProcessLauncher, NotAuthenticated, InstallationIncomplete, launch

from typing import cast, Optional, List, Union, Dict, Callable, Any, Tuple


EXIT_OK = 0
EXIT_FAILURE = 1

MICROSOFT_AZURE_APP_ID = "708e91b5-99f8-4a1d-80ec-e746cbb24771"
MICROSOFT_SERVER_PORT = 12782

CommandHandler = Callable[[Any], Any]
CommandTree = Dict[str, Union[CommandHandler, "CommandTree"]]


def main(args: Optional[List[str]] = None):
    """Main entry point of the CLI. This function parses the input arguments and try to
    find a command handler to dispatch to. These command handlers are specified by the
    `get_command_handlers` function.
    """

    parser = register_arguments()
    ns: RootNs = cast(RootNs, parser.parse_args(args or sys.argv[1:]))

    # Setup common objects in the namespace.
    ns.out = get_output(ns.out_kind)
    ns.context = Context(ns.main_dir)
    ns.orchestrator = InstallationOrchestrator(ns.context)
    socket.setdefaulttimeout(ns.timeout)

    # Find the command handler and run it.
    command_handlers = get_command_handlers()
    command_attr = "subcommand"
    while True:
        command = getattr(ns, command_attr)
        handler = command_handlers.get(command)
        if handler is None:
            parser.print_help()
            sys.exit(EXIT_FAILURE)
        elif callable(handler):
            cmd(handler, ns)
        elif isinstance(handler, dict):
            command_attr = f"{command}_{command_attr}"
            command_handlers = handler
            continue
        sys.exit(EXIT_OK)


def get_output(kind: str) -> Output:
    """Internal function that construct the output depending on its kind.
    The kind is constrained by choices set to the arguments parser.
    """

    if kind == "human-color":
        return HumanOutput(True)
    elif kind == "human":
        return HumanOutput(False)
    elif kind == "machine":
        return MachineOutput()
    else:
        raise ValueError()


def get_command_handlers() -> CommandTree:
    """Internal function returns the tree of command handlers for each subcommand
    of the CLI argument parser.
    """

    return {
        "search": cmd_search,
        "list": cmd_list,
        "install": cmd_install,
        "import": cmd_import,
        "login": cmd_login,
        "start": cmd_start,
        "show": {
            "about": cmd_show_about,
            "lang": cmd_show_lang,
        },
    }


def cmd(handler: CommandHandler, ns: RootNs):
    """Generic command handler that launch the given handler with the given namespace,
    it handles error in order to pretty print them.
    """

    try:
        handler(ns)
        sys.exit(EXIT_OK)

    except ValueError as error:
        ns.out.task("FAILED", None)
        ns.out.finish()
        for arg in error.args:
            ns.out.task(None, "echo", echo=arg)
            ns.out.finish()

    except KeyboardInterrupt:
        ns.out.finish()
        ns.out.task("HALT", "keyboard_interrupt")
        ns.out.finish()

    except OSError as error:

        from urllib.error import URLError
        from ssl import SSLCertVerificationError

        key = "error.os"
        if isinstance(error, URLError) and isinstance(error.reason, SSLCertVerificationError):
            key = "error.cert"
        elif isinstance(error, (URLError, socket.gaierror, socket.timeout)):
            key = "error.socket"

        ns.out.task("FAILED", None)
        ns.out.finish()
        ns.out.task(None, key)
        ns.out.finish()

        import traceback
        traceback.print_exc()

    sys.exit(EXIT_FAILURE)


def cmd_search(ns: SearchNs):
    table = ns.out.table()
    cmd_search_handler(ns, ns.kind, table)
    table.print()
    sys.exit(EXIT_OK)

def cmd_search_handler(ns: SearchNs, kind: str, table: OutputTable):
    """Internal function that handles searching a particular kind of search.
    The value of "kind" is constrained by choices in the argument parser.
    """

    search = ns.input
    watcher = CliWatcher(ns)

    if kind == "mojang":

        table.add(_("search.name"), _("search.flags"))
        table.separator()

        installed = {installation.release_id for installation in ns.orchestrator.refresh()}
        releases = ns.orchestrator.fetch_available_releases(watcher=watcher)

        for release_id in releases:
            if search is None or search in release_id:
                table.add(release_id, _("search.flags.installed") if release_id in installed else "")

        found = len(releases)

    elif kind == "loader":

        if search is None:
            ns.out.task("FAILED", "search.loader.missing_release")
            ns.out.finish()
            sys.exit(EXIT_FAILURE)

        table.add(_("search.loader"), _("search.loader_version"), _("search.name"))
        table.separator()

        versions = ns.orchestrator.fetch_loader_versions(search, watcher=watcher)
        for version in versions:
            table.add(version.kind.display_name, version.version, version.id)

        found = len(versions)

    else:
        raise ValueError()

    if not found:
        ns.out.task("INFO", "search.empty")
        ns.out.finish()


def cmd_list(ns: RootNs):

    table = ns.out.table()
    table.add(_("list.name"), _("list.release"), _("list.loader"), _("list.mods"), _("list.status"))
    table.separator()

    for installation in ns.orchestrator.refresh():
        loader = installation.loader_kind
        table.add(
            installation.id,
            installation.release_id,
            "" if loader is None else loader.display_name,
            len(installation.mods),
            _("list.status.complete" if installation.is_complete else "list.status.incomplete"))

    table.print()


def cmd_install(ns: InstallNs):

    try:
        installation = ns.orchestrator.install(ns.release, ns.loader, watcher=CliWatcher(ns))
    except UnsupportedLoader as error:
        ns.out.task("FAILED", "install.unsupported_loader", loader=error.loader.display_name)
        ns.out.finish()
        sys.exit(EXIT_FAILURE)
    except ReleaseNotFound as error:
        ns.out.task("FAILED", "install.not_found", id=error.installation_id)
        ns.out.finish()
        sys.exit(EXIT_FAILURE)
    except ArtifactFetchFailed as error:
        ns.out.task("FAILED", "install.fetch_failed", url=error.url, error=str(error.origin))
        ns.out.finish()
        sys.exit(EXIT_FAILURE)

    ns.out.task("OK", "install.done", id=installation.id)
    ns.out.finish()

    if installation.loader_kind is not None:
        ns.out.task("INFO", "install.loader_note", path=installation.installer_jar_file())
        ns.out.finish()


def cmd_import(ns: ImportNs):

    try:
        installation = ns.orchestrator.import_modpack(ns.archive, watcher=CliWatcher(ns))
    except ImportMalformed as error:
        ns.out.task("FAILED", f"import.error.{error.code}", detail=error.detail)
        ns.out.finish()
        sys.exit(EXIT_FAILURE)

    ns.out.task("OK", "import.done", id=installation.id)
    ns.out.finish()


def cmd_login(ns: LoginNs):
    account = prompt_microsoft_authenticate(ns, ns.email)
    sys.exit(EXIT_FAILURE if account is None else EXIT_OK)


def cmd_start(ns: StartNs):

    ns.orchestrator.refresh()
    installation = ns.orchestrator.get_installation(ns.installation)
    if installation is None:
        ns.out.task("FAILED", "start.not_found", id=ns.installation)
        ns.out.finish()
        sys.exit(EXIT_FAILURE)

    # Checked before the browser login.
    if not installation.is_complete:
        ns.out.task("FAILED", "start.incomplete", id=installation.id)
        ns.out.finish()
        sys.exit(EXIT_FAILURE)
    if not installation.client_jar_file().is_file():
        ns.out.task("FAILED", "start.no_client", id=installation.id)
        ns.out.finish()
        sys.exit(EXIT_FAILURE)

    account = prompt_microsoft_authenticate(ns, ns.login, anonymise=True)
    if account is None:
        sys.exit(EXIT_FAILURE)

    launcher = CliLauncher(ns,
        None if ns.jvm is None else Path(ns.jvm),
        None if ns.jvm_args is None else ns.jvm_args.split())

    try:
        launch(installation, account, launcher)
    except NotAuthenticated:
        ns.out.task("FAILED", "start.not_authenticated")
        ns.out.finish()
        sys.exit(EXIT_FAILURE)
    except InstallationIncomplete as error:
        ns.out.task("FAILED", "start.incomplete", id=error.installation_id)
        ns.out.finish()
        sys.exit(EXIT_FAILURE)


def cmd_show_about(ns: RootNs):

    from .. import LAUNCHER_VERSION, LAUNCHER_AUTHORS, LAUNCHER_URL, LAUNCHER_COPYRIGHT

    print(f"Version: {LAUNCHER_VERSION}")
    print(f"Authors: {', '.join(LAUNCHER_AUTHORS)}")
    print(f"Website: {LAUNCHER_URL}")
    print(f"License: {LAUNCHER_COPYRIGHT}")
    print( "         This program comes with ABSOLUTELY NO WARRANTY. This is free software,")
    print( "         and you are welcome to redistribute it under certain conditions.")
    print( "         See <https://www.gnu.org/licenses/gpl-3.0.html>.")


def cmd_show_lang(ns: RootNs):

    table = ns.out.table()

    # Intentionally not i18n for now because used for debug purpose.
    table.add("Key", "Message")
    table.separator()

    for key, msg in lang.items():
        table.add(key, msg)

    table.print()


def prompt_microsoft_authenticate(ns: RootNs, email: str, anonymise: bool = False) -> Optional[Account]:
    """Prompt the user to login with the given email in a web browser, and then run the
    credential chain with the received authorization code. The account is returned if
    successful, None otherwise. This function handles task printing and authentication
    errors are caught internally.
    """

    from .. import LAUNCHER_NAME, LAUNCHER_VERSION
    from http.server import HTTPServer, BaseHTTPRequestHandler
    from uuid import uuid4
    import urllib.parse
    import webbrowser

    app_id = MICROSOFT_AZURE_APP_ID
    redirect_auth = f"http://localhost:{MICROSOFT_SERVER_PORT}"
    code_redirect_uri = f"{redirect_auth}/code"
    exit_redirect_uri = f"{redirect_auth}/exit"

    nonce = uuid4().hex

    ns.out.task("..", "auth.microsoft", email=anonymize_email(email) if anonymise else email)
    ns.out.finish()

    auth_url = get_authentication_url(app_id, code_redirect_uri, email, nonce)
    if not webbrowser.open(auth_url):
        ns.out.task("FAILED", "auth.microsoft.no_browser")
        ns.out.finish()
        return None

    class AuthServer(HTTPServer):

        def __init__(self):
            super().__init__(("", MICROSOFT_SERVER_PORT), RequestHandler)
            self.timeout = 0.5
            self.ms_auth_done = False
            self.ms_auth_id_token: Optional[str] = None
            self.ms_auth_code: Optional[str] = None

    class RequestHandler(BaseHTTPRequestHandler):

        server_version = f"{LAUNCHER_NAME}/{LAUNCHER_VERSION}"

        def __init__(self, request, client_address: Tuple[str, int], auth_server: AuthServer) -> None:
            super().__init__(request, client_address, auth_server)

        def log_message(self, _format: str, *args: Any):
            return

        def send_auth_response(self, msg: str):
            self.end_headers()
            done = cast(AuthServer, self.server).ms_auth_done
            self.wfile.write("{}\n\n{}".format(msg, _("auth.microsoft.close_tab_and_return") if done else "").encode())
            self.wfile.flush()

        def do_POST(self):
            if self.path.startswith("/code") and self.headers.get_content_type() == "application/x-www-form-urlencoded":
                content_length = int(self.headers["Content-Length"])
                qs = urllib.parse.parse_qs(self.rfile.read(content_length).decode())
                auth_server = cast(AuthServer, self.server)
                if "code" in qs and "id_token" in qs:
                    self.send_response(307)
                    # Logout directly after authorization, this only clears the browser
                    # session so another account can be used the next time.
                    self.send_header("Location", get_logout_url(app_id, exit_redirect_uri))
                    auth_server.ms_auth_id_token = qs["id_token"][0]
                    auth_server.ms_auth_code = qs["code"][0]
                    self.send_auth_response("Redirecting...")
                elif "error" in qs:
                    self.send_response(400)
                    auth_server.ms_auth_done = True
                    self.send_auth_response("Error: {} ({}).".format(qs.get("error_description", [""])[0], qs["error"][0]))
                else:
                    self.send_response(404)
                    self.send_auth_response("Missing parameters.")
            else:
                self.send_response(404)
                self.send_auth_response("Unexpected page.")

        def do_GET(self):
            auth_server = cast(AuthServer, self.server)
            if self.path.startswith("/exit"):
                self.send_response(200)
                auth_server.ms_auth_done = True
                self.send_auth_response("Logged in.")
            else:
                self.send_response(404)
                self.send_auth_response("Unexpected page.")

    ns.out.task("", "auth.microsoft.opening_browser_and_listening")

    with AuthServer() as server:
        try:
            while not server.ms_auth_done:
                server.handle_request()
        except KeyboardInterrupt:
            ns.out.task("HALT", "cancelled")
            ns.out.finish()
            return None

    if server.ms_auth_code is None or server.ms_auth_id_token is None:
        ns.out.task("FAILED", "auth.microsoft.failed_to_authenticate")
        ns.out.finish()
        return None

    if not check_token_id(server.ms_auth_id_token, email, nonce):
        ns.out.task("FAILED", "auth.microsoft.incoherent_data")
        ns.out.finish()
        return None

    code = server.ms_auth_code
    chain = CredentialChain(app_id, code_redirect_uri)

    try:
        account: Account = run_operation("auth", lambda w: chain.run(code, watcher=w), CliWatcher(ns))
    except CredentialStageFailed as error:
        key = f"auth.error.{error.stage}.{error.code}.{error.status}"
        if key not in lang:
            key = f"auth.error.{error.stage}"
        ns.out.task("FAILED", key, detail=str(error))
        ns.out.finish()
        return None

    ns.out.task("OK", "auth.logged_in", username=account.username, uuid=account.uuid)
    ns.out.finish()
    return account


class CliWatcher(SimpleWatcher):
    """Watcher printing events of installs, imports and authentication as tasks.
    """

    def __init__(self, ns: RootNs) -> None:

        def progress_task(key: str, **kwargs) -> None:
            ns.out.task("..", key, **kwargs)

        def finish_task(key: str, **kwargs) -> None:
            ns.out.task("OK", key, **kwargs)
            ns.out.finish()

        def warn_task(key: str, **kwargs) -> None:
            ns.out.task("WARN", key, **kwargs)
            ns.out.finish()

        def install_start(e: InstallStartEvent) -> None:
            installation_id = e.release_id if e.loader is None else f"{e.release_id} ({e.loader.display_name})"
            progress_task("install.start", id=installation_id)

        def plan_resolved(e: PlanResolvedEvent) -> None:
            if ns.verbose >= 1:
                ns.out.task("INFO", "install.plan", name=e.plan.artifact_name, url=e.plan.artifact_url)
                ns.out.finish()

        super().__init__({
            MetadataUnavailableEvent: lambda e: warn_task("metadata.unavailable", what=e.what, origin=str(e.origin)),
            LoaderLookupFailedEvent: lambda e: warn_task("metadata.unavailable", what=e.name, origin=str(e.error)),
            InstallStartEvent: install_start,
            PlanResolvedEvent: plan_resolved,
            ArtifactFetchingEvent: lambda e: progress_task("install.fetching", name=e.dst.name),
            ArtifactFetchedEvent: lambda e: finish_task("install.fetched", name=e.dst.name, size=f"{format_number(e.size)}o"),
            ImportStartEvent: lambda e: progress_task("import.start", archive=e.archive.name),
            ImportedEvent: lambda e: progress_task("import.done", id=e.installation_id),
            CredentialStageEvent: lambda e: progress_task(f"auth.stage.{e.stage}"),
        })


class CliLauncher(ProcessLauncher):
    """Process launcher printing the command line in verbose mode, or only printing it
    on a dry run. The access token is never printed.
    """

    def __init__(self, ns: StartNs, jvm_path: Optional[Path], jvm_args: Optional[List[str]]) -> None:
        super().__init__(jvm_path, jvm_args)
        self.ns = ns
        self.hidden: List[str] = []

    def launch(self, installation, account) -> None:
        self.hidden = [account.access_token]
        super().launch(installation, account)

    def format_args(self, args: List[str]) -> str:
        line = " ".join(args)
        for secret in self.hidden:
            line = line.replace(secret, "<hidden>")
        return line

    def process_create(self, args: List[str], work_dir: Path) -> Optional[Popen]:

        if self.ns.dry:
            self.ns.out.task("INFO", "start.dry", args=self.format_args(args))
            self.ns.out.finish()
            return None

        self.ns.out.print("\n")
        if self.ns.verbose >= 1:
            self.ns.out.print(self.format_args(args) + "\n")

        return super().process_create(args, work_dir)

    def process_wait(self, process: Optional[Popen]) -> None:
        if process is not None:
            super().process_wait(process)
