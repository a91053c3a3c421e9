from argparse import ArgumentParser, HelpFormatter
from pathlib import Path

from ..standard import Context, LoaderKind
from ..install import InstallationOrchestrator

from .output import Output
from .lang import get as _

from typing import Optional, Type, List


# The following classes are only used for type checking and represent a typed namespace
# as produced by the arguments registered to the argument parser.

class RootNs:
    main_dir: Optional[Path]
    timeout: Optional[float]
    out_kind: str
    verbose: int
    # Initialized by main function after argument parsing.
    out: Output
    context: Context
    orchestrator: InstallationOrchestrator

class SearchNs(RootNs):
    kind: str
    input: Optional[str]

class InstallNs(RootNs):
    loader: Optional[LoaderKind]
    release: str

class ImportNs(RootNs):
    archive: Path

class LoginNs(RootNs):
    email: str

class StartNs(RootNs):
    dry: bool
    jvm: Optional[str]
    jvm_args: Optional[str]
    login: str
    installation: str


def register_arguments() -> ArgumentParser:
    parser = ArgumentParser(allow_abbrev=False, prog="mcmanager", description=_("args"))
    parser.add_argument("--main-dir", help=_("args.main_dir"), type=Path)
    parser.add_argument("--timeout", help=_("args.timeout"), type=float)
    parser.add_argument("--output", help=_("args.output"), dest="out_kind", choices=get_outputs(), default="human-color")
    parser.add_argument("-v", dest="verbose", help=_("args.verbose"), action="count", default=0)
    register_subcommands(parser.add_subparsers(title="subcommands", dest="subcommand"))
    return parser


def register_subcommands(subparsers):
    register_search_arguments(subparsers.add_parser("search", help=_("args.search")))
    subparsers.add_parser("list", help=_("args.list"))
    register_install_arguments(subparsers.add_parser("install", help=_("args.install")))
    register_import_arguments(subparsers.add_parser("import", help=_("args.import")))
    register_login_arguments(subparsers.add_parser("login", help=_("args.login")))
    register_start_arguments(subparsers.add_parser("start", help=_("args.start")))
    register_show_arguments(subparsers.add_parser("show", help=_("args.show")))


def register_search_arguments(parser: ArgumentParser):
    parser.add_argument("-k", "--kind", help=_("args.search.kind"), default="mojang", choices=get_search_kinds())
    parser.add_argument("input", nargs="?", help=_("args.search.input"))


def register_install_arguments(parser: ArgumentParser):
    parser.add_argument("-l", "--loader", help=_("args.install.loader"), type=LoaderKind, choices=list(LoaderKind), metavar="{" + ",".join(get_loader_kinds()) + "}")
    parser.add_argument("release")


def register_import_arguments(parser: ArgumentParser):
    parser.add_argument("archive", type=Path)


def register_login_arguments(parser: ArgumentParser):
    parser.add_argument("email")


def register_start_arguments(parser: ArgumentParser):
    parser.formatter_class = new_help_formatter_class(40)
    parser.add_argument("--dry", help=_("args.start.dry"), action="store_true")
    parser.add_argument("--jvm", help=_("args.start.jvm"))
    parser.add_argument("--jvm-args", help=_("args.start.jvm_args"), metavar="ARGS")
    parser.add_argument("-l", "--login", help=_("args.start.login"), required=True)
    parser.add_argument("installation")


def register_show_arguments(parser: ArgumentParser):
    subparsers = parser.add_subparsers(title="subcommands", dest="show_subcommand")
    subparsers.required = True
    subparsers.add_parser("about", help=_("args.show.about"))
    subparsers.add_parser("lang", help=_("args.show.lang"))


def new_help_formatter_class(max_help_position: int) -> Type[HelpFormatter]:

    class CustomHelpFormatter(HelpFormatter):
        def __init__(self, prog):
            super().__init__(prog, max_help_position=max_help_position)

    return CustomHelpFormatter


def get_outputs() -> List[str]:
    return ["human-color", "human", "machine"]


def get_search_kinds() -> List[str]:
    return ["mojang", "loader"]


def get_loader_kinds() -> List[str]:
    return [kind.value for kind in LoaderKind]
