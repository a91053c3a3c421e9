"""CLI languages management.
"""

from mcmanager.install import ImportMalformed
from mcmanager.auth import CredentialStageFailed, \
    STAGE_OAUTH, STAGE_XBL, STAGE_XSTS, STAGE_GAME, STAGE_PROFILE

from typing import Optional


def get_raw(key: str, kwargs: Optional[dict]) -> str:
    """Get a message translated using the given keyword formatting arguments.

    :param key: The key of the message to translate.
    :param kwargs: The keyword formatting dictionary.
    :return: Translated message, or the key itself if not found.
    """
    try:
        return lang[key].format_map(kwargs or {})
    except KeyError:
        return key


def get(key: str, **kwargs) -> str:
    """Get a message translated using the given keyword formatting arguments.
    """
    return get_raw(key, kwargs)


lang = {
    # Args root
    "args": "A small Minecraft manager, installing versions with optional mod loader "
        "installers, importing modpacks and logging in with Microsoft.",
    "args.main_dir": "Set the main directory where versions are installed.",
    "args.timeout": "Set a global timeout (in decimal seconds) for network requests, "
        "by default there is no timeout.",
    "args.output": "Set the output format of the launcher, defaults to human-color.",
    "args.verbose": "Enable verbose output.",
    # Args search
    "args.search": "Search for available releases, or for loader versions of a release.",
    "args.search.kind": "Select the kind of search to operate.",
    "args.search.input": "Filter for releases, or release id for loader search.",
    # Args list
    "args.list": "List installed versions.",
    # Args install
    "args.install": "Install a release, optionally with a mod loader installer.",
    "args.install.loader": "The mod loader to install.",
    # Args import
    "args.import": "Import a modpack archive.",
    # Args login
    "args.login": "Login into a Microsoft account, the session is not saved.",
    # Args start
    "args.start": "Login and start an installed version.",
    "args.start.dry": "Simulate game starting.",
    "args.start.jvm": "Set a custom JVM executable path.",
    "args.start.jvm_args": "Change the default JVM arguments.",
    "args.start.login": "Email of the Microsoft account to login with.",
    # Args show
    "args.show": "Show and debug various data.",
    "args.show.about": "Display authors, version and license.",
    "args.show.lang": "Debug the language mappings used for messages translation.",
    # Common
    "echo": "{echo}",
    "cancelled": "Cancelled.",
    "keyboard_interrupt": "Keyboard interrupted.",
    # Common errors
    "error.os": "An unexpected OS error happened:",
    "error.socket": "This operation requires an operational network, but a socket error happened:",
    "error.cert": "Certificate verification failed:",
    # Metadata
    "metadata.unavailable": "Metadata {what} unavailable: {origin}",
    # Command search
    "search.name": "Identifier",
    "search.flags": "Flags",
    "search.flags.installed": "installed",
    "search.loader": "Loader",
    "search.loader_version": "Loader version",
    "search.loader.missing_release": "A release id is required to search loader versions.",
    "search.empty": "Nothing found, metadata may be unavailable.",
    # Command list
    "list.name": "Identifier",
    "list.release": "Release",
    "list.loader": "Loader",
    "list.mods": "Mods",
    "list.status": "Status",
    "list.status.complete": "complete",
    "list.status.incomplete": "incomplete",
    # Command install
    "install.start": "Installing {id}...",
    "install.plan": "Resolved {name} at {url}",
    "install.fetching": "Downloading {name}...",
    "install.fetched": "Downloaded {name} ({size})",
    "install.done": "Installed {id}",
    "install.unsupported_loader": "The loader {loader} is not supported yet.",
    "install.not_found": "Nothing to install for {id}, the release or a compatible loader was not found.",
    "install.fetch_failed": "Failed to download {url}: {error}",
    "install.loader_note": "Run {path} to finish the loader setup.",
    # Command import
    "import.start": "Importing {archive}...",
    "import.done": "Imported {id}",
    f"import.error.{ImportMalformed.INVALID_ARCHIVE}": "Invalid archive: {detail}",
    f"import.error.{ImportMalformed.MANIFEST_NOT_FOUND}": "Missing {detail} in archive.",
    f"import.error.{ImportMalformed.INVALID_MANIFEST}": "Invalid manifest: {detail}",
    # Command start
    "start.not_found": "Installation {id} not found.",
    "start.incomplete": "Installation {id} is incomplete, reinstall it.",
    "start.no_client": "Installation {id} has no client JAR, it can't be started directly.",
    "start.not_authenticated": "Please login first.",
    "start.dry": "Dry run, the game would be started with: {args}",
    # Auth
    "auth.microsoft": "Authenticating {email} with Microsoft...",
    "auth.microsoft.no_browser": "Failed to open Microsoft login page, no web browser found on your system.",
    "auth.microsoft.opening_browser_and_listening": "Opened authentication page in browser...",
    "auth.microsoft.close_tab_and_return": "Close this tab and return to the launcher.",
    "auth.microsoft.failed_to_authenticate": "Failed to authenticate.",
    "auth.microsoft.incoherent_data": "Incoherent authentication data, please retry.",
    f"auth.stage.{STAGE_OAUTH}": "Redeeming authorization code...",
    f"auth.stage.{STAGE_XBL}": "Authenticating with Xbox Live...",
    f"auth.stage.{STAGE_XSTS}": "Authorizing with Xbox Live XSTS...",
    f"auth.stage.{STAGE_GAME}": "Logging in to Minecraft services...",
    f"auth.stage.{STAGE_PROFILE}": "Requesting Minecraft profile...",
    f"auth.error.{STAGE_OAUTH}": "Microsoft refused the authorization code ({detail}).",
    f"auth.error.{STAGE_XBL}": "Xbox Live authentication failed ({detail}).",
    f"auth.error.{STAGE_XSTS}": "Xbox Live authorization failed, the account may have no Xbox profile ({detail}).",
    f"auth.error.{STAGE_GAME}": "Minecraft services login failed ({detail}).",
    f"auth.error.{STAGE_PROFILE}": "Minecraft profile not available ({detail}).",
    f"auth.error.{STAGE_PROFILE}.{CredentialStageFailed.HTTP}.404": "This account does not own Minecraft.",
    "auth.logged_in": "Logged in as {username} ({uuid})",
}
