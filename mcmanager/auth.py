"""Microsoft authentication for Minecraft. 

The authentication is a chain of five exchanges between Microsoft OAuth, Xbox Live and
Minecraft services. Each exchange consumes the token produced by the previous one and
produces the token needed by the next one, no exchange can be skipped or reordered:

    AuthorizationCode -> OAuthToken -> XboxLiveToken -> XstsToken -> GameAccessToken 
    -> Profile

Exchanges are tried exactly once, the first failing one stops the chain with a
`CredentialStageFailed` error telling which stage failed. The resulting `Account` is 
only kept in memory, nothing is persisted.
"""

from urllib import parse as url_parse
from json import JSONDecodeError
import base64
import json

from .http import HttpError, http_request
from .task import Watcher, OperationState

from typing import Optional, Any


MS_AUTHORIZE_URL = "https://login.live.com/oauth20_authorize.srf"
MS_LOGOUT_URL = "https://login.live.com/oauth20_logout.srf"
MS_TOKEN_URL = "https://login.live.com/oauth20_token.srf"
XBL_AUTHENTICATE_URL = "https://user.auth.xboxlive.com/user/authenticate"
XSTS_AUTHORIZE_URL = "https://xsts.auth.xboxlive.com/xsts/authorize"
MC_LOGIN_URL = "https://api.minecraftservices.com/authentication/login_with_xbox"
MC_PROFILE_URL = "https://api.minecraftservices.com/minecraft/profile"

STAGE_OAUTH = 1
STAGE_XBL = 2
STAGE_XSTS = 3
STAGE_GAME = 4
STAGE_PROFILE = 5


class AuthorizationCode:
    """The authorization code returned to the redirect URI after the user logged in,
    with the application's information needed to redeem it.
    """
    __slots__ = "code", "app_id", "redirect_uri"
    def __init__(self, code: str, app_id: str, redirect_uri: str) -> None:
        self.code = code
        self.app_id = app_id
        self.redirect_uri = redirect_uri

class OAuthToken:
    __slots__ = "access_token",
    def __init__(self, access_token: str) -> None:
        self.access_token = access_token

class XboxLiveToken:
    __slots__ = "token", "user_hash"
    def __init__(self, token: str, user_hash: str) -> None:
        self.token = token
        self.user_hash = user_hash

class XstsToken:
    """XSTS token, the user hash of the Xbox Live token is carried along because it's
    required with the XSTS token by the next exchange.
    """
    __slots__ = "token", "user_hash"
    def __init__(self, token: str, user_hash: str) -> None:
        self.token = token
        self.user_hash = user_hash

class GameAccessToken:
    __slots__ = "access_token",
    def __init__(self, access_token: str) -> None:
        self.access_token = access_token

class Profile:
    __slots__ = "uuid", "username"
    def __init__(self, uuid: str, username: str) -> None:
        self.uuid = uuid
        self.username = username


class Account:
    """An authenticated account, the result of a successful credential chain. This is
    what is given to launchers for starting the game.
    """

    __slots__ = "username", "uuid", "access_token"

    def __init__(self, username: str, uuid: str, access_token: str) -> None:
        self.username = username
        self.uuid = uuid
        self.access_token = access_token

    def __repr__(self) -> str:
        return f"<Account {self.username} {self.uuid}>"


def request_oauth_token(code: AuthorizationCode) -> OAuthToken:
    """Stage 1, redeem the authorization code against Microsoft OAuth.
    """
    res = _request(STAGE_OAUTH, MS_TOKEN_URL, {
        "client_id": code.app_id,
        "redirect_uri": code.redirect_uri,
        "code": code.code,
        "grant_type": "authorization_code",
        "scope": "xboxlive.signin"
    }, url_encoded=True)
    return OAuthToken(_require(STAGE_OAUTH, res, "access_token"))


def request_xbl_token(token: OAuthToken) -> XboxLiveToken:
    """Stage 2, authenticate to Xbox Live with the Microsoft access token.
    """
    res = _request(STAGE_XBL, XBL_AUTHENTICATE_URL, {
        "Properties": {
            "AuthMethod": "RPS",
            "SiteName": "user.auth.xboxlive.com",
            "RpsTicket": f"d={token.access_token}"
        },
        "RelyingParty": "http://auth.xboxlive.com",
        "TokenType": "JWT"
    })
    return XboxLiveToken(
        _require(STAGE_XBL, res, "Token"),
        _require(STAGE_XBL, res, "DisplayClaims", "xui", 0, "uhs"))


def request_xsts_token(token: XboxLiveToken) -> XstsToken:
    """Stage 3, authorize the Xbox Live token for Minecraft services.
    """
    res = _request(STAGE_XSTS, XSTS_AUTHORIZE_URL, {
        "Properties": {
            "SandboxId": "RETAIL",
            "UserTokens": [token.token]
        },
        "RelyingParty": "rp://api.minecraftservices.com/",
        "TokenType": "JWT"
    })
    return XstsToken(_require(STAGE_XSTS, res, "Token"), token.user_hash)


def request_game_token(token: XstsToken) -> GameAccessToken:
    """Stage 4, log in to Minecraft services with the XSTS token.
    """
    res = _request(STAGE_GAME, MC_LOGIN_URL, {
        "identityToken": f"XBL3.0 x={token.user_hash};{token.token}"
    })
    return GameAccessToken(_require(STAGE_GAME, res, "access_token"))


def request_profile(token: GameAccessToken) -> Profile:
    """Stage 5, request the Minecraft profile of the player.
    """
    try:
        res = http_request("GET", MC_PROFILE_URL, 
            headers={"Authorization": f"Bearer {token.access_token}"},
            accept="application/json").json()
    except HttpError as error:
        raise CredentialStageFailed(STAGE_PROFILE, CredentialStageFailed.HTTP, str(error.reason), error.res.status)
    except (JSONDecodeError, UnicodeDecodeError) as error:
        raise CredentialStageFailed(STAGE_PROFILE, CredentialStageFailed.DECODE, str(error))
    return Profile(
        _require(STAGE_PROFILE, res, "id"),
        _require(STAGE_PROFILE, res, "name"))


def _request(stage: int, url: str, payload: dict, *, url_encoded: bool = False) -> Any:
    """Internal function to POST a payload, failures are raised for the given stage.
    """
    data = (url_parse.urlencode(payload) if url_encoded else json.dumps(payload)).encode("ascii")
    content_type = "application/x-www-form-urlencoded" if url_encoded else "application/json"
    try:
        return http_request("POST", url, data=data, 
            content_type=content_type, 
            accept="application/json").json()
    except HttpError as error:
        raise CredentialStageFailed(stage, CredentialStageFailed.HTTP, str(error.reason), error.res.status)
    except (JSONDecodeError, UnicodeDecodeError) as error:
        raise CredentialStageFailed(stage, CredentialStageFailed.DECODE, str(error))


def _require(stage: int, data: Any, *path) -> str:
    """Internal function to get a required string field in a JSON response.
    """
    value = data
    for key in path:
        try:
            value = value[key]
        except (KeyError, IndexError, TypeError):
            value = None
            break
    if not isinstance(value, str):
        raise CredentialStageFailed(stage, CredentialStageFailed.MISSING_FIELD, "/".join(map(str, path)))
    return value


class CredentialChain:
    """Runner of the five authentication stages for a given Azure application. The 
    state of the chain is RUNNING while authenticating and becomes SUCCEEDED or FAILED
    on every exit path.
    """

    def __init__(self, app_id: str, redirect_uri: str) -> None:
        self.app_id = app_id
        self.redirect_uri = redirect_uri
        self.state = OperationState.IDLE
        self.reason: Optional[Exception] = None

    def run(self, code: str, *, watcher: Optional[Watcher] = None) -> Account:
        """Run the whole chain for an authorization code.

        :param code: The authorization code received on the redirect URI.
        :return: The authenticated account.
        :raises CredentialStageFailed: If any stage failed, telling which one.
        """

        watcher = watcher or Watcher()
        self.state = OperationState.RUNNING
        self.reason = None

        try:

            watcher.handle(CredentialStageEvent(STAGE_OAUTH))
            oauth_token = request_oauth_token(AuthorizationCode(code, self.app_id, self.redirect_uri))

            watcher.handle(CredentialStageEvent(STAGE_XBL))
            xbl_token = request_xbl_token(oauth_token)

            watcher.handle(CredentialStageEvent(STAGE_XSTS))
            xsts_token = request_xsts_token(xbl_token)

            watcher.handle(CredentialStageEvent(STAGE_GAME))
            game_token = request_game_token(xsts_token)

            watcher.handle(CredentialStageEvent(STAGE_PROFILE))
            profile = request_profile(game_token)

            self.state = OperationState.SUCCEEDED
            return Account(profile.username, profile.uuid, game_token.access_token)

        except Exception as error:
            self.reason = error
            raise
        finally:
            if self.state == OperationState.RUNNING:
                self.state = OperationState.FAILED


def get_authentication_url(app_id: str, redirect_uri: str, email: str, nonce: str) -> str:
    """Return the Microsoft login page URL, the authorization code and the id token
    are then posted to the redirect URI.
    """
    return "{}?{}".format(MS_AUTHORIZE_URL, url_parse.urlencode({
        "client_id": app_id,
        "redirect_uri": redirect_uri,
        "response_type": "code id_token",
        "scope": "xboxlive.signin offline_access openid email",
        "login_hint": email,
        "nonce": nonce,
        "response_mode": "form_post"
    }))


def get_logout_url(app_id: str, redirect_uri: str) -> str:
    return "{}?{}".format(MS_LOGOUT_URL, url_parse.urlencode({
        "client_id": app_id,
        "redirect_uri": redirect_uri
    }))


def check_token_id(token_id: str, email: str, nonce: str) -> bool:
    """Check that the id token received with the authorization code was issued for the
    expected login request.
    """
    try:
        payload = decode_jwt_payload(token_id)
        return payload["nonce"] == nonce and payload["email"].casefold() == email.casefold()
    except (ValueError, KeyError, IndexError, AttributeError):
        return False


def base64url_decode(s: str) -> bytes:
    rem = len(s) % 4
    if rem > 0:
        s += "=" * (4 - rem)
    return base64.urlsafe_b64decode(s)


def decode_jwt_payload(jwt: str) -> dict:
    return json.loads(base64url_decode(jwt.split(".")[1]))


class CredentialStageFailed(Exception):
    """Raised when a stage of the credential chain failed. The stage number (1 to 5) is
    given, with a code for the kind of failure, a detail and the HTTP status if the 
    failure is an HTTP error (0 for network errors).
    """

    HTTP = "http"
    DECODE = "decode"
    MISSING_FIELD = "missing_field"

    def __init__(self, stage: int, code: str, detail: str, status: int = 0) -> None:
        self.stage = stage
        self.code = code
        self.detail = detail
        self.status = status

    def __str__(self) -> str:
        status = f" ({self.status})" if self.status else ""
        return f"stage {self.stage}: {self.code}{status}: {self.detail}"


class CredentialStageEvent:
    """Event triggered before a stage of the credential chain is run.
    """
    __slots__ = "stage",
    def __init__(self, stage: int) -> None:
        self.stage = stage
