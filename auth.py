"""
Identity session against an external OAuth/OIDC provider (Amazon Cognito in
production). Authlib does the protocol work: PKCE, the authorization URL,
code exchange, refresh and bearer placement. This module sequences those
calls and keeps the session state the UI gates on.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional, Tuple

import httpx
from authlib.common.errors import AuthlibBaseError
from authlib.common.security import generate_token
from authlib.common.urls import add_params_to_uri
from authlib.integrations.httpx_client import OAuth2Client

from config import OidcSettings
from logging_setup import get_logger

logger = get_logger("finance_tracker.auth")

LOADING = "loading"
UNAUTHENTICATED = "unauthenticated"
AUTHENTICATED = "authenticated"
ERROR = "error"

# Seconds before expiry at which a token already counts as expired
EXPIRY_LEEWAY = 60


class AuthError(Exception):
    """The provider could not be reached or refused the request."""


def make_oauth_client(settings: OidcSettings) -> OAuth2Client:
    return OAuth2Client(
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        scope=settings.scope,
        redirect_uri=settings.redirect_uri,
        code_challenge_method="S256",
        # Public clients authenticate with PKCE alone
        token_endpoint_auth_method=None if settings.client_secret else "none",
    )


class PendingSignIns:
    """
    Holds ``state -> code_verifier`` across the provider redirect. The browser
    comes back in a fresh Streamlit session, so this lives in a process-wide
    cache rather than in session state.
    """

    def __init__(self, ttl_seconds: float = 600, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._items: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def put(self, state: str, code_verifier: str) -> None:
        with self._lock:
            self._prune()
            self._items[state] = (code_verifier, self._clock())

    def pop(self, state: str) -> Optional[str]:
        with self._lock:
            self._prune()
            item = self._items.pop(state, None)
        return item[0] if item else None

    def __len__(self) -> int:
        return len(self._items)

    def _prune(self) -> None:
        cutoff = self._clock() - self._ttl
        for key in [k for k, (_, created) in self._items.items() if created < cutoff]:
            del self._items[key]


class AuthSession:
    """
    Explicit session lifecycle: signed in by ``complete_sign_in``, refreshed by
    ``ensure_fresh`` when the token expires, cleared by ``sign_out``.
    """

    def __init__(
        self,
        settings: OidcSettings,
        client_factory: Callable[[OidcSettings], OAuth2Client] = make_oauth_client,
    ):
        self.settings = settings
        self._client_factory = client_factory
        self._oauth = client_factory(settings)
        self._metadata: Optional[dict] = None
        self._token: Optional[dict] = None
        self.profile: dict = {}
        self.status = UNAUTHENTICATED
        self.error: Optional[str] = None

    # --- Provider metadata ---

    def metadata(self) -> dict:
        if self._metadata is None:
            try:
                resp = self._oauth.request("GET", self.settings.metadata_url, withhold_token=True)
                resp.raise_for_status()
                self._metadata = resp.json()
            except (httpx.HTTPError, ValueError) as e:
                raise AuthError(f"Could not read provider metadata: {e}") from e
        return self._metadata

    def _endpoint(self, name: str) -> str:
        url = self.metadata().get(name)
        if not url:
            raise AuthError(f"Provider metadata has no {name}")
        return url

    # --- Sign in ---

    def begin_sign_in(self) -> Tuple[str, str, str]:
        """
        Returns ``(authorization_url, state, code_verifier)``. The caller keeps
        the verifier until the provider redirects back with ``state``.
        """
        code_verifier = generate_token(48)
        url, state = self._oauth.create_authorization_url(
            self._endpoint("authorization_endpoint"),
            code_verifier=code_verifier,
        )
        return url, state, code_verifier

    def complete_sign_in(self, code: str, code_verifier: str) -> bool:
        self.status = LOADING
        self.error = None
        try:
            token = self._oauth.fetch_token(
                self._endpoint("token_endpoint"),
                code=code,
                code_verifier=code_verifier,
            )
            self._token = dict(token)
            self.profile = self._fetch_profile()
        except (AuthError, AuthlibBaseError, httpx.HTTPError, ValueError) as e:
            logger.exception("Sign-in failed")
            self._token = None
            self.profile = {}
            self.fail(str(e) or e.__class__.__name__)
            return False

        self.status = AUTHENTICATED
        logger.info("Signed in as %s", self.email)
        return True

    def _fetch_profile(self) -> dict:
        resp = self._oauth.get(self._endpoint("userinfo_endpoint"))
        resp.raise_for_status()
        return resp.json()

    def fail(self, message: str) -> None:
        self.status = ERROR
        self.error = message

    # --- Session accessors ---

    @property
    def is_authenticated(self) -> bool:
        return self.status == AUTHENTICATED

    @property
    def access_token(self) -> Optional[str]:
        if not self.is_authenticated or not self._token:
            return None
        return self._token.get("access_token")

    @property
    def email(self) -> Optional[str]:
        return self.profile.get("email")

    @property
    def display_name(self) -> Optional[str]:
        return self.profile.get("name") or self.profile.get("username") or self.email

    def is_expired(self, now: Optional[float] = None) -> bool:
        if not self._token:
            return True
        expires_at = self._token.get("expires_at")
        if expires_at is None:
            return False
        now = time.time() if now is None else now
        return float(expires_at) - EXPIRY_LEEWAY < now

    def ensure_fresh(self) -> bool:
        """
        Refreshes an expired token. Without a refresh token, or when the
        provider refuses, the session is cleared and the user signs in again.
        """
        if not self.is_authenticated:
            return False
        if not self.is_expired():
            return True

        refresh_token = self._token.get("refresh_token") if self._token else None
        if not refresh_token:
            logger.info("Access token expired and no refresh token; signing out locally")
            self.clear()
            return False

        try:
            token = self._oauth.refresh_token(
                self._endpoint("token_endpoint"),
                refresh_token=refresh_token,
            )
        except (AuthError, AuthlibBaseError, httpx.HTTPError, ValueError):
            logger.exception("Token refresh failed")
            self.clear()
            return False

        refreshed = dict(token)
        refreshed.setdefault("refresh_token", refresh_token)
        self._token = refreshed
        logger.debug("Access token refreshed")
        return True

    # --- Sign out ---

    def clear(self) -> None:
        """Drops the local session without contacting the provider."""
        self._oauth.close()
        self._oauth = self._client_factory(self.settings)
        self._token = None
        self.profile = {}
        self.error = None
        self.status = UNAUTHENTICATED

    def sign_out(self) -> Optional[str]:
        """
        Clears the local session, then returns where to send the browser to
        end the provider session (``None`` when the provider has no logout).
        """
        logout_url = self.logout_url()
        self.clear()
        return logout_url

    def logout_url(self) -> Optional[str]:
        s = self.settings
        post_logout = s.post_logout_redirect_uri or s.redirect_uri
        if s.logout_url:
            return add_params_to_uri(s.logout_url, [("client_id", s.client_id), ("logout_uri", post_logout)])

        try:
            end_session = self.metadata().get("end_session_endpoint")
        except AuthError:
            logger.warning("Provider metadata unavailable; signing out locally only")
            return None
        if not end_session:
            return None
        return add_params_to_uri(
            end_session,
            [("client_id", s.client_id), ("post_logout_redirect_uri", post_logout)],
        )
