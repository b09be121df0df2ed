import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables
load_dotenv()

# Remote transactions API. Defaults to the local dev server (server.py)
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")

# Dev server storage. Default to local SQLite, override for Postgres
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///finance_tracker.db")

LOG_LEVEL = os.getenv("FINANCE_TRACKER_LOG_LEVEL", "INFO")

DEFAULT_SCOPE = "phone openid email"


class OidcSettings(BaseModel):
    authority: str
    client_id: str
    client_secret: Optional[str] = None
    redirect_uri: str = "http://localhost:8501/"
    scope: str = DEFAULT_SCOPE
    # Cognito hosted UI logout, e.g. https://<domain>.auth.<region>.amazoncognito.com/logout
    logout_url: Optional[str] = None
    post_logout_redirect_uri: Optional[str] = None

    @property
    def metadata_url(self) -> str:
        return self.authority.rstrip("/") + "/.well-known/openid-configuration"


def load_oidc_settings() -> OidcSettings:
    """
    Builds the identity provider settings from the environment.
    """
    authority = os.getenv("OIDC_AUTHORITY")
    client_id = os.getenv("OIDC_CLIENT_ID")
    if not authority or not client_id:
        raise ValueError("OIDC credentials not set in .env")

    redirect_uri = os.getenv("OIDC_REDIRECT_URI", "http://localhost:8501/")
    return OidcSettings(
        authority=authority,
        client_id=client_id,
        client_secret=os.getenv("OIDC_CLIENT_SECRET") or None,
        redirect_uri=redirect_uri,
        scope=os.getenv("OIDC_SCOPE", DEFAULT_SCOPE),
        logout_url=os.getenv("OIDC_LOGOUT_URL") or None,
        post_logout_redirect_uri=os.getenv("OIDC_POST_LOGOUT_REDIRECT_URI", redirect_uri),
    )
