"""
Stalesweep Authentication Management

File Purpose: Resolve the bearer token used for directory API calls
Primary Functions/Classes: AuthManager
Inputs and Outputs (I/O): Explicit token, environment variable or interactive prompt

Token acquisition and renewal happen outside this tool; this module only
locates an existing token and builds an authenticated DirectoryClient.
"""

import logging
import os
from typing import Optional

from rich.prompt import Prompt

from .client import DirectoryClient
from .exceptions import AuthenticationError
from .models import console

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "STALESWEEP_ACCESS_TOKEN"


class AuthManager:
    """Manages the access token for the directory API."""

    def __init__(self, token: Optional[str] = None, interactive: bool = True):
        self.token: Optional[str] = token.strip() if token else None
        self.interactive = interactive

    def is_authenticated(self) -> bool:
        """Check if a token is available."""
        return bool(self.token)

    def ensure_authentication(self) -> str:
        """Return a usable token, prompting once when interactive."""
        if self.is_authenticated():
            return self.token

        env_token = os.environ.get(TOKEN_ENV_VAR, "").strip()
        if env_token:
            logger.debug("Using access token from %s", TOKEN_ENV_VAR)
            self.token = env_token
            return self.token

        if self.interactive:
            console.print("[yellow]Access token required[/]")
            entered = Prompt.ask("[bold white]Access token[/]", password=True)
            if entered and entered.strip():
                self.token = entered.strip()
                return self.token

        raise AuthenticationError(
            "No access token available",
            details=f"Pass --token or set {TOKEN_ENV_VAR}.",
        )

    def build_client(self, **client_kwargs) -> DirectoryClient:
        """Create a DirectoryClient bound to the current token."""
        return DirectoryClient(self.ensure_authentication(), **client_kwargs)
