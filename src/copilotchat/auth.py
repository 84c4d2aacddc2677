"""GitHub OAuth token discovery and Copilot token exchange.

The long-lived GitHub OAuth token is looked up in this order:
  1. ``GITHUB_TOKEN``, only inside GitHub Codespaces (``CODESPACES`` set)
  2. ``github-copilot/hosts.json`` in the user config directory
  3. ``github-copilot/apps.json`` in the user config directory

The files are the ones written by the official Copilot editor plugins.
The OAuth token is then exchanged for a short-lived Copilot API token,
which is reused until it expires.

Usage::

    auth = CopilotAuth(transport, settings)
    headers = auth.headers()   # ready for api.githubcopilot.com
"""

from __future__ import annotations

import json
import logging
import os
import secrets
import sys
import time
import uuid
from pathlib import Path
from typing import Any

from copilotchat.config import Settings
from copilotchat.errors import AuthenticationMissing, AuthenticationRejected
from copilotchat.transport import Transport

log = logging.getLogger(__name__)

TOKEN_URL = "https://api.github.com/copilot_internal/v2/token"

_TOKEN_FILES = ("hosts.json", "apps.json")


# ── discovery ────────────────────────────────────────────────────────

def find_config_path() -> Path | None:
    """Return the directory the Copilot plugins keep their config in."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg and Path(xdg).is_dir():
        return Path(xdg)

    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA")
        config = Path(local) if local else Path.home() / "AppData" / "Local"
        if not config.is_dir():
            config = Path.home() / "AppData" / "Local"
    else:
        config = Path.home() / ".config"

    if config.is_dir():
        return config
    return None


def _token_from_file(path: Path) -> str | None:
    try:
        userdata = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError):
        log.warning("Could not read %s", path)
        return None
    if not isinstance(userdata, dict):
        return None
    for key, value in userdata.items():
        if "github.com" in key and isinstance(value, dict):
            return value.get("oauth_token")
    return None


def get_cached_token(config_path: Path | None = None) -> str | None:
    """Find a GitHub OAuth token usable for the Copilot token exchange."""
    token = os.environ.get("GITHUB_TOKEN")
    if token and os.environ.get("CODESPACES"):
        return token

    config_path = config_path or find_config_path()
    if config_path is None:
        return None

    for name in _TOKEN_FILES:
        path = config_path / "github-copilot" / name
        if path.is_file():
            found = _token_from_file(path)
            if found:
                return found
    return None


def _machine_id() -> str:
    return secrets.token_hex(33)[:65]


# ── exchange ─────────────────────────────────────────────────────────

class CopilotAuth:
    """Holds the OAuth token and the cached Copilot API token."""

    def __init__(
        self,
        transport: Transport,
        settings: Settings,
        github_token: str | None = None,
    ) -> None:
        self.transport = transport
        self.settings = settings
        self.github_token = github_token or get_cached_token()
        self.machine_id = _machine_id()
        self.session_id: str | None = None
        self._token: dict[str, Any] | None = None

    def version_headers(self) -> dict[str, str]:
        return {
            "editor-version": self.settings.editor_version,
            "editor-plugin-version": self.settings.plugin_version,
            "user-agent": self.settings.plugin_version,
        }

    def _expired(self) -> bool:
        if self._token is None:
            return True
        expires_at = self._token.get("expires_at")
        return bool(expires_at) and expires_at <= int(time.time())

    def _exchange(self) -> None:
        session_id = f"{uuid.uuid4()}{int(time.time() * 1000)}"
        headers = {
            "authorization": f"token {self.github_token}",
            "accept": "application/json",
            **self.version_headers(),
        }
        response = self.transport.get(TOKEN_URL, headers)
        if response.status != 200:
            raise AuthenticationRejected(response.status)

        try:
            token = response.json()
            if not isinstance(token, dict) or not isinstance(token["token"], str):
                raise TypeError("token is not a string")
        except (ValueError, KeyError, TypeError) as exc:
            log.warning("Malformed token response: %s", response.body[:200])
            raise AuthenticationRejected(response.status) from exc

        self.session_id = session_id
        self._token = token
        log.debug("Copilot token acquired, expires at %s", self._token.get("expires_at"))

    def headers(self) -> dict[str, str]:
        """Return request headers, exchanging the OAuth token if needed."""
        if not self.github_token:
            raise AuthenticationMissing(
                "No GitHub token found, sign in with an official Copilot plugin "
                "(copilot.vim / copilot.lua / VS Code) first"
            )

        if self._expired():
            self._exchange()

        return {
            "authorization": f"Bearer {self._token['token']}",
            "x-request-id": str(uuid.uuid4()),
            "vscode-sessionid": self.session_id or "",
            "vscode-machineid": self.machine_id,
            "copilot-integration-id": "vscode-chat",
            "openai-organization": "github-copilot",
            "openai-intent": "conversation-panel",
            "content-type": "application/json",
            **self.version_headers(),
        }
