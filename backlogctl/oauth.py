"""OAuth 2.0 authorization code flow against a Backlog space."""

from __future__ import annotations

import re
import secrets
import socket
import sys
from dataclasses import dataclass, field
from typing import Any

import requests

CONNECT_TIMEOUT = 10.0
REQUEST_TIMEOUT = 30.0
DEFAULT_OAUTH_PORT = 54321
MAX_CALLBACK_ATTEMPTS = 10

_UNRESERVED = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)
_HEX_PAIR = re.compile(r"\+?[0-9a-fA-F]+")


class OAuthError(Exception):
    """Raised when any step of the OAuth flow fails."""


@dataclass
class OAuthTokens:
    """Client credentials and tokens for OAuth 2.0 authentication."""

    client_id: str
    client_secret: str = field(repr=False)
    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)

    def __repr__(self) -> str:
        return (
            f"OAuthTokens(client_id={self.client_id!r}, client_secret='<redacted>', "
            "access_token='<redacted>', refresh_token='<redacted>')"
        )

    def to_dict(self) -> dict[str, str]:
        """Return the tokens as a plain mapping."""
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OAuthTokens:
        """Build tokens from a mapping, requiring every field to be a string."""
        names = ("client_id", "client_secret", "access_token", "refresh_token")
        values = {}
        for name in names:
            value = data.get(name)
            if not isinstance(value, str):
                raise OAuthError(f"Invalid OAuth tokens: missing field '{name}'")
            values[name] = value
        return cls(**values)


def _token_url(space_key: str) -> str:
    return f"https://{space_key}.backlog.com/api/v2/oauth2/token"


def _post_token_request(url: str, params: dict[str, str], action: str, failure: str) -> dict[str, str]:
    try:
        response = requests.post(url, data=params, timeout=(CONNECT_TIMEOUT, REQUEST_TIMEOUT))
    except requests.RequestException as exc:
        raise OAuthError(f"Failed to {action}: {exc}") from exc
    if not response.ok:
        status = f"{response.status_code} {response.reason or ''}".strip()
        raise OAuthError(f"{failure} ({status}): {response.text}")
    try:
        data = response.json()
    except ValueError as exc:
        raise OAuthError(f"Failed to parse token response: {exc}") from exc
    if not isinstance(data, dict):
        raise OAuthError("Failed to parse token response")
    access = data.get("access_token")
    refresh = data.get("refresh_token")
    if not isinstance(access, str) or not isinstance(refresh, str):
        raise OAuthError("Failed to parse token response")
    return {"access_token": access, "refresh_token": refresh}


def run_oauth_flow(space_key: str, client_id: str, client_secret: str, port: int) -> OAuthTokens:
    """Run the full authorization code flow and return the obtained tokens.

    The callback listener is bound before the authorization URL is shown so
    that a port conflict is reported immediately.
    """
    try:
        listener = socket.create_server(("127.0.0.1", port))
    except OSError as exc:
        raise OAuthError(
            f"Failed to bind to port {port}. "
            "Is the port already in use? Try a different port with --port."
        ) from exc

    with listener:
        redirect_uri = f"http://127.0.0.1:{port}/callback"
        state = generate_state()
        auth_url = (
            f"https://{space_key}.backlog.com/OAuth2AccessRequest.action"
            f"?response_type=code"
            f"&client_id={client_id}"
            f"&redirect_uri={percent_encode(redirect_uri)}"
            f"&state={state}"
        )
        print(
            f"Open this URL in your browser to authorize:\n  {auth_url}",
            file=sys.stderr,
        )
        print(
            f"Waiting for authorization at http://127.0.0.1:{port}/callback "
            "(Ctrl+C to cancel)...",
            file=sys.stderr,
        )
        code = wait_for_callback(listener, state)

    return exchange_code(space_key, client_id, client_secret, code, redirect_uri)


def exchange_code(
    space_key: str, client_id: str, client_secret: str, code: str, redirect_uri: str
) -> OAuthTokens:
    """Exchange an authorization code for access and refresh tokens."""
    params = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": redirect_uri,
        "client_id": client_id,
        "client_secret": client_secret,
    }
    tokens = _post_token_request(
        _token_url(space_key), params, "request OAuth token", "OAuth token request failed"
    )
    return OAuthTokens(client_id=client_id, client_secret=client_secret, **tokens)


def refresh_access_token(space_key: str, tokens: OAuthTokens) -> OAuthTokens:
    """Use the refresh token to obtain a new access token."""
    params = {
        "grant_type": "refresh_token",
        "refresh_token": tokens.refresh_token,
        "client_id": tokens.client_id,
        "client_secret": tokens.client_secret,
    }
    fresh = _post_token_request(
        _token_url(space_key), params, "refresh OAuth token", "OAuth token refresh failed"
    )
    return OAuthTokens(client_id=tokens.client_id, client_secret=tokens.client_secret, **fresh)


def _send_html_response(conn: socket.socket, status: int, body: str) -> None:
    reason = "OK" if status == 200 else "Bad Request"
    payload = body.encode("utf-8")
    head = (
        f"HTTP/1.1 {status} {reason}\r\n"
        "Content-Type: text/html; charset=utf-8\r\n"
        f"Content-Length: {len(payload)}\r\n"
        "Connection: close\r\n\r\n"
    ).encode("ascii")
    try:
        conn.sendall(head + payload)
    except OSError:
        pass


def _read_request_path(conn: socket.socket) -> str | None:
    with conn.makefile("rb") as reader:
        try:
            raw = reader.readline()
        except OSError:
            return None
    if not raw:
        return None
    try:
        line = raw.decode("utf-8").rstrip("\r\n")
    except UnicodeDecodeError:
        return None
    parts = line.split()
    return parts[1] if len(parts) > 1 else None


def wait_for_callback(listener: socket.socket, expected_state: str) -> str:
    """Accept connections until the OAuth callback arrives; return its code.

    Requests for other paths (such as a browser's favicon fetch) get an empty
    200 response and are otherwise ignored.
    """
    for _ in range(MAX_CALLBACK_ATTEMPTS):
        try:
            conn, _addr = listener.accept()
        except OSError as exc:
            raise OAuthError(f"Failed to accept OAuth callback: {exc}") from exc
        with conn:
            path = _read_request_path(conn)
            if path is None:
                continue
            if not path.startswith("/callback"):
                _send_html_response(conn, 200, "")
                continue

            denial = parse_error_params(path)
            if denial is not None:
                error, description = denial
                msg = f"{error}: {description}" if description else error
                _send_html_response(
                    conn, 400, f"<h1>Authorization denied</h1><p>{msg}</p>"
                )
                raise OAuthError(f"Authorization denied by provider: {msg}")

            code, state = parse_callback_params(path)
            if state != expected_state:
                _send_html_response(
                    conn,
                    400,
                    "<h1>Authorization failed</h1><p>State mismatch. Please try again.</p>",
                )
                raise OAuthError("OAuth state mismatch — possible CSRF attempt")

            _send_html_response(
                conn,
                200,
                "<h1>Authorization successful!</h1>"
                "<p>You can close this tab and return to the terminal.</p>",
            )
            return code

    raise OAuthError(
        f"OAuth callback not received after {MAX_CALLBACK_ATTEMPTS} connection attempts"
    )


def _query_pairs(path: str):
    _, sep, query = path.partition("?")
    if not sep:
        query = ""
    for pair in query.split("&"):
        key, eq, value = pair.partition("=")
        if eq:
            yield key, value


def parse_callback_params(path: str) -> tuple[str, str]:
    """Extract the ``code`` and ``state`` parameters from a callback path."""
    code = state = None
    for key, value in _query_pairs(path):
        if key == "code":
            code = percent_decode(value)
        elif key == "state":
            state = percent_decode(value)
    if code is None:
        raise OAuthError("OAuth callback: 'code' parameter missing")
    if state is None:
        raise OAuthError("OAuth callback: 'state' parameter missing")
    return code, state


def parse_error_params(path: str) -> tuple[str, str] | None:
    """Return ``(error, description)`` when the callback carries an error."""
    error = None
    description = ""
    for key, value in _query_pairs(path):
        if key == "error":
            error = percent_decode(value)
        elif key == "error_description":
            description = percent_decode(value)
    return None if error is None else (error, description)


def generate_state() -> str:
    """Return a random hex string used to guard the callback against CSRF."""
    return secrets.token_hex(16)


def percent_encode(s: str) -> str:
    """Percent-encode every byte outside the unreserved URL characters."""
    return "".join(
        chr(byte) if byte in _UNRESERVED else f"%{byte:02X}" for byte in s.encode("utf-8")
    )


def percent_decode(s: str) -> str:
    """Decode ``%XX`` escapes; malformed escapes are dropped."""
    out = bytearray()
    chars = iter(s)
    for c in chars:
        if c == "%":
            pair = next(chars, "0") + next(chars, "0")
            if _HEX_PAIR.fullmatch(pair):
                value = int(pair, 16)
                if value <= 0xFF:
                    out.append(value)
        else:
            out.extend(c.encode("utf-8"))
    return out.decode("utf-8", errors="replace")