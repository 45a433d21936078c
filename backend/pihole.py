from __future__ import annotations

import ipaddress
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple
from urllib.parse import SplitResult, urlsplit

import requests
from pydantic import ValidationError as PydanticValidationError

from config import HTTP_TIMEOUT_S, USER_AGENT
from errors import (
    InvalidHostError,
    InvalidUrlError,
    JsonError,
    NetworkError,
    PiholeError,
    ServerError,
    ValidationError,
)
from models import (
    EndpointCandidate,
    PiholeAuthRequest,
    PiholeAuthResponse,
    PiholeStats,
    SessionCredential,
)


logger = logging.getLogger(__name__)


_HOST_RE = re.compile(r"^[a-zA-Z0-9_][a-zA-Z0-9._-]{0,252}$")

LEGACY_PATH = "/admin/api.php"
LEGACY_QUERY = "summaryRaw"
MODERN_PATH = "/api/stats/summary"
AUTH_PATH = "/api/auth"

# Pi-hole FTL reads X-FTL-SID; X-Session-Credential is sent alongside it.
SESSION_HEADERS = ("X-Session-Credential", "X-FTL-SID")

EXHAUSTED_MESSAGE = (
    "Failed to get valid response from any Pi-hole API endpoint. "
    "Check if Pi-hole is running and accessible, or if authentication is required."
)

_PREVIEW_LIMIT = 200
_HTML_MARKERS = ("<!DOCTYPE", "<html")


def _preview(text: str) -> str:
    if len(text) <= _PREVIEW_LIMIT:
        return text
    return text[:_PREVIEW_LIMIT] + "..."


def _is_reasonable_host(value: str) -> bool:
    if _HOST_RE.match(value):
        return True
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def normalize_base_url(host: str) -> SplitResult:
    """Turn a user-typed host into a base URL (scheme + authority only).

    `http://` is assumed when no scheme is given; HTTPS-only targets must
    be passed with an explicit `https://`.
    """
    trimmed = (host or "").strip()
    if not trimmed:
        raise InvalidHostError("Host cannot be empty")

    if trimmed.startswith("http://") or trimmed.startswith("https://"):
        url_string = trimmed
    else:
        url_string = f"http://{trimmed}"

    try:
        parts = urlsplit(url_string)
        # .port validates digits and range lazily
        parts.port
    except ValueError as e:
        raise InvalidUrlError(str(e)) from e

    hostname = parts.hostname
    if not hostname:
        raise InvalidUrlError("empty host")
    if not _is_reasonable_host(hostname):
        raise InvalidUrlError(f"invalid host character in {hostname!r}")

    return parts._replace(path="", query="", fragment="")


def _endpoint(base: SplitResult, path: str, query: str = "") -> str:
    return base._replace(path=path, query=query).geturl()


def parse_pihole_urls(host: str) -> Tuple[EndpointCandidate, EndpointCandidate]:
    """Return the (legacy, modern) stats endpoints for `host`. No I/O."""
    base = normalize_base_url(host)
    legacy = EndpointCandidate(label="legacy API", url=_endpoint(base, LEGACY_PATH, LEGACY_QUERY))
    modern = EndpointCandidate(label="new API", url=_endpoint(base, MODERN_PATH))

    logger.debug("Legacy Pi-hole URL: %s", legacy.url)
    logger.debug("New Pi-hole URL: %s", modern.url)
    return legacy, modern


def create_http_session() -> requests.Session:
    s = requests.Session()
    s.headers.update({"User-Agent": USER_AGENT})
    return s


def _is_success(status_code: int) -> bool:
    return 200 <= int(status_code) < 300


def authenticate(
    host: str,
    password: Optional[str],
    *,
    session: Optional[requests.Session] = None,
) -> Optional[SessionCredential]:
    """Exchange `password` for a session id (best-effort).

    Returns None when no password is given, and also when the exchange fails
    for any reason; the failure is logged, never raised.
    """
    if password is None:
        return None

    try:
        auth_url = _endpoint(normalize_base_url(host), AUTH_PATH)
    except PiholeError as e:
        logger.debug("Authentication skipped, bad host: %s", e)
        return None

    own_session = session is None
    http = session if session is not None else create_http_session()
    logger.debug("Attempting authentication with: %s", auth_url)
    try:
        resp = http.post(
            auth_url,
            json=PiholeAuthRequest(password=password).model_dump(),
            timeout=HTTP_TIMEOUT_S,
        )
    except requests.exceptions.RequestException as e:
        logger.debug("Authentication failed, continuing without auth: %s", e)
        return None
    finally:
        if own_session:
            http.close()

    if not _is_success(resp.status_code):
        logger.debug("Authentication failed with status: %s", resp.status_code)
        return None

    try:
        auth = PiholeAuthResponse.model_validate_json(resp.text)
    except PydanticValidationError as e:
        logger.debug("Authentication response not understood, continuing without auth: %s", e)
        return None

    if not auth.session.sid:
        logger.debug("Authentication returned no session id (valid=%s)", auth.session.valid)
        return None

    logger.debug("Authentication successful, SID obtained")
    return SessionCredential(session_id=auth.session.sid)


def validate_pihole_response(stats: PiholeStats) -> None:
    if not stats.status:
        raise ValidationError("Status field is empty")

    # Only the upper bound is enforced; negative values pass.
    if stats.ads_percentage_today > 100.0:
        raise ValidationError("Ads percentage cannot exceed 100%")

    logger.debug("Pi-hole response validation passed")


class ProbeStatus(Enum):
    OK = "ok"
    SKIP = "skip"
    REJECT = "reject"


@dataclass(frozen=True)
class ProbeResult:
    status: ProbeStatus
    candidate: EndpointCandidate
    stats: Optional[PiholeStats] = None
    error: Optional[PiholeError] = None


def _credential_headers(credential: Optional[SessionCredential]) -> Dict[str, str]:
    if credential is None:
        return {}
    return {name: credential.session_id for name in SESSION_HEADERS}


def _skip(candidate: EndpointCandidate, error: PiholeError, detail: str) -> ProbeResult:
    logger.debug("%s %s, trying next endpoint", candidate.label, detail)
    return ProbeResult(ProbeStatus.SKIP, candidate, error=error)


def probe_endpoint(
    session: requests.Session,
    candidate: EndpointCandidate,
    credential: Optional[SessionCredential] = None,
) -> ProbeResult:
    """GET one stats endpoint and classify the answer.

    Anything that is not a parseable stats document is SKIP. A parseable
    document that fails validation is REJECT, which ends the whole fetch.
    """
    logger.debug("Trying %s endpoint: %s", candidate.label, candidate.url)
    try:
        resp = session.get(
            candidate.url,
            headers=_credential_headers(credential),
            timeout=HTTP_TIMEOUT_S,
        )
    except requests.exceptions.RequestException as e:
        return _skip(candidate, NetworkError(str(e)), f"request failed: {e}")

    logger.debug("%s response status: %s", candidate.label, resp.status_code)
    if not _is_success(resp.status_code):
        return _skip(
            candidate,
            ServerError(resp.status_code),
            f"returned non-success status: {resp.status_code}",
        )

    text = resp.text or ""
    logger.debug("%s response body length: %d bytes", candidate.label, len(text))
    if not text:
        return _skip(candidate, JsonError("empty response body"), "returned empty response")

    logger.debug("%s response preview: %s", candidate.label, _preview(text))

    if text.lstrip().startswith(_HTML_MARKERS):
        return _skip(
            candidate,
            JsonError("HTML response instead of JSON"),
            "returned HTML response (likely login page)",
        )

    try:
        stats = PiholeStats.model_validate_json(text)
    except PydanticValidationError as e:
        return _skip(candidate, JsonError(str(e)), f"JSON parsing failed: {e}")

    try:
        validate_pihole_response(stats)
    except ValidationError as e:
        return ProbeResult(ProbeStatus.REJECT, candidate, stats=stats, error=e)

    return ProbeResult(ProbeStatus.OK, candidate, stats=stats)


def get_pihole_stats(
    host: str,
    password: Optional[str] = None,
    *,
    session: Optional[requests.Session] = None,
) -> PiholeStats:
    """Fetch Pi-hole summary stats, new API first then legacy.

    Each call uses its own HTTP session unless one is injected; nothing
    (credential included) carries over between calls.
    """
    logger.info("Requesting Pi-hole stats from host: %s", host)

    legacy, modern = parse_pihole_urls(host)

    own_session = session is None
    http = session if session is not None else create_http_session()
    try:
        credential = authenticate(host, password, session=http) if password is not None else None

        last_error: Optional[PiholeError] = None
        for candidate in (modern, legacy):
            result = probe_endpoint(http, candidate, credential)
            if result.status is ProbeStatus.REJECT:
                raise result.error
            if result.status is ProbeStatus.OK:
                stats = result.stats
                logger.info(
                    "Successfully retrieved Pi-hole stats using %s: status=%s, blocked_today=%s",
                    candidate.label,
                    stats.status,
                    stats.ads_blocked_today,
                )
                logger.debug("Full stats: %r", stats)
                return stats
            last_error = result.error
    finally:
        if own_session:
            http.close()

    raise JsonError(EXHAUSTED_MESSAGE) from last_error
