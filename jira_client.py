# jira_client.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pydantic
import requests
from requests.adapters import HTTPAdapter
from requests.auth import HTTPBasicAuth
from urllib3.exceptions import LocationParseError
from urllib3.util import parse_url
from urllib3.util.retry import Retry

from jira_errors import (  # noqa: F401
    STATUS_ERRORS,
    BadGateway,
    DecodeError,
    InvalidEndpoint,
    JiraError,
    MethodNotAllowed,
    NotFound,
    RequestFailed,
    TransportFailure,
    Unauthorized,
    UnsupportedMediaType,
    ValidationError,
)
from jira_fields import Issue, IssueRequest, SearchResult, encode_fields
from jira_models import WIRE_CONTEXT, Release

logger = logging.getLogger(__name__)

# Fields requested when searching a release that names none of its own
DEFAULT_ISSUE_FIELDS = [
    "id",
    "key",
    "self",
    "summary",
    "issuetype",
    "status",
    "description",
    "created",
    "comment",
]

CONTENT_TYPE = "application/json"

_RELEASE_LIST = pydantic.TypeAdapter(List[Release])


@dataclass(frozen=True)
class EndpointConfig:
    """Where and as whom to talk to Jira. Fixed for the lifetime of a client."""
    base_url: str
    login: str
    secret: str = field(repr=False)
    project: str

    @classmethod
    def from_env(cls) -> "EndpointConfig":
        """Build from JIRA_BASE_URL, JIRA_EMAIL, JIRA_TOKEN and JIRA_PROJECT_KEY."""
        names = {
            "base_url": "JIRA_BASE_URL",
            "login": "JIRA_EMAIL",
            "secret": "JIRA_TOKEN",
            "project": "JIRA_PROJECT_KEY",
        }
        values = {attr: (os.getenv(var) or "").strip() for attr, var in names.items()}
        missing = [names[attr] for attr, value in values.items() if not value]
        if missing:
            raise ValidationError(f"Missing required environment variables: {', '.join(missing)}")
        return cls(**values)


@dataclass
class JiraConfig:
    """Transport tuning. No retries unless the caller asks for them."""
    timeout: Optional[float] = 30.0
    max_retries: int = 0
    backoff_factor: float = 0.3
    pool_connections: int = 10
    pool_maxsize: int = 20
    verify_ssl: bool = True


class JiraClient:
    """
    Jira REST client for one project: releases, release issue search, and
    issue fetch, create and update. Every operation is a single round trip.
    """

    def __init__(
            self,
            endpoint: EndpointConfig,
            config: Optional[JiraConfig] = None,
            session: Optional[requests.Session] = None
    ):
        self.endpoint = endpoint
        self.config = config or JiraConfig()
        self.auth = HTTPBasicAuth(endpoint.login, endpoint.secret)
        self.session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a pooled session; retries only as configured."""
        session = requests.Session()

        retry_strategy = Retry(
            total=self.config.max_retries,
            backoff_factor=self.config.backoff_factor,
            raise_on_status=False
        )
        adapter = HTTPAdapter(
            pool_connections=self.config.pool_connections,
            pool_maxsize=self.config.pool_maxsize,
            max_retries=retry_strategy
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.verify = self.config.verify_ssl

        return session

    # ============================================================================
    # TRANSPORT
    # ============================================================================

    def _absolute_url(self, path: str) -> str:
        """Join the configured base URL and a relative path."""
        if path and not path.startswith("/"):
            path = f"/{path}"
        url = f"{self.endpoint.base_url.rstrip('/')}{path}"

        try:
            parsed = parse_url(url)
        except LocationParseError as e:
            message = f"Failed to parse {self.endpoint.base_url} and {path} to URL: {e}"
            logger.error(message)
            raise InvalidEndpoint(message, url=url) from e

        if parsed.scheme not in ("http", "https") or not parsed.host:
            message = f"Failed to parse {self.endpoint.base_url} and {path} to URL: missing scheme or host"
            logger.error(message)
            raise InvalidEndpoint(message, url=url)

        return url

    def request(
            self,
            method: str,
            path: str,
            body: Optional[bytes] = None,
            params: Optional[Dict[str, str]] = None
    ) -> bytes:
        """Send one authenticated request and return the raw response body.

        Raises a RequestFailed subclass for any status of 400 or above, chosen
        by status code, and TransportFailure when nothing usable came back.
        """
        url = self._absolute_url(path)
        logger.debug(f"STRT {method} {url}")

        try:
            response = self.session.request(
                method=method,
                url=url,
                data=body,
                params=params,
                headers={"content-type": CONTENT_TYPE},
                auth=self.auth,
                timeout=self.config.timeout
            )
            content = response.content
        except (requests.exceptions.InvalidURL,
                requests.exceptions.MissingSchema,
                requests.exceptions.InvalidSchema) as e:
            message = f"Failed to build request {method} {url}: {e}"
            logger.error(message)
            raise InvalidEndpoint(message, method=method, url=url) from e
        except requests.exceptions.RequestException as e:
            message = f"Failed to Jira request {method} {url}: {e}"
            logger.error(message)
            raise TransportFailure(message, method=method, url=url) from e

        status_code = response.status_code
        logger.debug(f"StatusCode: {status_code}")

        if status_code >= 400:
            text = response.text
            message = f"Failed to Jira request {method} {url} with HTTP code {status_code}: {text[:500]}"
            logger.error(message)
            error_cls = STATUS_ERRORS.get(status_code, RequestFailed)
            raise error_cls(message, method=method, url=url, status_code=status_code, response_text=text)

        logger.debug(f"DONE {method} {url}")
        return content

    def _decode(self, payload: bytes, model: Any, method: str, path: str) -> Any:
        """Parse a response body into a model (or TypeAdapter) value."""
        try:
            raw = json.loads(payload)
            if isinstance(model, pydantic.TypeAdapter):
                return model.validate_python(raw, context=WIRE_CONTEXT)
            return model.from_wire(raw)
        except (ValueError, pydantic.ValidationError) as e:
            message = f"Failed to decode response of {method} {path}: {e}"
            logger.error(message)
            raise DecodeError(message, method=method, url=self._absolute_url(path)) from e

    # ============================================================================
    # RELEASES
    # ============================================================================

    def get_releases(self) -> List[Release]:
        """All versions of the configured project."""
        path = f"/project/{self.endpoint.project}/versions"
        payload = self.request("GET", path)
        return self._decode(payload, _RELEASE_LIST, "GET", path)

    # ============================================================================
    # ISSUES
    # ============================================================================

    def release_jql(self, release: Release) -> str:
        name = release.name.replace("\\", "\\\\").replace('"', '\\"')
        return f'project = {self.endpoint.project} AND fixVersion = "{name}"'

    def get_issues(self, release: Release) -> Dict[str, Issue]:
        """Issues fixed in a release, keyed by issue key. First page only."""
        params = {
            "jql": self.release_jql(release),
            "fields": ",".join(release.issue_fields or DEFAULT_ISSUE_FIELDS),
        }
        payload = self.request("GET", "/search", params=params)
        result = self._decode(payload, SearchResult, "GET", "/search")

        issues: Dict[str, Issue] = {}
        for issue in result.issues:
            issues[issue.key] = issue

        logger.debug(f"Found {len(issues)} issues in release {release.name}")
        return issues

    def get_issue(self, id_or_key: str, expand: Optional[List[str]] = None) -> Issue:
        """Single issue by id or key, optionally with expanded sections (e.g. renderedFields, names)."""
        params = {}
        if expand:
            params["expand"] = ",".join(expand)

        path = f"/issue/{id_or_key}"
        payload = self.request("GET", path, params=params or None)
        return self._decode(payload, Issue, "GET", path)

    def create_issue(self, request: IssueRequest) -> Issue:
        """Create an issue. The returned issue carries the submitted fields."""
        body = json.dumps({"fields": encode_fields(request)}).encode("utf-8")
        payload = self.request("POST", "/issue", body=body)
        created = self._decode(payload, Issue, "POST", "/issue")

        logger.info(f"Created issue {created.key} in project {self.endpoint.project}")

        # Create responses only carry id, key and self
        return created.model_copy(update={"fields": request.to_fields()})

    def update_issue(self, key: str, request: IssueRequest) -> None:
        """Overwrite the given fields of an existing issue."""
        if not key or not key.strip():
            raise ValidationError("Issue key cannot be empty")

        body = json.dumps({"key": key, "fields": encode_fields(request)}).encode("utf-8")
        self.request("PUT", f"/issue/{key}", body=body)

        logger.info(f"Updated issue {key}")

    # ============================================================================
    # RESOURCE MANAGEMENT
    # ============================================================================

    def close(self) -> None:
        """Release pooled connections."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
