"""
Headless client for the ESG portal REST API.

Wraps httpx with bearer-token auth, a single retry for server errors and
error classification, so callers only need to handle `ApiError` subclasses.
"""

import logging
import time

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
RETRY_DELAY = 1.0


class ApiError(Exception):
    """Base class for every client-side API failure."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}


class ValidationError(ApiError):
    pass


class AuthenticationError(ApiError):
    pass


class AuthorizationError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ServerError(ApiError):
    pass


class NetworkError(ApiError):
    pass


_STATUS_ERRORS = {
    400: ValidationError,
    409: ValidationError,
    422: ValidationError,
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
}

_DEFAULT_MESSAGES = {
    AuthenticationError: "Your session has expired. Please log in again.",
    AuthorizationError: "You don't have permission to perform this action.",
    NotFoundError: "The requested resource was not found.",
    ServerError: "Server error. Please try again later.",
}


def _payload(response):
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def classify(response):
    """Exception instance for an error response."""
    payload = _payload(response)
    status = response.status_code
    cls = _STATUS_ERRORS.get(status, ServerError if status >= 500 else ApiError)
    message = payload.get("error") or payload.get("message") or _DEFAULT_MESSAGES.get(cls) \
        or f"Request failed with status {status}."
    return cls(message, status_code=status, payload=payload)


class ApiClient:
    """Synchronous API client.

    `on_unauthorized` is called after a 401 has purged the stored token.
    `transport` and `sleep` exist so tests can run without a network or delay.
    """

    def __init__(self, base_url, token=None, on_unauthorized=None, timeout=DEFAULT_TIMEOUT,
                 retry_delay=RETRY_DELAY, transport=None, sleep=time.sleep):
        self.token = token
        self.on_unauthorized = on_unauthorized
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._http = httpx.Client(
            base_url=base_url.rstrip("/") + "/api",
            timeout=timeout,
            transport=transport,
        )

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _headers(self):
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _send(self, method, path, **kwargs):
        try:
            return self._http.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed without a response: {e}")
            raise NetworkError("Network error. Please check your connection.") from e

    def request(self, method, path, **kwargs):
        """Send a request and return the decoded JSON body (or raw bytes for files)."""
        response = self._send(method, path, **kwargs)
        if response.status_code >= 500:
            logger.info(f"{method} {path} returned {response.status_code}; retrying once")
            self._sleep(self.retry_delay)
            response = self._send(method, path, **kwargs)

        if response.is_success:
            if response.headers.get("content-type", "").startswith("application/json"):
                return response.json()
            return response.content

        err = classify(response)
        if isinstance(err, AuthenticationError):
            self.token = None
            if self.on_unauthorized is not None:
                self.on_unauthorized()
        logger.warning(f"{method} {path} -> {response.status_code}: {err.message}")
        raise err

    def get(self, path, **params):
        return self.request("GET", path, params=params or None)

    def post(self, path, json=None, **kwargs):
        return self.request("POST", path, json=json, **kwargs)

    def put(self, path, json=None):
        return self.request("PUT", path, json=json)

    def delete(self, path):
        return self.request("DELETE", path)

    # -- resource helpers ---------------------------------------------------

    def login(self, email, password):
        data = self.post("/auth/login", {"email": email, "password": password})
        self.token = data["token"]
        return data["user"]

    def me(self):
        return self.get("/auth/me")["user"]

    def companies(self):
        return self.get("/company")["companies"]

    def submit_metrics(self, pillar_slug, company_id, period, fields):
        return self.post(f"/metrics/{pillar_slug}", {"companyId": company_id, "period": period, **fields})["metric"]

    def company_metrics(self, company_id, period=None):
        return self.get(f"/metrics/{company_id}", **({"period": period} if period else {}))

    def calculate(self, company_id, period):
        return self.post(f"/esg/calculate/{company_id}", {"period": period})

    def scorecard(self, company_id, period=None):
        return self.get(f"/esg/scorecard/{company_id}", **({"period": period} if period else {}))

    def compliance_dashboard(self, company_id, period=None):
        return self.get(f"/compliance/dashboard/{company_id}", **({"period": period} if period else {}))

    def tasks_dashboard(self, company_id, period=None):
        return self.get(f"/tasks/dashboard/{company_id}", **({"period": period} if period else {}))

    def update_task_status(self, task_id, status, period=None):
        body = {"status": status}
        if period:
            body["period"] = period
        return self.put(f"/tasks/{task_id}/status", body)["task"]

    def features(self):
        return self.get("/features")
