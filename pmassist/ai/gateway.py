"""
AI query gateway — the one outbound HTTP call of the application.

Sends ``{"prompt": "..."}`` to the configured AI endpoint and expects
``{"response": "...", "error": "..."?}`` back.

Call policy:
  timeout    = AI_TIMEOUT_SECONDS (default 30 s)
  retries    = at most 1, and only after a connection error or timeout
  backoff    = AI_RETRY_BACKOFF_SECONDS before the retry

Usage:
    gw = build_ai_gateway(app.config)
    result = gw.query("Summarise the program")
    if result.error:
        ...

``query`` never raises: every failure comes back as an AIQueryResult
carrying a human-readable ``error``.
"""

import logging
import time

import requests

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = "Error generating response. Please try again."

_DEFAULT_TIMEOUT = 30
_MAX_RETRY_CAP = 1


class AIQueryResult:
    """Outcome of one AI query. Check ``.error`` before using ``.response``.

    Exactly one of the two is meaningful: a successful result has a
    non-empty response and no error; a failed one always has an error.
    """

    __slots__ = ("response", "error", "status_code", "duration_ms")

    def __init__(
        self,
        *,
        response: str,
        error: str | None = None,
        status_code: int | None = None,
        duration_ms: int = 0,
    ) -> None:
        self.response = response
        self.error = error
        self.status_code = status_code
        self.duration_ms = duration_ms

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: str, *, status_code: int | None = None, duration_ms: int = 0):
        return cls(
            response=FALLBACK_RESPONSE,
            error=error,
            status_code=status_code,
            duration_ms=duration_ms,
        )

    def to_dict(self) -> dict:
        return {"response": self.response, "error": self.error}

    def __repr__(self):
        return f"<AIQueryResult ok={self.ok} status={self.status_code}>"


class AIQueryGateway:
    def __init__(
        self,
        endpoint_url: str,
        *,
        timeout: float = _DEFAULT_TIMEOUT,
        max_retries: int = 1,
        retry_backoff: float = 1.0,
        session: requests.Session | None = None,
    ) -> None:
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.max_retries = max(0, min(int(max_retries), _MAX_RETRY_CAP))
        self.retry_backoff = retry_backoff
        self.session = session or requests.Session()

    def query(self, prompt: str) -> AIQueryResult:
        """POST the prompt and interpret the reply.

        Returns:
            AIQueryResult — always returns, never raises.
        """
        last_error = "Unknown error occurred"
        for attempt in range(self.max_retries + 1):
            t0 = time.perf_counter()
            try:
                resp = self.session.post(
                    self.endpoint_url,
                    json={"prompt": prompt},
                    headers={"Content-Type": "application/json"},
                    timeout=self.timeout,
                )
            except requests.Timeout:
                last_error = f"AI service timed out after {self.timeout}s"
            except requests.ConnectionError as exc:
                last_error = f"Could not reach AI service: {str(exc)[:200]}"
            except requests.RequestException as exc:
                # Not transient (bad URL, invalid request): no retry.
                logger.error("AI request failed url=%s error=%s", self.endpoint_url, exc)
                return AIQueryResult.failure(str(exc)[:500])
            else:
                duration_ms = int((time.perf_counter() - t0) * 1000)
                return self._interpret(resp, duration_ms)

            logger.warning(
                "AI request failed attempt=%d/%d url=%s error=%s",
                attempt + 1, self.max_retries + 1, self.endpoint_url, last_error,
            )
            if attempt < self.max_retries:
                time.sleep(self.retry_backoff)

        return AIQueryResult.failure(last_error)

    @staticmethod
    def _interpret(resp, duration_ms: int) -> AIQueryResult:
        status = resp.status_code
        try:
            body = resp.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            logger.warning("AI service returned a non-JSON body status=%s", status)
            if not resp.ok:
                return AIQueryResult.failure(
                    f"HTTP {status}: {resp.text[:200]}", status_code=status, duration_ms=duration_ms,
                )
            return AIQueryResult.failure(
                "Invalid response from AI service", status_code=status, duration_ms=duration_ms,
            )

        if body.get("error"):
            return AIQueryResult(
                response=body.get("response") or FALLBACK_RESPONSE,
                error=str(body["error"]),
                status_code=status,
                duration_ms=duration_ms,
            )
        if not resp.ok:
            return AIQueryResult.failure(
                f"HTTP {status}: {resp.text[:200]}", status_code=status, duration_ms=duration_ms,
            )

        text = body.get("response")
        if not isinstance(text, str) or not text:
            return AIQueryResult.failure(
                "AI service returned an empty response", status_code=status, duration_ms=duration_ms,
            )
        logger.info("AI query answered status=%s", status, extra={"duration_ms": duration_ms})
        return AIQueryResult(response=text, status_code=status, duration_ms=duration_ms)


def build_ai_gateway(config) -> AIQueryGateway:
    """Construct a gateway from a Flask config mapping.

    In tests, swap the session:
        gw = build_ai_gateway(app.config)
        gw.session = MagicMock()
    """
    return AIQueryGateway(
        config.get("AI_ENDPOINT_URL"),
        timeout=config.get("AI_TIMEOUT_SECONDS", _DEFAULT_TIMEOUT),
        max_retries=config.get("AI_MAX_RETRIES", 1),
        retry_backoff=config.get("AI_RETRY_BACKOFF_SECONDS", 1.0),
    )
