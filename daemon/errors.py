"""
Error taxonomy for tumble operations.

Every failure a chat invocation can hit is one of these. Handlers catch
TumbleError and turn it into exactly one reply; nothing here is meant to
escape an event handler.
"""


class TumbleError(Exception):
    """Base class for aggregator and authorization failures."""


class ConfigurationMissing(TumbleError):
    """A required setting (base URL, credential, control channel) is absent."""


class NoSecret(ConfigurationMissing):
    """Delete attempted against a non-local aggregator without a credential."""

    def __init__(self):
        super().__init__("no_secret")


class NotFound(TumbleError):
    """The resource is already gone or never existed."""

    def __init__(self, kind: str = "", resource_id=None):
        self.kind = kind
        self.resource_id = resource_id
        super().__init__("not_found")


class HttpError(TumbleError):
    """Aggregator unreachable or answered with an unexpected status."""

    def __init__(self, status=None, detail: str = ""):
        self.status = status
        self.detail = detail
        if status is not None:
            msg = f"API error: {status}"
        else:
            msg = f"HTTP error: {detail}"
        super().__init__(msg)


class ParseError(TumbleError):
    """Aggregator response body was not valid JSON."""

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(f"Parse error: {detail}" if detail else "Parse error")


class NotAuthorized(TumbleError):
    """The deletion authorizer denied the request."""

    def __init__(self, decision):
        self.decision = decision
        super().__init__(decision.message or decision.reason)
