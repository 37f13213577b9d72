class CalmError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500

    def to_payload(self):
        return {"error": str(self)}


class ConfigurationError(CalmError):
    def __init__(self, message="Missing configuration. Set NOTION_API_KEY and NOTION_DATABASE_ID."):
        super().__init__(message)


class InvalidRequestError(CalmError):
    status_code = 400


class UpstreamError(CalmError):
    """A non-2xx answer from Notion, forwarded with its raw body."""

    def __init__(self, status_code, body, message="Notion API error"):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def with_message(self, message):
        return UpstreamError(self.status_code, self.body, message)

    def to_payload(self):
        return {"error": str(self), "details": self.body}
