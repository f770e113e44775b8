"""
Errors that abort the ingest pipeline. Each carries the HTTP status and the
public message returned to the sender as {"error": message}.
"""


class WebhookIngestError(Exception):
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class InvalidSignature(WebhookIngestError):
    status_code = 401
    public_message = "Invalid signature"


class InvalidPayload(WebhookIngestError):
    status_code = 400
    public_message = "Invalid JSON payload"


class UnknownWorkspace(WebhookIngestError):
    status_code = 400
    public_message = "Unknown workspace"
