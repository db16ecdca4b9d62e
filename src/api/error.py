"""HTTP error mapping for use case errors"""

from fastapi import status
from libs.result import Error

STATUS_BY_CODE = {
    "INSUFFICIENT_CREDIT": status.HTTP_402_PAYMENT_REQUIRED,
    "TRANSFER_NOT_ALLOWED": status.HTTP_403_FORBIDDEN,
    "CAMPAIGN_STATE_ERROR": status.HTTP_409_CONFLICT,
    "CAMPAIGN_ALREADY_RUNNING": status.HTTP_409_CONFLICT,
}


def status_for_error(error: Error) -> int:
    if error.code in STATUS_BY_CODE:
        return STATUS_BY_CODE[error.code]
    if error.code.endswith("_NOT_FOUND"):
        return status.HTTP_404_NOT_FOUND
    if error.code.endswith("_FAILED"):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_400_BAD_REQUEST


class ClientError(Exception):
    """Raised by routes; rendered as {"error": {"code", "message"}}"""

    def __init__(self, error: Error, status_code: int = None):
        self.error = error
        self.status_code = status_code or status_for_error(error)
        super().__init__(error.message)
