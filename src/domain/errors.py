"""Domain exceptions raised below the use case boundary

Use cases convert these into `libs.result.Error` values.
"""

from typing import Optional


class InsufficientCreditError(Exception):
    """Raised by the ledger when an adjust would take a balance below zero"""

    def __init__(self, owner_id: str, category_id: str, required: int, available: int):
        self.owner_id = owner_id
        self.category_id = category_id
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient credits. Required: {required}, Available: {available}"
        )


class CampaignStateError(Exception):
    """Raised when a campaign operation is invoked from an invalid status"""

    def __init__(self, campaign_id: int, current: str, operation: str):
        self.campaign_id = campaign_id
        self.current = current
        self.operation = operation
        super().__init__(
            f"Cannot {operation} campaign {campaign_id} in status '{current}'"
        )


class ProviderError(Exception):
    """Error reported by the external message provider"""

    def __init__(self, code: Optional[str], message: str, retryable: bool = False):
        self.code = code
        self.message = message
        self.retryable = retryable
        super().__init__(message)


class ProviderAuthenticationError(ProviderError):
    """Provider credentials rejected; aborts the whole campaign"""

    def __init__(self, code: Optional[str], message: str):
        super().__init__(code, message, retryable=False)
