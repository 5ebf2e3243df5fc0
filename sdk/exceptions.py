"""Exception hierarchy for the hookgram SDK.

The gateway never raises these on its own; callers opt in through
:meth:`sdk.result.MethodResult.raise_for_error`.
"""

from typing import Any, Dict, Optional


class APIException(Exception):
    """A Bot API call answered with ``ok=false``.

    Attributes:
        error_code: The ``error_code`` reported by the API, or ``None`` when
            the call failed before the API answered (transport error).
        method: Name of the Bot API method that failed.
        response_body: Decoded response body as a dict, when available.
    """

    def __init__(
        self,
        error_code: Optional[int],
        response_body: Optional[Dict[str, Any]] = None,
        method: Optional[str] = None,
    ) -> None:
        self.error_code = error_code
        self.method = method
        self.response_body = response_body or {}
        description = self.response_body.get("description", "Unknown error")
        where = f" in {method}" if method else ""
        super().__init__(f"API error {error_code}{where}: {description}")
