"""
Custom exceptions for the order gateway.

Every failure surfaced to a caller carries a stable ``kind`` and a
human-readable message. ``detail`` holds whatever diagnostic payload the
venue or the failing stage returned. Key material never goes into any of
these fields.
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base exception for all gateway errors"""

    kind = "GatewayError"

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        """Structured error payload: {kind, message[, detail]}"""
        payload: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.detail is not None:
            payload["detail"] = self.detail
        return payload


# ==================== Input Exceptions ====================

class InputValidationError(GatewayError):
    """Required request fields missing or malformed"""
    kind = "InputValidationError"


class ConfigurationError(GatewayError):
    """Configuration file or environment error"""
    kind = "ConfigurationError"


# ==================== Market Data Exceptions ====================

class MetadataUnavailable(GatewayError):
    """Asset universe could not be fetched from the venue"""
    kind = "MetadataUnavailable"


class AssetNotFound(GatewayError):
    """Trading symbol not present in the venue universe"""
    kind = "AssetNotFound"

    def __init__(self, symbol: str, lookup_key: Optional[str] = None):
        message = f"Asset not found: {symbol}"
        if lookup_key is not None and lookup_key != symbol:
            message += f" (lookup key: {lookup_key})"
        super().__init__(message)
        self.symbol = symbol
        self.lookup_key = lookup_key


class PriceUnavailable(GatewayError):
    """No usable mid price for the instrument"""
    kind = "PriceUnavailable"


# ==================== Order Construction Exceptions ====================

class ZeroOrderSize(GatewayError):
    """Size truncated to zero at the asset's precision"""
    kind = "ZeroOrderSize"


class EncodingError(GatewayError):
    """Action does not fit the venue's wire schema"""
    kind = "EncodingError"


class SigningError(GatewayError):
    """Key material malformed or signing failed"""
    kind = "SigningError"


# ==================== Exchange Exceptions ====================

class VenueRejected(GatewayError):
    """Exchange rejected the order or the request failed at HTTP level"""
    kind = "VenueRejected"
