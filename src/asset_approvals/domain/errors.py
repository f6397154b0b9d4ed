"""Error types raised by the approval workflow."""


class AssetApprovalError(Exception):
    """Base error for the approval workflow."""


class TransportError(AssetApprovalError):
    """Raised when a WhatsApp API call fails."""


class MissingGroupConfiguration(AssetApprovalError):
    """Raised when a submission is finalized without a destination group."""


class MalformedEventError(AssetApprovalError):
    """Raised when an inbound event lacks required fields."""
