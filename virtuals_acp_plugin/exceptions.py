class ACPPluginError(Exception):
    """Base exception for all ACP plugin errors."""
    pass


# Setup exceptions
class ACPPluginConfigError(ACPPluginError):
    """Raised when a required plugin setting is missing or invalid."""
    pass


class ACPServiceStartError(ACPPluginError):
    """Raised when the ACP service cannot be registered with the runtime."""
    pass


class ACPClientNotReadyError(ACPPluginError):
    """Raised when the ACP client is used before a connection is established."""
    pass


# Delegation exceptions
class ACPDelegationError(ACPPluginError):
    """Base class for errors while delegating a job to the agent runtime."""
    pass


class ACPDelegationTimeoutError(ACPDelegationError):
    """Raised when the agent runtime does not reply within the timeout."""
    pass


class ACPDelegationCancelledError(ACPDelegationError):
    """Raised when a pending delegation is cancelled before a reply arrives."""
    pass
