"""Exceptions raised by the VFS0097 protocol engine."""


class Vfs0097Error(Exception):
    """Base exception for all driver errors."""


class TransportError(Vfs0097Error):
    """Raised when a bulk transfer fails or is short where it must not be."""


class TransportTimeoutError(TransportError):
    """Raised when a bulk transfer does not complete within its timeout."""


class ProtocolError(Vfs0097Error):
    """Raised when a state machine reaches a state it does not know."""


class DeviceNotInitializedError(Vfs0097Error):
    """Raised when the sensor has not been provisioned by a reference host."""


class FlashContainerError(Vfs0097Error):
    """Raised when the flash container header disagrees with its payload."""


class ConfigurationError(Vfs0097Error):
    """Raised when the driver is opened with an incomplete configuration."""


class OperationCancelledError(Vfs0097Error):
    """Raised inside a state machine after cancel() was requested."""
