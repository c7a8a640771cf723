"""Exception types raised by the setup tool."""


class SetupError(Exception):
    """Base class for errors raised by the setup tool."""


class PreflightError(SetupError):
    """A precondition failed; nothing has been changed on the host."""


class DriveSetupError(SetupError):
    """A destructive drive-setup step failed.

    Raised after the operator has confirmed the erase, so the disk may already
    be partially prepared when this is seen.
    """

    def __init__(self, message: str, device: str = "", partition: str = ""):
        super().__init__(message)
        self.device = device
        self.partition = partition
