from __future__ import annotations


class RelayError(Exception):
    """Base class for every error raised by the relay service."""


class AuthenticationError(RelayError):
    status_code = 401


class MissingSignatureHeadersError(AuthenticationError):
    status_code = 401


class SignatureMismatchError(AuthenticationError):
    status_code = 401


class MalformedHandshakeError(AuthenticationError):
    status_code = 400


class MalformedNotificationError(RelayError):
    status_code = 400


class RegistryFullError(RelayError):
    status_code = 503


class TransferError(RelayError):
    """Terminal failure of a single recording transfer."""


class AssetNotFoundError(TransferError):
    pass


class SessionOpenError(TransferError):
    pass


class SourceFetchError(TransferError):
    pass


class PartSubmissionError(TransferError):
    def __init__(self, part_no: int, message: str) -> None:
        super().__init__(f"upload part {part_no}: {message}")
        self.part_no = part_no


class FinalizationError(TransferError):
    pass
