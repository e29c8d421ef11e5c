"""Client-side auth errors."""

from __future__ import annotations


class ClientAuthError(Exception):
    """Raised when the client cannot recover an authenticated session."""

    def __init__(
        self,
        code: str,
        message: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class ClientAuthErrorCodes:
    UNAUTHENTICATED: str = "UNAUTHENTICATED"
    REFRESH_FAILED: str = "REFRESH_FAILED"
    REFRESH_TIMEOUT: str = "REFRESH_TIMEOUT"
