from __future__ import annotations


class SteamExplorerError(Exception):
    pass


class InvalidRequestError(SteamExplorerError):
    """Bad or out-of-range input parameters. Fatal to the single call."""


class ForbiddenTargetError(SteamExplorerError):
    """Proxy target is outside the trusted Steam Community origin."""


class GatewayTimeoutError(SteamExplorerError):
    pass


class UpstreamError(SteamExplorerError):
    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class MissingApiKeyError(SteamExplorerError):
    pass
