"""Domain-specific exceptions."""


class ServiceError(Exception):
    pass


class EmptyQuery(ServiceError):
    def __init__(self) -> None:
        super().__init__("Search query must not be empty.")


class FetchError(ServiceError):
    """Base class for failures of a single provider query."""


class ProviderError(FetchError):
    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"HTTP {status}: {body}")
        self.status = status
        self.body = body


class NetworkError(FetchError):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ProviderConfigError(FetchError):
    pass


class PersistenceFailure(ServiceError):
    pass
