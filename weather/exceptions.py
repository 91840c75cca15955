"""
Weather Acquisition Errors
==========================
Error taxonomy for provider acquisition.

- TransientNetworkError: timeouts; retried once by the transport
- ProviderError: HTTP status errors, malformed payloads, connection failures
- ConfigurationError: missing API keys; raised before any network I/O
- AllProvidersFailedError: every provider in the failover chain failed
"""


class WeatherError(Exception):
    """Base class for all acquisition errors."""


class TransientNetworkError(WeatherError):
    """A request that may succeed if attempted again."""


class RequestTimeoutError(TransientNetworkError):
    def __init__(self, message: str = 'Request timeout'):
        super().__init__(message)


class ProviderError(WeatherError):
    """A provider answered, but not with something usable."""


class HTTPStatusError(ProviderError):
    def __init__(self, status_code: int, reason: str = ''):
        self.status_code = status_code
        self.reason = reason or ''
        super().__init__(f"HTTP {status_code}: {self.reason}")


class MalformedPayloadError(ProviderError):
    pass


class NetworkError(ProviderError):
    pass


class ConfigurationError(WeatherError):
    pass


class MissingApiKeyError(ConfigurationError):
    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"{provider} API key missing")


class AllProvidersFailedError(WeatherError):
    """
    Raised when every provider in the chain has failed.

    Attributes:
        failures: Ordered list of ProviderFailure records, in attempt order
    """

    def __init__(self, failures: list):
        self.failures = list(failures)
        super().__init__('All providers failed')
