"""
Provider Manager Errors

Exception taxonomy raised by the dispatch layer and the reference adapters.

- ProviderError: base class, carries the provider name and the wrapped cause
- ProviderNotConfiguredError: primary provider missing or without credentials
- ProviderTimeoutError: the provider call lost the race against its timeout
- ProviderRateLimitError / ProviderInvalidResponseError: adapter-level failures
- AllProvidersFailed: primary and every eligible fallback failed
- NoEligibleProvidersError: discovery search has nothing to query
- UnknownUseCaseError: routing requested for a use case with no config

Cost threshold breaches are reported through CostAlert callbacks and are
never raised.
"""


class ProviderError(Exception):
    """
    Failure attributed to a single provider.

    Attributes:
        provider: Registered provider name
        original_error: Underlying exception raised by the adapter, if any
    """

    def __init__(
        self,
        message: str,
        provider: str,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.original_error = original_error

    @classmethod
    def wrap(cls, provider: str, error: BaseException) -> "ProviderError":
        """Return error unchanged if it is already a ProviderError, else wrap it."""
        if isinstance(error, ProviderError):
            return error
        return cls(str(error) or type(error).__name__, provider, error)


class ProviderNotConfiguredError(ProviderError):
    """Provider is not registered or reports is_configured() == False."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            f"Provider {provider} is not configured. Please provide API key.",
            provider,
        )


class ProviderTimeoutError(ProviderError):
    """Provider call did not complete within the allotted time."""

    def __init__(self, provider: str, timeout: float) -> None:
        super().__init__(f"Provider {provider} timed out after {timeout:g}s", provider)
        self.timeout = timeout


class ProviderRateLimitError(ProviderError):
    """Provider rejected the call because of rate limiting."""

    def __init__(self, provider: str, retry_after: float | None = None) -> None:
        retry_msg = f" Retry after {retry_after:g} seconds." if retry_after else ""
        super().__init__(f"Provider {provider} rate limit exceeded.{retry_msg}", provider)
        self.retry_after = retry_after


class ProviderInvalidResponseError(ProviderError):
    """Provider answered, but the payload could not be interpreted."""

    def __init__(self, provider: str, message: str, response: object = None) -> None:
        super().__init__(
            f"Provider {provider} returned invalid response: {message}", provider
        )
        self.response = response


class AllProvidersFailed(Exception):
    """
    Primary provider and every eligible fallback failed.

    Attributes:
        use_case: Use case the call was routed for
        errors: One ProviderError per attempted provider, in attempt order
    """

    def __init__(self, use_case: object, errors: list[ProviderError]) -> None:
        self.use_case = getattr(use_case, "value", str(use_case))
        self.errors = list(errors)
        details = "; ".join(f"{e.provider}: {e.message}" for e in self.errors)
        super().__init__(f"All providers failed for use case {self.use_case}: {details}")

    @property
    def providers(self) -> list[str]:
        """Names of the attempted providers, in attempt order."""
        return [e.provider for e in self.errors]


class NoEligibleProvidersError(Exception):
    """Discovery search found no enabled providers for the requested type."""

    def __init__(self, discovery_type: object) -> None:
        self.discovery_type = getattr(discovery_type, "value", str(discovery_type))
        super().__init__(
            f"No enabled providers found for discovery type: {self.discovery_type}"
        )


class UnknownUseCaseError(ValueError):
    """Use case has no routing configuration."""

    def __init__(self, use_case: object) -> None:
        self.use_case = use_case
        super().__init__(f"No configuration found for use case: {use_case}")
