"""Exception taxonomy for selection, authentication and configuration."""


class SelectionError(ValueError):
    """Raised when a test selection expression is invalid."""


class EmptySelection(SelectionError):
    """Raised when a selection expression resolves to no tests."""


class AuthExhausted(Exception):
    """Raised when authentication failed too many consecutive times.

    Aborts the remaining tests of the current iteration and must reach the
    driver.
    """

    def __init__(self, failures: int) -> None:
        super().__init__(
            f"Authentication failed {failures} consecutive time(s), giving up"
        )
        self.failures = failures


class ProbeNotFoundError(LookupError):
    """Raised when no probe is registered for a (scene, test) pair."""


class ConfigError(ValueError):
    """Raised when the load test configuration is invalid or incomplete."""
