"""
Error taxonomy for the compounding engine.

Four families:
- Authorization / state gates (wrong role, paused, retired)
- Configuration errors raised once, at construction or setter time
- External call failures (farm, router, token transfers) that abort the
  enclosing operation and roll it back
- Degraded reads, which never surface as exceptions (see BalanceAccountant)
"""


class StrategyError(Exception):
    """Base class for every error raised by the engine."""
    pass


class AuthorizationError(StrategyError):
    """Raised when the caller lacks the role a gated operation requires."""

    def __init__(self, caller: str, role: str, operation: str = ""):
        self.caller = caller
        self.role = role
        self.operation = operation
        where = f" for {operation}" if operation else ""
        super().__init__(f"{caller} is not authorized as {role}{where}")


class PausedError(StrategyError):
    """Raised when a paused strategy is asked to deposit (or harvest)."""
    pass


class StrategyRetiredError(StrategyError):
    """Raised when a retired strategy is asked to do anything but unwind."""
    pass


class NotPausedError(StrategyError):
    """Raised when unpause is called on a strategy that is not paused."""
    pass


class VaultError(StrategyError):
    """A vault deposit or withdrawal has no shares or no backing to price against."""
    pass


class ConfigError(StrategyError):
    """Base class for invalid strategy configuration."""
    pass


class RouteConfigError(ConfigError):
    """A configured route does not start or end at the declared assets."""
    pass


class FeeConfigError(ConfigError):
    """A fee share is negative, above its cap, or the shares exceed 100%."""
    pass


class ExternalCallError(StrategyError):
    """A farm, router or token call failed. The enclosing operation aborts."""
    pass


class InsufficientBalanceError(ExternalCallError):
    """A transfer tried to move more than the holder owns."""
    pass


class InsufficientAllowanceError(ExternalCallError):
    """A spender tried to move more than it was approved for."""
    pass


class SlippageError(ExternalCallError):
    """The realized swap or liquidity output is below the accepted minimum."""
    pass


class DeadlineExpiredError(ExternalCallError):
    """The router received a swap after its deadline."""
    pass


class FarmError(ExternalCallError):
    """The farm rejected a deposit, withdrawal or claim."""
    pass
