"""
Custom exception classes for the wallet bot.

Every failure the sell flow can hit has its own type so the flow can turn it
into a user-facing message at the step boundary.
"""

from typing import Optional


class BotException(Exception):
    """Base exception for all bot-related errors."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self):
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class ConfigurationException(BotException):
    """Raised when configuration is invalid."""
    pass


class UserNotFound(BotException):
    """Raised when no wallet is registered for a user id."""

    user_message = "No wallet is registered for your account. Ask the bot operator to register one."


class RemoteUnavailable(BotException):
    """Raised when a holdings, price, quote or execute call fails on the network."""

    user_message = "The swap service is unavailable right now. Please try again."


class InvalidAmount(BotException):
    """Raised for non-numeric, zero, negative or over-balance amounts."""

    @property
    def user_message(self) -> str:
        return self.message


class QuoteUnavailable(BotException):
    """Raised when the aggregator returns no usable transaction."""

    user_message = "Could not get a quote for this swap. Please try again."


class ExecutionRejected(BotException):
    """Raised when the aggregator or the chain rejects the signed swap."""

    @property
    def user_message(self) -> str:
        return f"Swap rejected: {self.message}"


class ConfirmationTimeout(BotException):
    """
    Raised when a submitted swap is not confirmed in time.

    The swap may still land on-chain; the signature is kept so the outcome
    can be looked up later.
    """

    user_message = "Swap submitted but not confirmed yet. Check the explorer before retrying."

    def __init__(self, message: str, signature: Optional[str] = None, **context):
        super().__init__(message, **context)
        self.signature = signature


class DecryptionFailed(BotException):
    """Raised when the stored private key cannot be decrypted."""

    user_message = (
        "Failed to decrypt your wallet key. The encryption key has changed, so retrying "
        "will not help: the wallet must be reset and re-registered with its private key."
    )


class WalletRegistrationError(BotException):
    """Raised when a wallet cannot be registered for a user."""
    pass
