"""
Custom exceptions for the Loyalty Engine
"""


class LoyaltyEngineError(Exception):
    """Base exception for all loyalty engine errors"""
    client_error = False


class ValidationError(LoyaltyEngineError):
    """Raised when caller-supplied input fails validation"""
    client_error = True


class InvalidAmountError(ValidationError):
    """Raised when an amount, balance or volume is negative or not a finite number"""
    pass


class UnknownProgramError(ValidationError):
    """Raised when a program identifier is not a known loyalty program"""
    pass


class UnknownTierError(ValidationError):
    """Raised when a membership tier identifier is not a known tier"""
    pass


class InvalidConversionError(ValidationError):
    """Raised when a conversion request is not meaningful (e.g. same program)"""
    pass


class RateNotFoundError(LoyaltyEngineError):
    """Raised when no direct or hub-routed rate exists between two programs"""
    client_error = True

    def __init__(self, from_program, to_program, hub_program=None):
        self.from_program = from_program
        self.to_program = to_program
        self.hub_program = hub_program
        message = f"No exchange rate from {from_program} to {to_program}"
        if hub_program is not None:
            message += f" (direct or via {hub_program})"
        super().__init__(message)


class ConfigurationError(LoyaltyEngineError):
    """Raised when tier, fee, rate or catalog configuration is malformed"""
    client_error = False
