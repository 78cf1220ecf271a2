class LedgerError(Exception):
    pass


class ConstraintViolationError(LedgerError):
    """A uniqueness or foreign-key constraint rejected a write."""

    def __init__(self, operation: str, message: str, constraint: str | None = None):
        self.operation = operation
        self.constraint = constraint
        super().__init__(f"Constraint violation in {operation}: {message}")


class TransientStorageError(LedgerError):
    """Connection loss or timeout; the caller decides whether to retry."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Storage unavailable during {operation}: {message}")


class InvalidTokenPrefixError(LedgerError, ValueError):
    def __init__(self, prefix: str):
        self.prefix = prefix
        super().__init__(f"Invalid token prefix {prefix!r}: must be a non-empty string")


class InvalidPaymentAmountError(LedgerError, ValueError):
    def __init__(self, satoshis):
        self.satoshis = satoshis
        super().__init__(f"Invalid payment amount {satoshis!r}: must be a positive integer of satoshis within BIGINT range")


class InvalidStorageInputError(LedgerError, ValueError):
    """The database rejected a value, e.g. an integer out of column range."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Invalid input for {operation}: {message}")
