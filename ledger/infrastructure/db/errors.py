import asyncio
from contextlib import contextmanager

import asyncpg

from ledger.domain.errors import (ConstraintViolationError,
                                  InvalidStorageInputError,
                                  TransientStorageError)

TRANSIENT_ERRORS = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.InterfaceError,
    asyncpg.exceptions.QueryCanceledError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncio.TimeoutError,
    OSError,
)


@contextmanager
def storage_errors(operation: str):
    """
    Translate asyncpg failures into the ledger error taxonomy.

    Constraint breaches surface as ConstraintViolationError, values the
    database cannot take (out of range, bad encoding) as
    InvalidStorageInputError, connection problems and timeouts as
    TransientStorageError. Anything else propagates untouched.
    """
    try:
        yield
    except asyncpg.exceptions.IntegrityConstraintViolationError as e:
        raise ConstraintViolationError(
            operation, str(e), getattr(e, "constraint_name", None)
        ) from e
    except asyncpg.exceptions.DataError as e:
        raise InvalidStorageInputError(operation, str(e)) from e
    except TRANSIENT_ERRORS as e:
        raise TransientStorageError(operation, str(e)) from e
