"""Database operation decorators for consistent error handling."""

from collections.abc import Awaitable, Callable
from functools import wraps
import inspect
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import DatabaseOperationError


def _base_db_error_handler[**P, T](
    operation: str,
    id_params: dict[str, str] | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Wrap an async DB method so SQLAlchemy failures surface as DatabaseOperationError.

    Args:
        operation: Description of the operation, used in the error message.
        id_params: Maps an error attribute (e.g. ``"key"``) to the name of the
            decorated function's parameter that supplies it.

    Returns:
        The decorator.

    Raises:
        TypeError: At decoration time, if a named parameter does not exist.
    """
    id_params = id_params or {}

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        sig = inspect.signature(func)
        for param in id_params.values():
            if param not in sig.parameters:
                raise TypeError(
                    f"Decorator on '{func.__name__}' expects a parameter named "
                    f"'{param}', but the function has none."
                )

        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                identifiers: dict[str, Any] = {}
                if id_params:
                    bound = sig.bind_partial(*args, **kwargs)
                    for attr, param in id_params.items():
                        identifiers[attr] = bound.arguments.get(param)
                raise DatabaseOperationError(
                    f"Failed to {operation}", **identifiers
                ) from e

        return wrapper

    return decorator


def handle_db_errors[**P, T](
    operation: str,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator for database operations without a specific key."""
    return _base_db_error_handler(operation=operation)


def handle_option_db_errors[**P, T](
    operation: str,
    key_from: str = "key",
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator for option and transient operations; reports the key involved."""
    return _base_db_error_handler(operation=operation, id_params={"key": key_from})


def handle_object_db_errors[**P, T](
    operation: str,
    object_id_from: str = "object_id",
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator for stored-object operations; reports the object id involved."""
    return _base_db_error_handler(
        operation=operation, id_params={"object_id": object_id_from}
    )
