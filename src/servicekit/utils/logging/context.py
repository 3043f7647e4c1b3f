"""Log context management using contextvars for async-safe metadata."""
import contextvars
import functools
import inspect
import uuid
from typing import Any, Dict, Optional


# Context variables for async-safe context propagation
_correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id", default=None
)
_service_name_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "service_name", default=None
)
_operation_name_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "operation_name", default=None
)
_fields_var: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    "log_fields", default={}
)


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID from context."""
    return _correlation_id_var.get()


def get_service_name() -> Optional[str]:
    """Get current service name from context."""
    return _service_name_var.get()


def set_service_name(service_name: Optional[str]) -> None:
    _service_name_var.set(service_name)


def get_operation_name() -> Optional[str]:
    """Get current operation name from context."""
    return _operation_name_var.get()


def get_context() -> Dict[str, Any]:
    """Get all context values as a dictionary (unset values omitted)."""
    context = dict(_fields_var.get())
    for name, var in (
        ("correlation_id", _correlation_id_var),
        ("service_name", _service_name_var),
        ("operation_name", _operation_name_var),
    ):
        value = var.get()
        if value is not None:
            context[name] = value
    return context


class log_context:
    """Context manager adding metadata to every log record in its scope.

    Works with both ``with`` and ``async with``; values are restored on exit.

    Example:
        async with log_context(operation_name="cache_warmup", tenant="acme"):
            logger.info("Warming cache")   # carries operation_name and tenant
    """

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        operation_name: Optional[str] = None,
        **fields: Any,
    ):
        self.correlation_id = correlation_id
        self.operation_name = operation_name
        self.fields = fields
        self._tokens: list = []

    def __enter__(self) -> "log_context":
        if self.correlation_id is not None:
            self._tokens.append(_correlation_id_var.set(self.correlation_id))
        if self.operation_name is not None:
            self._tokens.append(_operation_name_var.set(self.operation_name))
        if self.fields:
            merged = {**_fields_var.get(), **self.fields}
            self._tokens.append(_fields_var.set(merged))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        while self._tokens:
            token = self._tokens.pop()
            token.var.reset(token)

    async def __aenter__(self) -> "log_context":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def with_correlation_id(func):
    """Decorator running ``func`` under a fresh correlation ID.

    Example:
        @with_correlation_id
        async def handle_job(job):
            logger.info("Handling job")   # carries a new correlation_id
    """
    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            async with log_context(correlation_id=str(uuid.uuid4())):
                return await func(*args, **kwargs)
        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with log_context(correlation_id=str(uuid.uuid4())):
            return func(*args, **kwargs)
    return wrapper
