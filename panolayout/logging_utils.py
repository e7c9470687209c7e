"""DEBUG call tracing for the reconstruction stages."""

from __future__ import annotations

import inspect
import logging
import reprlib
from functools import wraps
from typing import Any, Callable, MutableMapping, Optional

import numpy as np

_repr = reprlib.Repr()
_repr.maxother = 160
_repr.maxlist = 8
_repr.maxtuple = 8

MAX_ITEMS = 5
MAX_LENGTH = 400


def _summarize_array(value: np.ndarray) -> str:
    head = f"ndarray(shape={tuple(value.shape)}, dtype={value.dtype})"
    if value.size == 0:
        return head
    if value.size <= MAX_ITEMS:
        return f"{head}, values={_repr.repr(value.tolist())}"
    if not np.issubdtype(value.dtype, np.floating):
        return head
    finite = value[np.isfinite(value)]
    parts = [head]
    if finite.size:
        parts.append(f"min={float(finite.min()):.6g}, max={float(finite.max()):.6g}")
    if finite.size != value.size:
        parts.append(f"non_finite={value.size - int(finite.size)}")
    return ", ".join(parts)


def _safe_repr(value: Any) -> str:
    """Short description of ``value`` for a log line.

    Arrays report shape, range and non-finite count; meshes and graphs
    report their own ``summary()``; containers show their first items.
    """

    if isinstance(value, np.ndarray):
        return _summarize_array(value)
    if isinstance(value, dict):
        shown = [f"{_safe_repr(k)}: {_safe_repr(v)}" for k, v in list(value.items())[:MAX_ITEMS]]
        if len(value) > MAX_ITEMS:
            shown.append(f"... ({len(value)} items)")
        return "{" + ", ".join(shown) + "}"
    if isinstance(value, (list, tuple)):
        shown = [_safe_repr(item) for item in value[:MAX_ITEMS]]
        if len(value) > MAX_ITEMS:
            shown.append(f"... ({len(value)} items)")
        body = ", ".join(shown)
        return f"({body})" if isinstance(value, tuple) else f"[{body}]"

    summary = getattr(value, "summary", None)
    if callable(summary) and not inspect.isclass(value):
        return str(summary())
    rendered = _repr.repr(value)
    if len(rendered) > MAX_LENGTH:
        return rendered[:MAX_LENGTH] + "... (truncated)"
    return rendered


def _traced(func: Callable[..., Any], logger: logging.Logger, qualname: str) -> Callable[..., Any]:
    if getattr(func, "_debug_logging_wrapped", False):
        return func

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        if not logger.isEnabledFor(logging.DEBUG):
            return func(*args, **kwargs)
        described = [_safe_repr(a) for a in args] + [f"{k}={_safe_repr(v)}" for k, v in kwargs.items()]
        logger.debug("Entering %s(%s)", qualname, ", ".join(described))
        try:
            result = func(*args, **kwargs)
        except Exception:
            logger.exception("Exception in %s", qualname)
            raise
        logger.debug("Exiting %s -> %s", qualname, _safe_repr(result))
        return result

    wrapper._debug_logging_wrapped = True  # type: ignore[attr-defined]
    return wrapper


def _trace_methods(cls: type, logger: logging.Logger) -> None:
    for attr, value in list(vars(cls).items()):
        if attr.startswith("__"):
            continue
        qualname = f"{cls.__name__}.{attr}"
        if isinstance(value, (staticmethod, classmethod)):
            if value.__func__.__module__ == cls.__module__:
                setattr(cls, attr, type(value)(_traced(value.__func__, logger, qualname)))
        elif inspect.isfunction(value) and value.__module__ == cls.__module__:
            setattr(cls, attr, _traced(value, logger, qualname))


def apply_debug_logging(namespace: MutableMapping[str, Any], *, logger: Optional[logging.Logger] = None) -> None:
    """Trace every function and method defined in the module ``namespace`` at DEBUG level."""

    module_name = namespace.get("__name__")
    logger = logger or logging.getLogger(module_name or __name__)
    for name, value in list(namespace.items()):
        if getattr(value, "__module__", None) != module_name:
            continue
        if inspect.isfunction(value):
            namespace[name] = _traced(value, logger, name)
        elif inspect.isclass(value):
            _trace_methods(value, logger)
