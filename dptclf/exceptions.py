"""Error types raised by the evaluation pipeline."""


class DptError(Exception):
    """Base class for all dptclf errors."""


class InputNotFound(DptError, FileNotFoundError):
    """A required input file (model, matrix or config) could not be loaded."""


class SchemaMismatch(DptError, ValueError):
    """The test matrix does not fit the classifier or the label scheme."""


class ConfigError(DptError, ValueError):
    """Invalid evaluation configuration."""


class OutputWriteError(DptError, OSError):
    """A chart could not be written to its target path."""


class _Undefined:
    """Marker for a metric that cannot be computed (e.g. AUC with no positives).

    Kept distinct from ``float('nan')`` so that callers have to handle it
    explicitly instead of letting it propagate through arithmetic.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "Undefined"

    __str__ = __repr__

    def __bool__(self) -> bool:
        return False

    def __format__(self, format_spec: str) -> str:
        # Precision and float type codes have no meaning for text
        format_spec = format_spec.split('.')[0].rstrip('eEfFgG%')
        return format(str(self), format_spec)

    def __reduce__(self):
        return (_Undefined, ())


UNDEFINED = _Undefined()


def is_undefined(value) -> bool:
    """Return True if ``value`` is the UNDEFINED marker."""
    return value is UNDEFINED
