from __future__ import annotations

from typing import Any, Mapping


class AppError(Exception):
    """Base class for ts_enricher errors.

    Carries a stable `code` (each subclass has its own default), the
    triggering `cause`, a `context` dict that is copied on construction,
    and an optional `location` naming the raising function.
    """

    default_code: str = "app_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        cause: BaseException | None = None,
        context: Mapping[str, Any] | None = None,
        location: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code: str = code or self.default_code
        self.cause = cause
        self.context: dict[str, Any] = dict(context or {})
        self.location = location

        if cause is not None:
            self.__cause__ = cause  # type: ignore[assignment]

    def __str__(self) -> str:
        parts: list[str] = [f"[{self.code}] {self.message}"]

        if self.location:
            parts.append(f"(at {self.location})")

        if self.cause is not None:
            parts.append(f"(cause: {self.cause!r})")

        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}("
            f"code={self.code!r}, "
            f"message={self.message!r}, "
            f"location={self.location!r}"
            ")"
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation of the error."""
        data: dict[str, Any] = {
            "type": type(self).__name__,
            "code": self.code,
            "message": self.message,
        }

        if self.location:
            data["location"] = self.location

        if self.context:
            data["context"] = dict(self.context)

        if self.cause is not None:
            data["cause"] = {
                "type": type(self.cause).__name__,
                "repr": repr(self.cause),
            }

        return data

    def add_context(self, **extra: Any) -> AppError:
        """Merge `extra` into the context and return self for re-raising."""
        self.context.update(extra)
        return self

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        *,
        message: str | None = None,
        code: str | None = None,
        context: Mapping[str, Any] | None = None,
        location: str | None = None,
    ) -> AppError:
        """Wrap `exc` as this error type, keeping it as the cause."""
        base_message = message or str(exc) or cls.__name__
        return cls(
            base_message,
            code=code,
            cause=exc,
            context=context,
            location=location,
        )


class ConfigError(AppError):
    """Configuration-related errors (missing files, invalid values, etc.)."""

    default_code = "config_error"


class DataError(AppError):
    """Data loading, validation, or feature-engineering errors."""

    default_code = "data_error"


class ColumnNotFoundError(DataError):
    """A requested column is absent from the input table's schema."""

    default_code = "column_not_found"


class TimestampParseError(DataError):
    """One or more values in the timestamp column could not be parsed.

    Raised for the whole call: no partially enriched table is returned.
    """

    default_code = "timestamp_parse_error"
