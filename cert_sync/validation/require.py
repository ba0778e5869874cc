import re
from pathlib import Path
from typing import Any, Match, Type, TypeVar, Pattern, Iterable
from cert_sync.exception.validation_exceptions import ValidationError

T = TypeVar("T")

HOSTNAME_PATTERN = re.compile(
    r"^(?:\*\.)?" # optional wildcard
    r"(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)*" # leading labels
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$" # last label
)


class Require():
    @staticmethod
    def present(
        field: str,
        val: Any,
        custom_err: str | None = None
    ) -> None:
        if val is None or val == "":
            Require._raise_error(
                default_err=f"Field '{field}' is required",
                custom_err=custom_err
            )

    @staticmethod
    def match(
        field: str,
        val: Any,
        pattern: str | Pattern[str],
        custom_err: str | None = None
    ) -> Match[str]:
        match = re.fullmatch(pattern, str(val))
        if not match:
            Require._raise_error(
                default_err=f"Value '{field}={val}' does not match to '{pattern}' pattern",
                custom_err=custom_err
            )
        return match

    @staticmethod
    def min(
        field: str,
        val: int | float,
        min_val: int | float,
        custom_err: str | None = None
    ) -> None:
        if val < min_val:
            Require._raise_error(
                default_err=f"Value '{field}={val}' is too small, minimal value is {min_val}",
                custom_err=custom_err
            )

    @staticmethod
    def max(
        field: str,
        val: int | float,
        max_val: int | float,
        custom_err: str | None = None
    ) -> None:
        if val > max_val:
            Require._raise_error(
                default_err=f"Value '{field}={val}' is too big, maximum value is {max_val}",
                custom_err=custom_err
            )

    @staticmethod
    def type(
        field: str,
        val: object,
        class_type: Type[T],
        custom_err: str | None = None
    ) -> None:
        if not isinstance(val, class_type):
            Require._raise_error(
                default_err=f"Value '{field}={val}' has invalid type, must be a {class_type.__name__}",
                custom_err=custom_err
            )

    @staticmethod
    def number(
        field: str,
        val: Any,
        class_type: Type[int] | Type[float],
        custom_err: str | None = None
    ) -> int | float:
        try:
            return class_type(val)
        except (TypeError, ValueError):
            Require._raise_error(
                default_err=f"Value '{field}={val}' is not a valid {class_type.__name__}",
                custom_err=custom_err
            )

    @staticmethod
    def hostname(
        field: str,
        val: str,
        custom_err: str | None = None
    ) -> None:
        Require.match(
            field=field,
            val=val,
            pattern=HOSTNAME_PATTERN,
            custom_err=custom_err or f"Value '{field}={val}' is not a valid domain"
        )

    @staticmethod
    def unique(
        field: str,
        vals: Iterable[Any],
        custom_err: str | None = None
    ) -> None:
        seen = set()
        for val in vals:
            if val in seen:
                Require._raise_error(
                    default_err=f"Value '{field}' contains duplicated '{val}' item",
                    custom_err=custom_err
                )
            seen.add(val)

    @staticmethod
    def not_dir(
        field: str,
        val: str | Path,
        custom_err: str | None = None
    ) -> Path:
        path = Path(val).expanduser()
        if path.is_dir():
            Require._raise_error(
                default_err=f"Path provided for '{field}={val}' is a directory, expected a file",
                custom_err=custom_err
            )
        return path

    @staticmethod
    def one_of(
        field: str,
        val: str,
        allowed_values: Iterable[Any],
        custom_err: str | None = None
    ) -> None:
        if val not in allowed_values:
            Require._raise_error(
                default_err=f"Value '{field}={val}' is invalid, allowed choices: {(', ').join(sorted(allowed_values))}",
                custom_err=custom_err
            )

    @staticmethod
    def _raise_error(
        default_err: str,
        custom_err: str | None = None
    ) -> None:
        raise ValidationError(custom_err or default_err)
