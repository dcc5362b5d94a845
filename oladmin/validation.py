"""Existence checks for local file sets."""

import os
from dataclasses import dataclass
from typing import Iterable, Tuple

from .errors import ValidationError


@dataclass(frozen=True)
class ValidationResult:
    present: Tuple[str, ...] = ()
    missing: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.missing


def is_present(path: str) -> bool:
    """A path counts as present when it is a regular file we can read."""
    try:
        return os.path.isfile(path) and os.access(path, os.R_OK)
    except (OSError, ValueError):
        return False


def validate_paths(entries: Iterable[str]) -> ValidationResult:
    present, missing = [], []
    for entry in entries:
        (present if is_present(entry) else missing).append(entry)
    return ValidationResult(tuple(present), tuple(missing))


def require_all_present(result: ValidationResult) -> ValidationResult:
    """
    Enforce the whole-batch policy: a partial file set is never shipped.

    Raises:
        ValidationError: listing every missing path, in input order
    """
    if result.missing:
        raise ValidationError(result.missing)
    return result
