"""Masking of sensitive metadata before log records are written."""

import dataclasses
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

SENSITIVE_KEYS = (
    "authorization",
    "email",
    "pass",
    "password",
    "hash",
    "token",
    "cookie",
    "cookies",
    "phone",
)

REDACTED = "[REDACTED]"


def is_sensitive(key: Any) -> bool:
    """Check whether a metadata key names a sensitive value."""
    lowered = str(key).lower()
    return any(s in lowered for s in SENSITIVE_KEYS)


def redact(value: Any) -> Any:
    """
    Return a copy of ``value`` with sensitive keys masked at any depth.

    Mappings are rebuilt as dicts, lists and tuples are walked so mappings
    nested inside them are covered too. Dataclass instances and pydantic
    models are converted to dicts first. Scalars are returned unchanged.

    Args:
        value: Metadata to scrub

    Returns:
        Scrubbed copy; the input is not mutated
    """
    if isinstance(value, BaseModel):
        value = value.model_dump()
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)

    if isinstance(value, Mapping):
        return {
            k: REDACTED if is_sensitive(k) else redact(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [redact(v) for v in value]
    if isinstance(value, tuple):
        return tuple(redact(v) for v in value)
    return value
