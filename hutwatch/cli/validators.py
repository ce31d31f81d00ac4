"""
Input validators for CLI commands.
Ensures data quality and provides better error messages.
"""

from datetime import date, datetime
from pathlib import Path
from typing import Optional

import typer


def validate_provider_type(value: str) -> str:
    """
    Validate a provider type tag against the provider registry.

    Args:
        value: Provider type tag (case-insensitive)

    Returns:
        Normalized (lowercase) type tag

    Raises:
        typer.BadParameter: If no provider is registered under the tag
    """
    from hutwatch.providers.registry import provider_registry

    if not value or not value.strip():
        raise typer.BadParameter("Provider type cannot be empty")

    value = value.strip().lower()
    if value not in provider_registry:
        raise typer.BadParameter(
            f"Provider '{value}' not found. "
            f"Available providers: {', '.join(provider_registry.available())}"
        )
    return value


def validate_date_string(value: Optional[str], allow_past: bool = False) -> Optional[str]:
    """
    Validate date string in YYYY-MM-DD format.

    Args:
        value: Date string to validate (can be None)
        allow_past: If False, rejects dates before today

    Returns:
        The validated date string (unchanged) or None if value is None

    Raises:
        typer.BadParameter: If date is invalid or in the past
    """
    if value is None:
        return None

    try:
        parsed_date = datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise typer.BadParameter(
            f"Invalid date format. Expected YYYY-MM-DD (e.g., 2026-07-15), got '{value}'"
        )

    if not allow_past and parsed_date < date.today():
        raise typer.BadParameter(
            f"Date cannot be in the past (got {value}, today is {date.today()})"
        )

    return value


def validate_targets_file(value: Optional[Path]) -> Optional[Path]:
    """Targets file must exist and be a regular file."""
    if value is None:
        return None
    if not value.exists():
        raise typer.BadParameter(f"Targets file not found: {value}")
    if not value.is_file():
        raise typer.BadParameter(f"Targets file is not a file: {value}")
    return value


# Typer callback functions for use with Option/Argument
def provider_type_callback(value: Optional[str]) -> Optional[str]:
    """Callback for validating provider types in Typer options."""
    if value is None:
        return None
    return validate_provider_type(value)


def date_callback(value: Optional[str]) -> Optional[str]:
    """Callback for validating dates in Typer options."""
    return validate_date_string(value, allow_past=False)


def targets_file_callback(value: Optional[Path]) -> Optional[Path]:
    return validate_targets_file(value)
