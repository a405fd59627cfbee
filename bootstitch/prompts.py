"""Collection of the project parameters.

Values supplied up front (command line or environment) are taken as they
are. Everything else is asked for interactively with ``rich.prompt``, or
defaulted when running without input.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import ValidationError
from rich.prompt import Prompt

from bootstitch.config import (
    ARTIFACT_ID_PATTERN,
    DEFAULT_JAVA_VERSIONS,
    GROUP_ID_PATTERN,
    ProjectParams,
)
from bootstitch.errors import ParameterError
from bootstitch.initializr import BootMetadata
from bootstitch.utils import console, print_error

PACKAGING_CHOICES = ["jar", "war"]


def needs_metadata(overrides: dict[str, Any], interactive: bool) -> bool:
    """Whether Initializr metadata must be fetched before collecting."""
    return interactive or not overrides.get("boot_version")


def collect_parameters(
    overrides: dict[str, Any],
    metadata: BootMetadata | None = None,
    *,
    interactive: bool = True,
) -> ProjectParams:
    """Return validated ``ProjectParams``.

    Args:
        overrides: Values already chosen by the user, keyed by
            ``ProjectParams`` field name. ``None`` values count as unset.
        metadata: Initializr metadata supplying version choices and defaults.
        interactive: Prompt for missing values instead of defaulting them.

    Raises:
        ParameterError: If a supplied or defaulted value is invalid.
    """
    supplied = {key: value for key, value in overrides.items() if value is not None}
    defaults = ProjectParams()
    java_versions = metadata.java_versions if metadata else list(DEFAULT_JAVA_VERSIONS)
    java_default = metadata.default_java_version if metadata else defaults.java_version

    if not interactive:
        values: dict[str, Any] = {
            "group_id": defaults.group_id,
            "artifact_id": defaults.artifact_id,
            "boot_version": metadata.default_boot_version if metadata else None,
            "java_version": java_default,
            "packaging": defaults.packaging,
            **supplied,
        }
        try:
            return ProjectParams(**values)
        except ValidationError as exc:
            raise ParameterError(_describe(exc)) from exc

    values = dict(supplied)
    if "group_id" not in values:
        values["group_id"] = _ask_text("Java Group ID", defaults.group_id, GROUP_ID_PATTERN)
    if "artifact_id" not in values:
        values["artifact_id"] = _ask_text(
            "Base Artifact ID (project name)", defaults.artifact_id, ARTIFACT_ID_PATTERN
        )
    if "boot_version" not in values and metadata and metadata.boot_versions:
        choices = metadata.boot_version_ids
        default = metadata.default_boot_version
        values["boot_version"] = _ask_choice(
            "Spring Boot version", choices, default if default in choices else choices[0]
        )
    if "java_version" not in values:
        values["java_version"] = _ask_choice(
            "Java version",
            java_versions,
            java_default if java_default in java_versions else java_versions[0],
        )
    if "packaging" not in values:
        values["packaging"] = _ask_choice("Packaging type", PACKAGING_CHOICES, defaults.packaging)

    try:
        return ProjectParams(**values)
    except ValidationError as exc:
        raise ParameterError(_describe(exc)) from exc


# ---------------------------------------------------------------------------
# Prompt helpers
# ---------------------------------------------------------------------------


def _ask_text(label: str, default: str, pattern: str) -> str:
    while True:
        answer = Prompt.ask(label, default=default, console=console).strip()
        if re.fullmatch(pattern, answer):
            return answer
        print_error(f"  '{answer}' is not a valid value for {label}.")


def _ask_choice(label: str, choices: list[str], default: str) -> str:
    return Prompt.ask(label, choices=choices, default=default, console=console)


def _describe(exc: ValidationError) -> str:
    problems = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return "Invalid project parameters: " + "; ".join(problems)
