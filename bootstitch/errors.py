"""Error taxonomy for bootstitch.

Every failure is fatal to a generation run: the pipeline stops at the first
raised ``BootstitchError`` and reports it, there is no partial-success or
rollback model.
"""

from __future__ import annotations


class BootstitchError(Exception):
    """Base class for all errors raised by bootstitch."""


class MalformedDescriptor(BootstitchError):
    """Raised when a build descriptor violates a structural assumption.

    Examples: the text is not well-formed XML, the root element is not
    ``<project>``, or no project ``<artifactId>`` can be found.
    """


class ExternalToolFailure(BootstitchError):
    """Raised when an external collaborator fails.

    Covers non-zero process exits, process timeouts, and network errors.

    Attributes:
        stage: Pipeline stage that invoked the collaborator.
        output: Captured tool output (stdout and stderr), possibly empty.
    """

    def __init__(self, stage: str, message: str, output: str = "") -> None:
        self.stage = stage
        self.output = output
        super().__init__(message)


class FilesystemConflict(BootstitchError):
    """Raised when a target directory already exists or is not writable."""


class ParameterError(BootstitchError):
    """Raised when a non-interactive parameter fails validation."""
