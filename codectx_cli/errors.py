"""Errors surfaced to the command line. Extraction itself never raises these."""

from __future__ import annotations


class CodeContextError(Exception):
    """Base class for fatal configuration problems."""

    exit_code = 1


class ProjectRootError(CodeContextError):
    """The project root does not exist or cannot be read."""

    exit_code = 2


class InvalidFormatError(CodeContextError):
    """An output-format selector outside the supported set."""

    exit_code = 2


class NoSourceFilesError(CodeContextError):
    """No file with a supported extension exists under the root."""

    exit_code = 3
