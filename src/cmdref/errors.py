"""Exceptions raised by the command reference tooling."""

from __future__ import annotations


class CmdrefError(Exception):
    """Base class for all cmdref failures."""


class ValidationError(CmdrefError, ValueError):
    """Input rejected before touching the document."""


class NotFoundError(CmdrefError, LookupError):
    """No entry matched a lookup."""


class DocumentExistsError(CmdrefError, FileExistsError):
    """Refused to overwrite an existing reference document."""
