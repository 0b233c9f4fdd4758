"""Error taxonomy and mutation outcome records.

Parse failures, token decode failures, and collaborator failures are raised.
Missing mutation targets are not errors: they surface as unchanged text and a
``MutationReport`` with ``changed=False``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class SolutionError(Exception):
    """Base class for all slntree errors."""


class ParseError(SolutionError):
    """A block-opening line did not match its trailer grammar."""

    def __init__(self, reason: str, line_number: int, line: str) -> None:
        self.reason = reason
        self.line_number = line_number
        self.line = line
        super().__init__(f"line {line_number}: {reason}: {line!r}")


class IdentityDecodeError(SolutionError):
    """A node token could not be decoded into a known identity variant."""

    def __init__(self, token: str, reason: str) -> None:
        self.token = token
        self.reason = reason
        super().__init__(f"invalid node token ({reason})")


class ExternalCollaboratorError(SolutionError):
    """Filesystem or external-command failure at the model boundary."""

    def __init__(self, operation: str, target: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.target = target
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation} failed for {target}{detail}")


@dataclass
class MutationReport:
    """Outcome of one (possibly multi-step) model mutation.

    Steps are not rolled back: ``failed_steps`` lists exactly the sub-steps
    that did not apply, and ``partial`` is true when some but not all did.
    """

    changed: bool = False
    reason: str | None = None
    applied_steps: list[str] = field(default_factory=list)
    failed_steps: list[str] = field(default_factory=list)
    result: str | None = None

    @property
    def partial(self) -> bool:
        return bool(self.applied_steps) and bool(self.failed_steps)

    @property
    def ok(self) -> bool:
        return not self.failed_steps

    def warning_text(self) -> str | None:
        """Return a user-facing warning when any sub-step failed."""
        if not self.failed_steps:
            return None
        failed = ", ".join(self.failed_steps)
        if self.applied_steps:
            return f"Partially completed; failed steps: {failed}"
        return f"Failed steps: {failed}"


__all__ = [
    "SolutionError",
    "ParseError",
    "IdentityDecodeError",
    "ExternalCollaboratorError",
    "MutationReport",
]
