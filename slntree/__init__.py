"""slntree: a live, lazily expanded tree view over Visual Studio solution files.

``slntree.solution_model`` parses and edits ``.sln`` text and watches it for
changes; ``slntree.tree_sync`` keeps an expandable tree in step with that model.
The ``slntree`` command lives in ``slntree.cli``.
"""

from __future__ import annotations

from .errors import ExternalCollaboratorError, IdentityDecodeError, MutationReport, ParseError, SolutionError

__version__ = "0.1.0"

__all__ = [
    "ExternalCollaboratorError",
    "IdentityDecodeError",
    "MutationReport",
    "ParseError",
    "SolutionError",
    "__version__",
]
