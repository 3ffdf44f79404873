"""Pick an output mode for a ServiceResult.

``--json`` dumps the result model, ``--quiet`` prints ids only, and the
default hands off to the Rich renderers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from refnet.output.renderers import render_quiet, render_result

if TYPE_CHECKING:
    from refnet.services.result import ServiceResult


@dataclass(frozen=True)
class OutputSettings:
    """The output-related subset of the global CLI flags."""

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format a ServiceResult for display."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2, exclude_none=True)
    if settings.quiet:
        return render_quiet(result)
    return render_result(result, verbose=settings.verbose)
