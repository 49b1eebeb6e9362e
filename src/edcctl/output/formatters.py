"""Rich/JSON output helpers.

The CLI renders ServiceResult for humans (Rich step lists) or machines
(``--json``).  ``--quiet`` reduces success to a single line, except for
the DSP workflow where it prints nothing but the fetched body.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from edcctl.output.renderers import render_quiet, render_result

if TYPE_CHECKING:
    from edcctl.services.result import ServiceResult


class OutputSettings(BaseModel):
    """Output mode resolved from the global CLI flags."""

    model_config = {"frozen": True}

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format a ServiceResult for display.

    ``--json`` wins over ``--quiet``, which wins over the default human
    rendering.
    """
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2, exclude_none=True)
    if settings.quiet:
        return render_quiet(result)
    return render_result(result, verbose=settings.verbose)
