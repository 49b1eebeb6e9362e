"""Rich renderers for ServiceResult.

Every multi-step operation is drawn the same way: a status line, one
marked line per step, then the operation-specific extras looked up by
``result.op`` in :data:`_OP_EXTRAS`.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.text import Text

from edcctl.output.console import create_console, get_output, marker_for_status, style_for_status

if TYPE_CHECKING:
    from collections.abc import Callable

    from rich.console import Console

    from edcctl.services.result import ServiceResult


WORKFLOW_OP = "dsp_workflow"


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    The DSP workflow body is appended after the Rich output untouched, so
    wrapping and markup never alter it.
    """
    console = create_console()
    if result.ok:
        _status_line(console, result)
    else:
        _render_error(result, console, verbose=verbose)
    _render_steps(console, result.data.get("steps", []), verbose=verbose)
    if result.ok:
        extras = _OP_EXTRAS.get(result.op, _render_fields)
        extras(result, console)
    if verbose:
        _render_meta(console, result)

    text = get_output(console).rstrip("\n")
    if result.ok and result.op == WORKFLOW_OP:
        text = f"{text}\n\n{result.data.get('body', '')}"
    return text


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"
    if result.op == WORKFLOW_OP:
        return str(result.data.get("body", ""))
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text.assemble(("OK", "edc.ok"), (f"  {result.op}", "edc.op")))


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="edc.key")
    if isinstance(value, (dict, list)):
        v = Text(json.dumps(value, separators=(",", ":")))
    elif key == "id" or key.endswith("_id"):
        v = Text(str(value), style="edc.id")
    else:
        v = Text(str(value))
    console.print(Text.assemble(k, v))


def _render_steps(console: Console, steps: list[dict[str, Any]], *, verbose: bool) -> None:
    for step in steps:
        status = step.get("status", "ok")
        style = style_for_status(status)
        line = Text("  ")
        line.append(f"{marker_for_status(status)} {status:<8}", style=style)
        line.append(f" {step.get('name', '')}", style="edc.step")
        if step.get("detail"):
            line.append(f"  {step['detail']}")
        console.print(line)
        if verbose:
            for key, value in step.get("fields", {}).items():
                console.print(Text(f"      {key}: {value}", style="edc.key"))


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(Text.assemble(("ERROR", "edc.error"), (f"  {result.op}", "edc.op"), f": {msg}"))

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}", markup=False)


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print the meta block, including the telemetry span tree."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        elif k == "would_run":
            continue
        else:
            console.print(f"    {k}: {v}", markup=False)


def _render_telemetry_tree(console: Console, span_data: dict[str, Any], indent: int = 4) -> None:
    """Render a span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 10_000:
        style = "bold red"
    elif duration > 1000:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>10.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _render_would_run(result: ServiceResult, console: Console) -> None:
    commands = (result.meta or {}).get("would_run", [])
    if not commands:
        return
    console.print()
    console.print(Text("  Would run:", style="edc.warning"))
    for command in commands:
        console.print(Text(f"    {command}", style="edc.command"))


# ── Operation extras ──────────────────────────────────────────────────

_SKIP_FIELDS = frozenset({"steps", "body"})


def _render_fields(result: ServiceResult, console: Console) -> None:
    """Fallback: every scalar data entry as a key-value line."""
    for key, value in result.data.items():
        if key not in _SKIP_FIELDS:
            _field(console, key, value)
    _render_would_run(result, console)


def _render_install(result: ServiceResult, console: Console) -> None:
    d = result.data
    for key in ("release", "namespace", "dry_run"):
        if key in d:
            _field(console, key, d[key])
    _render_would_run(result, console)
    if d.get("next_steps") and not d.get("dry_run"):
        console.print()
        console.print(Text("  Next steps:", style="edc.step"))
        for command in d["next_steps"]:
            console.print(Text(f"    {command}", style="edc.command"))


def _render_upgrade(result: ServiceResult, console: Console) -> None:
    d = result.data
    for key in ("release", "namespace", "previous", "current"):
        if key in d:
            _field(console, key, d[key])
    if "backup" in d:
        _field(console, "backup", d["backup"].get("path", ""))
    _render_would_run(result, console)
    if d.get("rollback_command") and not d.get("dry_run"):
        console.print()
        console.print(Text("  To roll back:", style="edc.step"))
        console.print(Text(f"    {d['rollback_command']}", style="edc.command"))


def _render_workflow(result: ServiceResult, console: Console) -> None:
    d = result.data
    for key in ("offer_id", "negotiation_id", "transfer_process_id", "endpoint"):
        if key in d:
            _field(console, key, d[key])


def _render_verify(result: ServiceResult, console: Console) -> None:
    groups = result.data.get("groups", {})
    if groups:
        passed = sum(1 for status in groups.values() if status == "passed")
        _field(console, "groups_passed", f"{passed}/{len(groups)}")


def _render_nothing(result: ServiceResult, console: Console) -> None:
    _render_would_run(result, console)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_EXTRAS: dict[str, Callable[[ServiceResult, Console], None]] = {
    "install": _render_install,
    "edc_install": _render_install,
    "base_install": _render_install,
    "edc_upgrade": _render_upgrade,
    "dsp_workflow": _render_workflow,
    "verify": _render_verify,
    "ingress_install": _render_fields,
    "uninstall": _render_nothing,
    "edc_uninstall": _render_nothing,
    "base_uninstall": _render_nothing,
    "ingress_uninstall": _render_nothing,
}
