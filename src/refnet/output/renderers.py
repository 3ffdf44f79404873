"""Operation-specific Rich renderers for ServiceResult.

Dispatched by ``result.op`` in :func:`render_result`; unknown ops fall
through to a key-value renderer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from refnet.output.console import create_console, get_output, style_for_role

if TYPE_CHECKING:
    from rich.console import Console

    from refnet.services.result import ServiceResult


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to text via Rich."""
    console = create_console()
    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
        if verbose:
            _render_meta(console, result)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Node ids one per line, or a bare status line."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"
    nodes = result.data.get("nodes")
    if isinstance(nodes, list) and nodes:
        return "\n".join(str(n["id"]) for n in nodes if isinstance(n, dict) and "id" in n)
    if result.op == "select_node":
        return str(result.data.get("id", ""))
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="refnet.ok"), Text(f"  {result.op}", style="refnet.op"))


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="refnet.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="refnet.id")
    elif key == "path":
        v = Text(str(value), style="refnet.path")
    elif key == "name":
        v = Text(str(value), style="refnet.name")
    elif key == "role":
        v = Text(str(value), style=style_for_role(str(value)))
    else:
        v = Text(str(value))
    console.print(k, v, sep="")


def _render_meta(console: Console, result: ServiceResult) -> None:
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(console: Console, span_data: dict[str, Any], indent: int = 4) -> None:
    prefix = " " * indent
    duration = span_data.get("duration_ms", 0.0)
    style = "bold red" if duration > 1000 else "yellow" if duration > 100 else "dim"
    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {span_data.get('name', '?')}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)
    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _node_table(nodes: list[dict[str, Any]], *, positioned: bool = False) -> Table:
    """Build a Rich Table of network nodes."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="refnet.id", no_wrap=True)
    table.add_column("Name", style="refnet.name")
    table.add_column("Role")
    table.add_column("Depth", justify="right")
    if positioned:
        table.add_column("X", justify="right")
        table.add_column("Y", justify="right")
    table.add_column("Multi", style="refnet.multi")

    for node in nodes:
        role = str(node.get("role", ""))
        row: list[str | Text] = [
            str(node.get("id", "")),
            str(node.get("name", "")),
            Text(role, style=style_for_role(role)),
            str(node.get("depth", "")),
        ]
        if positioned:
            row.append(f"{node['x']:.1f}" if "x" in node else "")
            row.append(f"{node['y']:.1f}" if "y" in node else "")
        row.append("yes" if node.get("multi_referrer") else "")
        table.add_row(*row)
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(
        Text("ERROR", style="refnet.error"),
        Text(f"  {result.op}", style="refnet.op"),
        Text(": "),
        msg,
        sep="",
    )
    if err is not None and verbose and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")
    if err is not None:
        console.print(Text(f"  code: {err.code}", style="dim"))


# ── Network renderers ─────────────────────────────────────────────────


def _render_network(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """build_network / layout_network: summary fields, then the node table."""
    d = result.data
    _status_line(console, result)
    for key in ("root_id", "depth", "state"):
        if key in d:
            _field(console, key, d[key])
    nodes = d.get("nodes", [])
    _field(console, "nodes", len(nodes))
    _field(console, "edges", len(d.get("edges", [])))
    if d.get("empty"):
        console.print(Text("  No members in this network; nothing to lay out.", style="dim"))
    if nodes:
        console.print()
        positioned = any("x" in n for n in nodes)
        console.print(_node_table(nodes, positioned=positioned))
    if verbose and d.get("edges"):
        console.print()
        for edge in d["edges"]:
            marker = " (multi)" if edge.get("multi_referrer") else ""
            console.print(f"  {edge['source']} -> {edge['target']}{marker}")


def _render_filter(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "root_id", d.get("root_id", ""))
    nodes = d.get("nodes", [])
    _field(console, "visible", f"{len(nodes)} of {d.get('total', len(nodes))}")
    if nodes:
        console.print()
        console.print(_node_table(nodes, positioned=True))


def _render_selection(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key in ("id", "name", "role", "email", "phone", "depth"):
        value = result.data.get(key)
        if value is not None:
            _field(console, key, value)
    _field(console, "referred_by", result.data.get("incoming_referrals", 0))
    _field(console, "referrals", result.data.get("outgoing_referrals", 0))
    if result.data.get("multi_referrer"):
        console.print(Text("  referred by several people", style="refnet.multi"))


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)


_OP_RENDERERS: dict[str, Any] = {
    "build_network": _render_network,
    "layout_network": _render_network,
    "filter_network": _render_filter,
    "select_node": _render_selection,
    "init_store": _render_generic,
    "load_store": _render_generic,
}
