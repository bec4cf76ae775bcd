"""Plan and state output rendering (Terraform-style)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

import typer

from kkp_provisioner.engine.types import Action

if TYPE_CHECKING:
    from collections.abc import Callable

    from kkp_provisioner.core.state import State
    from kkp_provisioner.engine.events import ProgressEvent
    from kkp_provisioner.engine.types import ResourceChange


class _ActionStyle(NamedTuple):
    color: str
    symbol: str
    progress_verb: str
    done_verb: str


_ACTION_STYLES: dict[str, _ActionStyle] = {
    "create": _ActionStyle("green", "+", "Creating", "Creation complete"),
    "update": _ActionStyle("yellow", "~", "Updating", "Update complete"),
    "delete": _ActionStyle("red", "-", "Destroying", "Destroy complete"),
    "no-op": _ActionStyle("bright_black", " ", "", ""),
}

_ACTION_DESC: dict[str, str] = {
    "create": "will be created",
    "update": "will be updated in-place",
    "delete": "will be destroyed",
    "no-op": "is up-to-date",
}


def styler(color: bool) -> Callable[..., str]:
    """Return ``typer.style`` when *color* is True, otherwise a passthrough."""
    if color:
        return typer.style
    return lambda text, **_kw: text


def _align_values(items: dict[str, str]) -> list[tuple[str, str]]:
    """Right-pad keys so ``=`` signs align."""
    if not items:
        return []
    max_key = max(len(k) for k in items)
    return [(k.ljust(max_key), v) for k, v in items.items()]


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    if value is None:
        return "null"
    if isinstance(value, dict):
        inner = ", ".join(f"{k} = {_format_value(v)}" for k, v in sorted(value.items()))
        return f"{{{inner}}}"
    return str(value)


def _change_attrs(change: ResourceChange) -> dict[str, str]:
    if change.action == Action.CREATE and change.desired:
        return {k: _format_value(v) for k, v in change.desired.items()}
    if change.action == Action.UPDATE and change.diff:
        return {
            k: f"{_format_value(d['from'])} -> {_format_value(d['to'])}"
            for k, d in change.diff.items()
        }
    if change.action == Action.DELETE and change.prior:
        return {k: _format_value(change.prior.get(k)) for k in ("id", "name", "status")}
    return {}


def has_actionable_changes(change: ResourceChange) -> bool:
    return change.action != Action.NOOP


def format_change(change: ResourceChange, *, color: bool = True) -> str:
    """Render a ResourceChange as a Terraform-style block."""
    if change.action == Action.NOOP:
        return "No changes. Project is up-to-date."

    style = styler(color)
    action_val = change.action.value
    sc = {"fg": _ACTION_STYLES[action_val].color}
    symbol = _ACTION_STYLES[action_val].symbol

    resource_type, _, name = change.address.partition(".")
    lines = [
        style(f"  # {change.address} {_ACTION_DESC[action_val]}", bold=True, **sc),
        style(f'  {symbol} resource "{resource_type}" "{name}" {{', **sc),
        *[
            style(f"      {symbol} {k} = {v}", **sc)
            for k, v in _align_values(_change_attrs(change))
        ],
        style("    }", **sc),
    ]
    return "\n".join(lines)


def format_event(event: ProgressEvent) -> str:
    """One-line description of a progress event for spinners."""
    verb = _ACTION_STYLES.get(event.operation, _ACTION_STYLES["no-op"]).progress_verb
    verb = verb or event.operation.capitalize()
    state = f" [{event.state}]" if event.state else ""
    return f"{verb} {event.resource_id}{state} (attempt {event.attempt})"


def format_state(state: State, *, color: bool = True) -> str:
    """Render the tracked project like ``terraform show``."""
    if state.project is None:
        return "No project tracked in state."
    style = styler(color)
    inst = state.project
    items = {k: _format_value(v) for k, v in sorted(inst.attributes.items())}
    lines = [
        style(f"# {inst.address}:", bold=True),
        *[f"  {k} = {v}" for k, v in _align_values(items)],
    ]
    return "\n".join(lines)


def format_apply_summary(change: ResourceChange, *, color: bool = True) -> str:
    """Render ``Apply complete! <address>: Creation complete.``"""
    style = styler(color)
    header = style("Apply complete!", fg="green", bold=True)
    done = _ACTION_STYLES[change.action.value].done_verb or "No changes"
    return f"{header} {change.address}: {done}."
