"""Rich Console factory and theme for refnet output.

Consoles render into a StringIO buffer so ``format_result() -> str``
stays a plain function. Rich drops color codes when there is no TTY.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

REFNET_THEME = Theme(
    {
        "refnet.ok": "bold green",
        "refnet.error": "bold red",
        "refnet.warning": "bold yellow",
        "refnet.op": "bold cyan",
        "refnet.key": "dim",
        "refnet.id": "bold blue",
        "refnet.path": "dim",
        "refnet.name": "bold",
        "refnet.role.member": "green",
        "refnet.role.referral": "blue",
        "refnet.role.lead": "yellow",
        "refnet.multi": "magenta",
    }
)

_ROLE_STYLES: dict[str, str] = {
    "member": "refnet.role.member",
    "referral": "refnet.role.referral",
    "lead": "refnet.role.lead",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=REFNET_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_role(role: str) -> str:
    """Rich style name for a role label."""
    return _ROLE_STYLES.get(role, "")
