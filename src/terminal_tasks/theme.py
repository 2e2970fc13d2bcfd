"""Color & style helpers.

Decisions:
- Truecolor preferred; falls back to 256-color cube if unsupported.
- Disables automatically when not a TTY unless FORCE_COLOR=1.
- Honors NO_COLOR for complete disable.
- Palette overrides via TM_COLOR_* environment variables or .env file.
"""
from __future__ import annotations
import os, sys

from .config import env_value, truthy

_FORCE = truthy(os.environ.get("FORCE_COLOR"))
_NO_COLOR = os.environ.get("NO_COLOR") is not None
_ENABLE = (_FORCE or sys.stdout.isatty()) and not _NO_COLOR
_COLORTERM = os.environ.get("COLORTERM", "").lower()
_USE_TRUECOLOR = _ENABLE and any(tok in _COLORTERM for tok in ("truecolor", "24bit"))

def _code(part: str) -> str:
    return f"\033[{part}m" if _ENABLE else ''

def _valid_hex(value: str | None) -> bool:
    if not value:
        return False
    h = value.lstrip('#')
    return len(h) == 6 and all(c in '0123456789abcdefABCDEF' for c in h)

def _hex_to_rgb(hex_code: str) -> tuple[int,int,int]:
    h = hex_code.lstrip('#')
    return int(h[0:2],16), int(h[2:4],16), int(h[4:6],16)

def _fg_256(r: int, g: int, b: int) -> str:
    """Approximate RGB to xterm 256-color cube."""
    def to_6(x: int) -> int:
        return int(round(x / 255 * 5))
    idx = 16 + 36 * to_6(r) + 6 * to_6(g) + to_6(b)
    return f"\033[38;5;{idx}m"

def _from_hex(hex_code: str) -> str:
    if not _ENABLE:
        return ''
    r, g, b = _hex_to_rgb(hex_code)
    if _USE_TRUECOLOR:
        return f"\033[38;2;{r};{g};{b}m"
    return _fg_256(r, g, b)

def _palette(name: str, default: str) -> str:
    value = env_value(name)
    return '#' + value.lstrip('#') if _valid_hex(value) else default

RESET = _code('0')
BOLD = _code('1')
DIM = _code('2')

HEX_PRIMARY = _palette('TM_COLOR_PRIMARY', '#476EAE')
HEX_PENDING = _palette('TM_COLOR_PENDING', '#48B3AF')
HEX_DONE = _palette('TM_COLOR_DONE', '#A7E399')

PRIMARY = _from_hex(HEX_PRIMARY)
C_PENDING = _from_hex(HEX_PENDING)
C_DONE = _from_hex(HEX_DONE)

HEADER_COLOR = PRIMARY
ID_COLOR = PRIMARY + BOLD
RULE_COLOR = DIM + PRIMARY

def status_color(completed: bool) -> str:
    return C_DONE if completed else C_PENDING

def color(text: str, *styles: str) -> str:
    """Apply ANSI styles to a given text."""
    if not _ENABLE or not any(styles):
        return text
    return ''.join(styles) + text + RESET

__all__ = [
    'color','status_color','RESET','BOLD','DIM','HEADER_COLOR','ID_COLOR','RULE_COLOR',
]
