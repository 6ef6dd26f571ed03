"""
Tk adapter helpers that do not need a display.
"""

import pytest

pytest.importorskip("tkinter")

from calculator_app import key_modifiers  # noqa: E402


@pytest.mark.parametrize("state,system,expected", [
    (0x0, "x11", (False, False)),
    (0x4, "x11", (True, False)),
    (0x8, "x11", (False, False)),     # Alt
    (0x40, "x11", (False, True)),     # Super/Meta
    (0x8, "aqua", (False, True)),     # Command
    (0x40, "aqua", (False, False)),
    (0x4 | 0x40, "win32", (True, True)),
    (0x10, "x11", (False, False)),    # NumLock
])
def test_key_modifiers(state, system, expected):
    assert key_modifiers(state, system) == expected
