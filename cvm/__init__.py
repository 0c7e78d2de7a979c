"""cvm — Crate Version Manager.

Checks that every package whose sources changed relative to a reference
branch also bumped its version, and optionally bumps it.
"""

__version__ = "0.4.0"
