"""Releases that crates.io lists but cannot serve.

Fetching any of these fails deterministically upstream, so they are removed
from every selection. Update the table here; the selection logic does not
need to change.
"""

from __future__ import annotations

UNAVAILABLE_RELEASES: frozenset[tuple[str, str]] = frozenset(
    {
        ("STD", "0.1.0"),
        ("glib-2-0-sys", "0.0.1"),
        ("glib-2-0-sys", "0.0.2"),
        ("glib-2-0-sys", "0.0.3"),
        ("glib-2-0-sys", "0.0.4"),
        ("glib-2-0-sys", "0.0.5"),
        ("glib-2-0-sys", "0.0.6"),
        ("glib-2-0-sys", "0.0.7"),
        ("glib-2-0-sys", "0.0.8"),
        ("glib-2-0-sys", "0.1.0"),
        ("glib-2-0-sys", "0.1.1"),
        ("glib-2-0-sys", "0.1.2"),
        ("glib-2-0-sys", "0.2.0"),
        ("gobject-2-0-sys", "0.0.2"),
        ("gobject-2-0-sys", "0.0.3"),
        ("gobject-2-0-sys", "0.0.4"),
        ("gobject-2-0-sys", "0.0.5"),
        ("gobject-2-0-sys", "0.0.6"),
        ("gobject-2-0-sys", "0.0.7"),
        ("gobject-2-0-sys", "0.0.8"),
        ("gobject-2-0-sys", "0.0.9"),
        ("gobject-2-0-sys", "0.1.0"),
        ("gobject-2-0-sys", "0.2.0"),
        ("ojfiewijogwhiogerhiugerhiuegr", "0.1.0"),
        ("ojfiewijogwhiogerhiugerhiuegr", "0.1.1"),
        ("ojfiewijogwhiogerhiugerhiuegr", "0.1.2"),
        ("rustbook", "0.1.0"),
        ("rustbook", "0.2.0"),
        ("rustbook", "0.3.0"),
        ("cargo-ctags", "0.2.3"),
        # https://github.com/rust-lang/crates.io/issues/1201
        ("wright", "0.2.2"),
    }
)
