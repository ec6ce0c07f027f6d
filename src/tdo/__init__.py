"""tdo: a small personal task tracker with short prefix-addressable identifiers."""

__version__ = "0.1.0"
