"""Detect native system library dependencies of RubyGems."""

__version__ = "0.1.0"
