"""Concrete adapters for the interfaces in :mod:`ragpipe.interfaces`.

Subpackages are imported directly (``ragpipe.providers.cache`` etc.) so
that heavy optional dependencies are only loaded when a backend is used.
"""
