"""Command line interface for imfx.

Entry points live in ``imfx.cli.main``: ``main`` for ``imfx`` and one
function per effect for the ``imfx-<effect>`` console scripts.
"""
