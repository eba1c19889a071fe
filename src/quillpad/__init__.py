"""Quillpad - block-based structured note editor core.

A note is an ordered sequence of typed blocks. The editor package holds the
pure editing core; ``session`` adds debounced persistence and ``app`` serves
it over JSON-RPC.
"""

__version__ = "0.1.0"
