"""Domain types for the price lookup tool.

This package holds the provider-independent pieces: result records, error
kinds, the fiat amount lexer and chart range presets. Nothing here performs
network I/O.
"""

__all__ = [
    "chart_range",
    "errors",
    "fiat",
    "pricing",
]
