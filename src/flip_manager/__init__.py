"""py-flips — flip lifecycle management for Idena-style blockchains."""

__version__ = "0.1.0"
