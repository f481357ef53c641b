"""duskup - Dusk compiler toolchain manager and contract workflow."""

__version__ = "0.1.0"
