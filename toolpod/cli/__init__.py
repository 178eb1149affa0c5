"""Command line interface for toolpod."""
