"""Command-line layer (Typer + Rich)."""
