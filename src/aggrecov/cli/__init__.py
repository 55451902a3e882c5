"""aggrecov CLI."""
