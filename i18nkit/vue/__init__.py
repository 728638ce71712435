"""Vue single-file component support."""
