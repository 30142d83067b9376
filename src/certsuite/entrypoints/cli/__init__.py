"""Command-line interface for CERTSUITE."""
