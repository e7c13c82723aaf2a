"""Command line interface for ledgerimport."""
