"""Command line tool for releasectl."""
