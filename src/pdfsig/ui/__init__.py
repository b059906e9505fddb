"""User-facing front ends (command line)."""
