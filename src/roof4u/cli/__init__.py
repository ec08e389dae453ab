"""Roof4U command-line interface."""
