"""Adapters: in-process implementations of the ports."""
