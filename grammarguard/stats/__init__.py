"""Derived statistics over the history log."""
