"""Shared helpers: structured logging and observables."""
