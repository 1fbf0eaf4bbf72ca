"""Declarative contract suites for remote APIs."""
