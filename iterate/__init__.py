"""Keeps unit-test files in sync with source changes pushed to a repository."""

__version__ = "0.1.0"
