"""Shared utilities: constants, errors, logging and problem id helpers."""
