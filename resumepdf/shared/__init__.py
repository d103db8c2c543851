"""Shared utilities: errors, logging, ids."""
