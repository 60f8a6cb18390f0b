"""Shared utilities (errors, logging, text helpers)."""
