"""Kocmoc Stage: membership-gated messaging and session integrity core."""

__version__ = "0.1.0"
