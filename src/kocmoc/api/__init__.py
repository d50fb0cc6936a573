"""HTTP surface of the Kocmoc service."""
