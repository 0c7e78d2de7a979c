"""Manifest reading and workspace enumeration."""
