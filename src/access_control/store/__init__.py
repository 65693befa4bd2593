"""Concept store interface and implementations."""
