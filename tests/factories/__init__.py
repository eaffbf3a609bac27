"""Factories for generating test data."""
