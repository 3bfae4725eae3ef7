"""Reusable test fixtures for chocokit tests."""
