"""Pytest configuration for all tests."""

import os

import pytest


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Hide DELIVERY_* variables of the calling shell from every test."""
    for key in list(os.environ):
        if key.startswith("DELIVERY_"):
            monkeypatch.delenv(key)
