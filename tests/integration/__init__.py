"""
Integration tests for the alert console.

These tests verify that components work together correctly against an
in-memory hub and a mocked backend.

Run with:
    pytest tests/integration/ -v -m integration

Skip with:
    pytest -m "not integration"
"""
