"""
Test package for the Intent Engine.

Shared builders live in tests/factories.py; pytest fixtures in tests/conftest.py.
"""
