# tests/integration/__init__.py
"""
Integration tests for the drying room supervisor.

These tests verify that the registry, supervisors, snapshot store,
notification centre and room runtimes work together as a complete
plant, including persistence across restarts.

Running Integration Tests:
    pytest tests/integration/                    # All integration tests
    pytest tests/integration/ -k runtime         # Runtime loop tests only
"""
