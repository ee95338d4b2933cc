"""
Test suite for live objects.

Test structure:
- unit/ - Unit tests (fast, isolated)
- integration/ - Integration tests (real files, edited while bound)
- fixtures/ - Sample sources

Run tests:
    pytest                    # All tests
    pytest tests/unit         # Unit tests only
    pytest tests/integration  # Integration tests only
    pytest -k "hook"          # Tests matching name
"""
