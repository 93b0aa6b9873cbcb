"""
kvorm Test Suite.

This package contains:
- unit/: Unit tests (no external dependencies)
- integration/: Mapper tests against the in-memory store
- e2e/: Mapper tests against a live Redis (KVORM_E2E_TESTS=1)
"""
