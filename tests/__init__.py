"""
Test suite for the Fleet retry controller.

This package contains tests covering:
- Cache adapters (flat file and TinyDB) and pruning
- Backoff decisions and statistics
- Fleet API client, transport retry and resource helpers
- Remediation dispatcher against a fake Fleet server
- Configuration loading, environment overlay and CLI wiring
"""
