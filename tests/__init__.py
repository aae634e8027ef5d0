# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Starter API:
# - test_shutdown_coordinator.py: Shutdown triggers, cleanup order, deadline
# - test_listener.py: uvicorn adapter used by the coordinator
# - test_server.py: Process bootstrap
# - test_api.py: Middleware, error envelope and health probes
# - test_auth.py: Bearer token verification
# - test_mailer.py, test_supabase_client.py, test_config.py: Library modules
#
# Run tests with: pytest
# =============================================================================
