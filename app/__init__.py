# =============================================================================
# app/ - FastAPI Application Package
# =============================================================================
# This package contains the FastAPI web application:
# - main.py: App factory, middleware setup, routers
# - server.py: Process bootstrap with graceful shutdown
# - config.py: Environment variable loading and settings
# - exceptions.py: Error envelope and exception handlers
# - middleware/: Rate limiting, security headers, request logging
# - auth/: Bearer token authentication
# - routers/: API endpoint definitions organized by feature
#
# The app layer is thin - it handles HTTP concerns and delegates
# lifecycle and storage concerns to core/ and lib/.
# =============================================================================
