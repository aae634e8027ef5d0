# =============================================================================
# core/ - Framework-Independent Logic
# =============================================================================
# This package holds code that does not depend on FastAPI:
# - lifecycle/: graceful shutdown coordination for the server process
# =============================================================================
