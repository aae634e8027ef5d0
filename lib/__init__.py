# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Supabase client singleton (database + auth provider)
# - mailer.py: SMTP email delivery
# - utils.py: Shared base error class
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.mailer import EmailOptions, MailerError, send_email, send_email_async
from lib.utils import ApplicationError

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # Email
    "EmailOptions",
    "MailerError",
    "send_email",
    "send_email_async",
    # Utils
    "ApplicationError",
]
