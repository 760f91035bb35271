# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Typed Supabase wrapper for database operations
# - llm.py: Anthropic Messages API wrapper with retry and streaming
# - stripe_client.py: Stripe customers, sessions, subscriptions, webhooks
# - email.py: Transactional email through Resend
# - context.py: Tank context + system prompt for the chat assistant
# - trends.py: Descriptive stats, regression and spike detection
# - normalizers.py: Natural-language action payload normalization
# - rate_limit.py: Fixed-window limiter for the login endpoint
# - utils.py: Shared utilities (error base class, UUID/date helpers)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.llm import LLMClient, LLMError
from lib.stripe_client import StripeClientError
from lib.email import EmailError, EmailResult
from lib.utils import ApplicationError, normalize_uuid

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # LLM
    "LLMClient",
    "LLMError",
    # Payments / email
    "StripeClientError",
    "EmailError",
    "EmailResult",
    # Utils
    "ApplicationError",
    "normalize_uuid",
]
