# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the application's business logic:
# - models/: Pydantic schemas for request validation and LLM output
# - services/: One service class per resource (tanks, chat, billing, ...)
#
# Services raise app.exceptions errors and are called by the routers in
# app/routers and by the Celery tasks in workers/.
# =============================================================================
