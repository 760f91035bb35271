# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the AquaBotAI API:
# - test_models.py / test_tiers.py: schema validation and tier rules
# - test_trends.py / test_normalizers.py: pure helpers in lib/
# - test_<service>.py: service classes against a fake Supabase client
# - test_api.py: the FastAPI app through TestClient
#
# Run tests with: poetry run pytest
# =============================================================================
