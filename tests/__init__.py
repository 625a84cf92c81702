"""Test suite for apihub ingestion.

Test Structure:
- unit/: Unit tests per area (archive, manifests, validation, lifting, ...)
- conftest.py: Baseline manifests and archive builders shared by all tests
"""
