"""
Forge E2E Tests Package

Unit tests for the deployment orchestrator and its helpers. Run with:

   pytest forge_e2e/tests/ -v
"""
