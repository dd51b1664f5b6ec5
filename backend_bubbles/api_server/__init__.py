"""
HTTP API for Backend Bubbles.

Thin FastAPI layer over the analysis orchestrator: related-account analysis,
cache diagnostics, and the agent plugin manifest.
"""
