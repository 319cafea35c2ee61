"""HTTP API for upgrade orchestration.

Run with: uvicorn --factory upshift.api.app:create_app
"""
