"""
FastAPI Application

Main entry point for the Retention Analytics API.
"""

from retention_analytics.serving.api.main import create_api_app

app = create_api_app()
