"""
FastAPI Production Application

Main entry point for the Order Reports API.
"""

from order_reports.api import create_app
from order_reports.config import get_settings

app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
