"""
FastAPI Application

Main entry point for the Retail Reporting API.
"""

from retail_analytics.serving import create_app

app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
