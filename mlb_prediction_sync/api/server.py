"""Uvicorn entry point for the API server."""

import os

import uvicorn
from dotenv import load_dotenv


def main():
    """Start the API server (and, unless disabled, the sync scheduler)."""
    load_dotenv()

    host = os.getenv("API_HOST", "127.0.0.1")
    port = int(os.getenv("API_PORT", "8000"))

    # One worker only: the scheduler must not run twice against the same store
    uvicorn.run(
        "mlb_prediction_sync.api.app:create_app",
        host=host,
        port=port,
        factory=True,
    )


if __name__ == "__main__":
    main()
