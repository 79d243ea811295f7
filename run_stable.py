"""
Run script to start the FastAPI server (no reload).
"""
import logging

import uvicorn

from enrolment_pulse.config import settings


def main():
    """Start the Uvicorn server."""
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger(__name__).info("Starting Enrolment Pulse API, docs at http://localhost:8000/docs")

    uvicorn.run(
        "enrolment_pulse.main:app",
        host="0.0.0.0",
        port=8000,
        reload=False,  # No reload for stability
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
