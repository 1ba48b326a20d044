"""Serve the booking API with uvicorn: ``python -m labcore`` or ``labcore-server``."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "labcore.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").lower(),
    )


if __name__ == "__main__":
    main()
