"""Entry point for the lock API."""

import uvicorn


def main():
    """Start the lock API server."""
    uvicorn.run("lock_api.api:app", host="127.0.0.1", port=8000, reload=True)


if __name__ == "__main__":
    main()
