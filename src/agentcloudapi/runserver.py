"""Console entry point serving the API with Uvicorn."""

import uvicorn

from agentcloudapi.config import settings


def main():
    uvicorn.run(
        "agentcloudapi.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
