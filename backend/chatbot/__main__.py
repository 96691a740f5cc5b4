"""Run the API server: ``python -m chatbot``."""

import uvicorn

from chatbot.config import settings


def main() -> None:
    uvicorn.run(
        "chatbot.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.is_development,
    )


if __name__ == "__main__":
    main()
