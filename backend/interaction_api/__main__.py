import uvicorn

from interaction_api.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "interaction_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
