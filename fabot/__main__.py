import uvicorn

from fabot.core.config import get_settings


def run_server() -> None:
    settings = get_settings()
    uvicorn.run("fabot.main:app", host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    run_server()
