from __future__ import annotations

import uvicorn

from .config import settings


def main() -> None:
    uvicorn.run("gigamarket.api.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
