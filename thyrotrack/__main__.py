import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "thyrotrack.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "5000")),
        log_level="info",
    )


if __name__ == "__main__":
    main()
