import os

import uvicorn

import src.logging_config  # noqa: F401  configure logging before the app loads

# entry point to run the auto RBU/CBU FastAPI app
if __name__ == "__main__":
    uvicorn.run(
        "src.webapp:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "False").lower() == "true",
    )
