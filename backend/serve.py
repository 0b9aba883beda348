import os

import uvicorn
from dotenv import load_dotenv

# Load .env from backend dir (where serve.py runs)
load_dotenv(os.path.join(os.path.dirname(__file__), ".env"))

if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        reload=os.environ.get("RELOAD", "").lower() in ("1", "true"),
        log_level=os.environ.get("LOG_LEVEL", "info").lower(),
    )
