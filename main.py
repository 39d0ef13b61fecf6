import uvicorn

from recall.core.config import settings
from recall.main import app

if __name__ == "__main__":
    uvicorn.run("recall.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
