"""
Root entrypoint: run with:
    uvicorn main:app --reload
    or:  uv run uvicorn main:app --reload
"""

from momentum.core.config import Settings
from momentum.main import create_app

app = create_app(Settings())

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
