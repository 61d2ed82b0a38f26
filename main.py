# Root-level ASGI entrypoint for platforms that auto-detect an app.
# Delegates to complaint_priority.main.
from complaint_priority.main import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("complaint_priority.main:app", host="0.0.0.0", port=8000)
