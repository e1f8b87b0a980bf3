# Entry point for running from the project root:
#   uvicorn main:app --host 0.0.0.0 --port 8001

from app.main import app  # noqa: F401
