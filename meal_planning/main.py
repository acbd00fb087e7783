"""
ASGI 入口：uvicorn meal_planning.main:app
"""

from .app import create_app
from .config.settings import settings

# 应用实例
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("meal_planning.main:app", host="127.0.0.1", port=8000, reload=settings.debug)
