"""
asgi.py -- Application assembly for the Alliance portal.

Joins the application object from web/main.py with the page routes and the
static file mount. Tests import the assembled app from here too, so what is
tested is exactly what uvicorn serves.

Run with:  uvicorn asgi:app --reload
"""

from pathlib import Path

from fastapi.staticfiles import StaticFiles

from web.main import app
from web.routes import router as web_router

app.mount("/static", StaticFiles(directory=str(Path(__file__).parent / "static")), name="static")
app.include_router(web_router, tags=["Web UI"])
