from fastapi import FastAPI

from mcserver_engine.api.errors import register_error_handlers
from mcserver_engine.api.routes.files import router as files_router
from mcserver_engine.api.routes.proxies import router as proxies_router
from mcserver_engine.api.routes.servers import router as servers_router

app = FastAPI(title="Minecraft Server Engine API")

register_error_handlers(app)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(proxies_router)
app.include_router(files_router)
app.include_router(servers_router)
