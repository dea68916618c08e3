from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from authflow.api.routes import router
from authflow.errors import FormNotFoundError, FormStateConflict
from authflow.observability.logging import log
from authflow.settings import settings

app = FastAPI(title="Horizon Auth Flow API")

origins = [x.strip() for x in settings.CORS_ORIGINS.split(",") if x.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/")
def root():
    return {
        "status": "ok",
        "message": "Auth flow API is running. POST /forms with {mode} to start a sign-in or sign-up form.",
    }


@app.get("/health")
def health():
    return {"status": "ok"}


@app.exception_handler(FormNotFoundError)
async def form_not_found_handler(request: Request, exc: FormNotFoundError):
    return JSONResponse(status_code=404, content={"detail": "Form not found or expired"})


@app.exception_handler(FormStateConflict)
async def form_conflict_handler(request: Request, exc: FormStateConflict):
    log(event="form_state_conflict", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=409, content={"detail": str(exc)})
