from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from classboom.api.routes import bookings, health, resource_sets, resources, staff
from classboom.core.config import get_settings
from classboom.core.exceptions import AppError
from classboom.core.middleware import RequestSizeLimitMiddleware, SecurityHeadersMiddleware

settings = get_settings()


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": jsonable_encoder(exc.details)},
    )


app = FastAPI(title=settings.project_name)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
app.add_middleware(SecurityHeadersMiddleware, settings=settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(resources.router, prefix=f"{settings.api_prefix}/resources", tags=["resources"])
app.include_router(resource_sets.router, prefix=f"{settings.api_prefix}/resource-sets", tags=["resource-sets"])
app.include_router(bookings.router, prefix=f"{settings.api_prefix}/bookings", tags=["bookings"])
app.include_router(staff.router, prefix=f"{settings.api_prefix}/staff", tags=["staff"])
