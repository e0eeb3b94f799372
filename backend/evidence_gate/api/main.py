"""FastAPI application setup."""

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from evidence_gate.api.response import error_response
from evidence_gate.api.routes import health, interview
from evidence_gate.llm import LLMError

app = FastAPI(
    title="Evidence Gate API",
    description="Evidence-gated answer extraction from interview transcripts",
    version="1.0.0",
)

# CORS middleware for frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle malformed request bodies."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content=error_response(
            "VALIDATION_ERROR",
            f"{location}: {message}" if location else message,
        ),
    )


@app.exception_handler(LLMError)
async def llm_error_handler(request: Request, exc: LLMError) -> JSONResponse:
    """Handle LLM/AI service errors."""
    return JSONResponse(
        status_code=503,
        content=error_response("AI_SERVICE_ERROR", "AI service is temporarily unavailable. Please try again."),
    )


# Register routes
app.include_router(health.router)
app.include_router(interview.router, prefix="/api")
