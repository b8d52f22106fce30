from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from eduportal.config import settings
from eduportal.storage import close_scanner_sessions, scanner_sessions

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    print(f"🚀 {settings.app_name} is starting...")
    print(f"🤖 Advisor model: {settings.advisor_model} | Chat model: {settings.chat_model}")
    print(f"📷 QR freshness window: {settings.qr_freshness_seconds}s")


@app.on_event("shutdown")
async def shutdown_event():
    """Release any camera still held by an open scanner session."""
    close_scanner_sessions()
    print(f"👋 {settings.app_name} stopped")


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": settings.api_version,
        "modules": ["exam", "students", "attendance", "advisor"],
    }


@app.get("/health")
async def health_check():
    """Liveness plus a count of cameras currently held by scanner sessions."""
    return {"status": "healthy", "open_scanners": len(scanner_sessions)}


# Import and include routers
from eduportal.routes import exam, students, attendance, advisor

app.include_router(exam.router, prefix="/api/exam", tags=["Exam"])
app.include_router(students.router, prefix="/api/students", tags=["Students"])
app.include_router(attendance.router, prefix="/api/attendance", tags=["Attendance"])
app.include_router(advisor.router, prefix="/api/advisor", tags=["Advisor"])


def run():
    import uvicorn
    uvicorn.run("eduportal.main:app", host=settings.host, port=settings.port)
