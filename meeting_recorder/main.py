"""
FastAPI application initialization for the Meeting Recorder API.
"""

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse

from meeting_recorder.config import settings
from meeting_recorder.core.dependencies import get_recording_bot_service
from meeting_recorder.core.logging import get_logger
from meeting_recorder.api.v1.router import api_router

# Create FastAPI application
app = FastAPI(
    title=settings.project_name,
    version=settings.version,
    description="Scheduling API for a bot that joins and records Google Meet meetings",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers; /api keeps the paths calendar automations already call
app.include_router(api_router, prefix="/api")
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    """
    Application startup event.
    Create the RecordingBot service and start its scheduler.
    """
    from meeting_recorder.bot import RecordingBot
    from meeting_recorder.core.dependencies import set_recording_bot_instance
    from meeting_recorder.core.logging import setup_logging

    setup_logging()
    logger = get_logger("startup")
    logger.info("Starting Meeting Recorder API...")

    bot = RecordingBot()
    set_recording_bot_instance(bot)

    if await bot.initialize():
        logger.info("Meeting Recorder API started successfully")
    else:
        logger.warning("Bot initialization incomplete")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Application shutdown event.
    Stop every session and release the browser.
    """
    from meeting_recorder.core.dependencies import set_recording_bot_instance
    from meeting_recorder.core.exceptions import HTTPServiceUnavailable

    logger = get_logger("shutdown")
    logger.info("Shutting down Meeting Recorder API...")

    try:
        bot = await get_recording_bot_service()
    except HTTPServiceUnavailable:
        return

    try:
        await bot.shutdown()
    finally:
        set_recording_bot_instance(None)
    logger.info("Meeting Recorder API shutdown complete")


@app.get("/", response_class=HTMLResponse, tags=["Root"])
async def root(request: Request, bot=Depends(get_recording_bot_service)):
    """
    Status page.

    Returns:
        HTML page with server status and the scheduling URL
    """
    status = bot.get_status()
    schedule_url = str(request.base_url).rstrip("/") + "/api/schedule-recording"
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <title>{settings.project_name}</title>
        <style>
            body {{
                font-family: Arial, sans-serif;
                margin: 40px;
                background-color: #f5f5f5;
            }}
            .container {{
                max-width: 600px;
                margin: 0 auto;
                background: white;
                padding: 30px;
                border-radius: 8px;
                box-shadow: 0 2px 4px rgba(0,0,0,0.1);
            }}
            .status {{
                padding: 15px;
                margin: 10px 0;
                border-radius: 4px;
                background-color: #d4edda;
                color: #155724;
            }}
        </style>
    </head>
    <body>
        <div class="container">
            <h1>🤖 {settings.project_name}</h1>
            <div class="status">
                <h3>✅ Server online</h3>
                <p>Ready to accept meetings.</p>
                <p><strong>Scheduled meetings:</strong> {status["scheduled_meetings"]}</p>
                <p><strong>Active sessions:</strong> {len(status["active_sessions"])}</p>
                <p><strong>Scheduling URL:</strong> {schedule_url}</p>
            </div>
        </div>
    </body>
    </html>
    """


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "meeting_recorder.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
