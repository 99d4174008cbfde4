"""
Entry point for the Meeting Recorder API.
Starts the FastAPI application under uvicorn.
"""

import sys
import uvicorn

from meeting_recorder.config import settings


def run():
    """Run the Meeting Recorder API server."""
    host, port = settings.server.host, settings.server.port
    print("\n" + "=" * 60)
    print("MEETING RECORDER - Server")
    print("=" * 60)
    print(f"🚀 Starting FastAPI application...")
    print(f"📍 Host: {host}:{port}")
    print(f"📚 API Docs: http://{host}:{port}/api/docs")
    print(f"📅 Schedule endpoint: http://{host}:{port}/api/schedule-recording")
    print("=" * 60 + "\n")

    uvicorn.run(
        "meeting_recorder.main:app",
        host=host,
        port=port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    try:
        run()
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except Exception as e:
        print(f"\n❌ Fatal error: {e}")
        sys.exit(1)
