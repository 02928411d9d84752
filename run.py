"""
Entry point for the Meeting Notes API.
"""

import sys
import uvicorn

from meeting_notes.config import settings


def run():
    """Run the Meeting Notes API server."""
    print("\n" + "=" * 60)
    print("MEETING NOTES API")
    print("=" * 60)
    print(f"🚀 Starting FastAPI application...")
    print(f"📍 Host: {settings.auth_server.host}:{settings.auth_server.port}")
    print(f"📚 API Docs: http://{settings.auth_server.host}:{settings.auth_server.port}/api/docs")
    print(f"🔐 Zoom login: http://{settings.auth_server.host}:{settings.auth_server.port}/api/v1/auth/zoom")
    print("=" * 60 + "\n")

    uvicorn.run(
        "meeting_notes.main:app",
        host=settings.auth_server.host,
        port=settings.auth_server.port,
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
