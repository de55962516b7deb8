import argparse
import uvicorn
from podhub.core.config import settings

def main():
    parser = argparse.ArgumentParser(description="Run the PodHub API and Socket.IO server")
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to run the server on (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload on code changes (default: based on DEBUG setting)"
    )

    args = parser.parse_args()

    use_reload = args.reload or settings.DEBUG

    if settings.DEBUG:
        print(f"Starting {settings.PROJECT_NAME} in {settings.ENVIRONMENT} mode")
        print(f"Auto-reload: {'enabled' if use_reload else 'disabled'}")
        print(f"Server running at http://{args.host}:{args.port}")
        print(f"Socket.IO endpoint: ws://{args.host}:{args.port}/socket.io/")
        print(f"API documentation: http://{args.host}:{args.port}/docs")

    # Socket.IO routing tables live in memory, so run a single worker
    uvicorn.run(
        "podhub.main:app",
        host=args.host,
        port=args.port,
        reload=use_reload,
        workers=1,
    )

if __name__ == "__main__":
    main()
