"""Materna MCP Server - Entry point.

Runs the MCP server with HTTP transport for Cloud Run deployment.
This is the composition root: the Firestore accessor, the owner registry and
the journal service are built here and passed down explicitly.
"""

import logging
import os
from dataclasses import dataclass, field

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route, Mount

from .shell.auth import OwnerRegistry
from .shell.firestore_client import FirestoreConfig, JournalFirestoreClient
from .shell.journal_service import JournalService
from .shell.mcp_server import build_mcp, current_owner_id


logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class ServerConfig:
    """Server settings read from the environment."""

    host: str = "0.0.0.0"
    port: int = 8080
    base_url: str = "http://localhost:8080"
    allowed_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:5173"]
    )
    firestore: FirestoreConfig = field(default_factory=FirestoreConfig)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        defaults = cls()
        return cls(
            host=os.environ.get("HOST", defaults.host),
            port=int(os.environ.get("PORT", defaults.port)),
            base_url=os.environ.get("BASE_URL", defaults.base_url),
            allowed_origins=_split(os.environ.get("ALLOWED_ORIGINS", ""))
            or defaults.allowed_origins,
            firestore=FirestoreConfig(
                project_id=os.environ.get("FIRESTORE_PROJECT") or None,
                database=os.environ.get("FIRESTORE_DATABASE", "materna"),
            ),
        )


# ==================== Auth Middleware ====================


class AuthMiddleware(BaseHTTPMiddleware):
    """Authenticate MCP requests using API key in Authorization header."""

    def __init__(self, app, registry: OwnerRegistry) -> None:
        super().__init__(app)
        self.registry = registry

    async def dispatch(self, request: Request, call_next):
        # Only MCP routes need an owner
        if not request.url.path.startswith("/mcp"):
            return await call_next(request)

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            owner_id = self.registry.resolve(auth_header[len("Bearer "):])
            if owner_id is not None:
                current_owner_id.set(owner_id)
                logger.debug("Authenticated owner: %s", owner_id[:8])

        return await call_next(request)


# ==================== Create ASGI App ====================


def create_app(
    config: ServerConfig | None = None,
    store: JournalFirestoreClient | None = None,
    registry: OwnerRegistry | None = None,
) -> Starlette:
    """Create the Starlette application with MCP at root.

    Args:
        config: Server settings (read from the environment if omitted)
        store: Firestore accessor (built from config if omitted)
        registry: Owner registry (shares the store's Firestore client if omitted)
    """
    config = config or ServerConfig.from_env()
    store = store or JournalFirestoreClient(config.firestore)
    registry = registry or OwnerRegistry(store.client)

    service = JournalService(store)
    mcp_app = build_mcp(service).streamable_http_app()

    async def health_check(request: Request) -> JSONResponse:
        """Health check endpoint for Cloud Run."""
        return JSONResponse({"status": "healthy", "service": "materna-mcp"})

    async def register_owner(request: Request) -> JSONResponse:
        """Register a new owner and return their API key."""
        try:
            body = await request.json()
            email = body.get("email")

            if not email or "@" not in email:
                return JSONResponse({"error": "Valid email is required"}, status_code=400)

            api_key, _ = registry.register(email)

            return JSONResponse({
                "api_key": api_key,
                "message": "Registration successful! Save your API key - it won't be shown again.",
                "claude_command": f'claude mcp add --transport http materna {config.base_url}/mcp --header "Authorization: Bearer {api_key}"',
            })
        except Exception as e:
            logger.error("Registration failed: %s", str(e))
            return JSONResponse({"error": "Registration failed."}, status_code=500)

    async def validate_key(request: Request) -> JSONResponse:
        """Validate an API key."""
        try:
            body = await request.json()
            api_key = body.get("api_key")

            if not api_key:
                return JSONResponse({"valid": False, "error": "API key required"})

            return JSONResponse({"valid": registry.resolve(api_key) is not None})
        except Exception as e:
            logger.error("Validation failed: %s", str(e))
            return JSONResponse({"valid": False, "error": "Validation failed"})

    routes = [
        Route("/health", health_check, methods=["GET"]),
        Route("/auth/register", register_owner, methods=["POST"]),
        Route("/auth/validate", validate_key, methods=["POST"]),
        # The MCP app serves /mcp/ itself when mounted at root
        Mount("/", app=mcp_app),
    ]

    return Starlette(
        routes=routes,
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=config.allowed_origins,
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["*"],
            ),
            Middleware(AuthMiddleware, registry=registry),
        ],
        lifespan=mcp_app.router.lifespan_context,
    )


def main() -> None:
    """Run the server."""
    config = ServerConfig.from_env()
    logger.info("Starting Materna MCP server on %s:%d", config.host, config.port)
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
