import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pymongo.database import Database

from database import connect, ensure_collections, ping
from errors import ServiceError
from ledger import OrderLedger, delete_user_with_orders
from profiles import ProfileStore
from schemas import CreateOrderRequest

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(database: Optional[Database] = None) -> FastAPI:
    """Build the application.

    Pass a database handle to run against it (tests use an in-memory one);
    otherwise one is opened from DATABASE_URL on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database
        if db is None:
            db = connect()
            ensure_collections(db)
        app.state.db = db
        app.state.profiles = ProfileStore(db)
        app.state.ledger = OrderLedger(db, app.state.profiles)
        logger.info(f"Connected to database {db.name}")
        yield

    app = FastAPI(title="User Profile System API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content={"message": "Invalid request body", "code": "validation_error", "details": details},
        )

    _register_routes(app)
    return app


def get_profiles(request: Request) -> ProfileStore:
    return request.app.state.profiles


def get_ledger(request: Request) -> OrderLedger:
    return request.app.state.ledger


def _register_routes(app: FastAPI) -> None:

    @app.get("/", response_class=PlainTextResponse)
    def read_root():
        return "User Profile System API"

    @app.post("/users", status_code=201)
    def create_user(payload: Dict[str, Any] = Body(...), profiles: ProfileStore = Depends(get_profiles)):
        return profiles.create_user(payload)

    @app.get("/users")
    def list_users(profiles: ProfileStore = Depends(get_profiles)) -> List[Dict[str, Any]]:
        return profiles.list_users()

    @app.post("/order", status_code=201)
    def create_order(payload: CreateOrderRequest, ledger: OrderLedger = Depends(get_ledger)):
        return ledger.create_order(payload.user_id, payload.items)

    @app.get("/orders/{user_id}")
    def list_orders(user_id: str, ledger: OrderLedger = Depends(get_ledger)) -> List[Dict[str, Any]]:
        return ledger.list_orders_for_user(user_id)

    @app.delete("/users/{user_id}")
    def delete_user(
        user_id: str,
        profiles: ProfileStore = Depends(get_profiles),
        ledger: OrderLedger = Depends(get_ledger),
    ):
        result = delete_user_with_orders(profiles, ledger, user_id)
        return {"message": "User deleted successfully with orders", **result.model_dump()}

    @app.get("/test")
    def test_database(request: Request):
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
            "database_name": None,
            "connection_status": "Not Connected",
            "collections": [],
        }
        db = getattr(request.app.state, "db", None)
        if db is None:
            response["database"] = "⚠️  Available but not initialized"
            return response
        response["database_name"] = db.name
        if not ping(db):
            response["database"] = "❌ Ping failed"
            return response
        response["connection_status"] = "Connected"
        try:
            response["collections"] = db.list_collection_names()[:10]
            response["database"] = "✅ Connected & Working"
        except Exception as e:
            response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
        return response


app = create_app()

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
