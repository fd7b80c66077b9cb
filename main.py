import os
import logging
from contextlib import asynccontextmanager
from typing import Optional

from bson.errors import InvalidId
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database

from auth import (
    AuthController,
    AuthResult,
    LoginRequest,
    MongoUserDirectory,
    RegisterRequest,
    TokenService,
)
from config import Settings
from database import connect, ensure_indexes
from donations import DonationNotFoundError, DonationStore, InvalidTransitionError
from schemas import Donation, DonationCreateRequest, DonationStatus

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    users: Optional[MongoUserDirectory] = None,
    donations: Optional[DonationStore] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level)

    if database is None and (users is None or donations is None):
        database = connect(settings.database_url, settings.database_name)
    if database is not None:
        users = users or MongoUserDirectory(database["user"])
        donations = donations or DonationStore(database["donation"])

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if database is not None:
            ensure_indexes(database)
        yield

    app = FastAPI(title="FoodShare API", lifespan=lifespan)
    app.state.database = database
    app.state.auth = None
    if users is not None:
        tokens = TokenService(settings.jwt_secret, settings.jwt_algorithm, settings.token_ttl)
        app.state.auth = AuthController(users, tokens)
    app.state.donations = donations

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    ############################
    # Utility helpers
    ############################

    def auth_controller(request: Request) -> AuthController:
        if request.app.state.auth is None:
            raise HTTPException(status_code=500, detail="Database not available")
        return request.app.state.auth

    def donation_store(request: Request) -> DonationStore:
        if request.app.state.donations is None:
            raise HTTPException(status_code=500, detail="Database not available")
        return request.app.state.donations

    def respond(result: AuthResult) -> JSONResponse:
        return JSONResponse(status_code=result.status_code, content=result.body())

    def move(request: Request, donation_id: str, status: str):
        try:
            return donation_store(request).set_status(donation_id, status)
        except InvalidId:
            raise HTTPException(status_code=400, detail="Invalid ID")
        except DonationNotFoundError:
            raise HTTPException(status_code=404, detail="Donation not found")
        except InvalidTransitionError as e:
            raise HTTPException(status_code=409, detail=str(e))

    ############################
    # Health & Test
    ############################
    @app.get("/")
    def read_root():
        return {"message": "FoodShare API running"}

    @app.get("/test")
    def test_database(request: Request):
        db = request.app.state.database
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_url": "✅ Set" if settings.database_url else "❌ Not Set",
            "database_name": "✅ Set" if settings.database_name else "❌ Not Set",
            "connection_status": "Not Connected",
            "collections": []
        }
        if db is not None:
            response["database"] = "✅ Available"
            response["connection_status"] = "Connected"
            try:
                response["collections"] = db.list_collection_names()
                response["database"] = "✅ Connected & Working"
            except Exception as e:
                logger.warning("Database check failed: %s", e)
                response["database"] = f"⚠️ Connected but Error: {str(e)[:80]}"
        return response

    ############################
    # Auth
    ############################
    @app.post("/auth/register", status_code=201)
    def register(req: RegisterRequest, request: Request):
        return respond(auth_controller(request).register(req))

    @app.post("/auth/login")
    def login(req: LoginRequest, request: Request):
        return respond(auth_controller(request).login(req))

    ############################
    # Donations
    ############################
    @app.post("/donations", status_code=201)
    def create_donation(req: DonationCreateRequest, request: Request):
        store = donation_store(request)
        return store.create(Donation(**req.model_dump()))

    @app.get("/donations/nearby")
    def nearby_donations(
        request: Request,
        lng: float = Query(..., ge=-180, le=180),
        lat: float = Query(..., ge=-90, le=90),
        max_distance: float = Query(5000, gt=0, description="Radius in meters"),
        limit: int = Query(20, ge=1, le=100),
        status: Optional[DonationStatus] = Query("available"),
    ):
        return donation_store(request).nearby(lng, lat, max_distance, limit, status)

    @app.get("/donations/{donation_id}")
    def get_donation(donation_id: str, request: Request):
        try:
            doc = donation_store(request).get(donation_id)
        except InvalidId:
            raise HTTPException(status_code=400, detail="Invalid ID")
        if not doc:
            raise HTTPException(status_code=404, detail="Donation not found")
        return doc

    @app.post("/donations/{donation_id}/reserve")
    def reserve_donation(donation_id: str, request: Request):
        return move(request, donation_id, "reserved")

    @app.post("/donations/{donation_id}/donate")
    def mark_donated(donation_id: str, request: Request):
        return move(request, donation_id, "donated")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
