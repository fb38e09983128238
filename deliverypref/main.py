# deliverypref/main.py
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import Body, Depends, FastAPI, Header, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Histogram, generate_latest
from sqlalchemy.orm import Session

from .auth import PasswordHasher, TokenService, bearer_token
from .config import Settings, load_settings
from .db import build_engine, build_session_factory, get_db, init_db
from .errors import FieldError, NotFound, ServiceError, Unauthenticated, ValidationError
from .models import User
from .ordering import service as orders
from .schemas import HealthOut, LoginIn, LoginOut, OrderOut, SignupIn, UserOut

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -------------------
# Dependencies
# -------------------
def get_now(request: Request) -> datetime:
    return request.app.state.clock()


def require_user_id(request: Request, authorization: Optional[str] = Header(default=None)) -> str:
    token = bearer_token(authorization)
    return request.app.state.tokens.verify(token)


# -------------------
# Metrics
# -------------------
class RequestMetrics:
    def __init__(self) -> None:
        self.registry = CollectorRegistry()
        self.count = Counter(
            "deliverypref_requests_total",
            "Total requests processed",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )
        self.latency = Histogram(
            "deliverypref_request_latency_seconds",
            "Request latency in seconds",
            ["endpoint"],
            registry=self.registry,
        )


def _endpoint_label(path: str) -> str:
    parts = path.split("/")
    if len(parts) == 3 and parts[1] == "orders" and parts[2]:
        return "/orders/{order_id}"
    return path


# -------------------
# App factory
# -------------------
def create_app(
    settings: Optional[Settings] = None,
    *,
    clock: Callable[[], datetime] = utcnow,
    passwords: Optional[PasswordHasher] = None,
    tokens: Optional[TokenService] = None,
) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)

    engine = build_engine(settings)
    init_db(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        engine.dispose()
        logger.info("Database connection pool closed.")

    app = FastAPI(
        title="Delivery Preference API",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.docs_enabled else None,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.clock = clock
    app.state.passwords = passwords or PasswordHasher()
    app.state.tokens = tokens or TokenService.from_settings(settings)
    app.state.metrics = RequestMetrics()

    _install_error_handlers(app)
    _install_metrics_middleware(app)
    # Added last so it wraps the metrics middleware and its 500 responses.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins or ["*"],
        allow_credentials=bool(settings.allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_routes(app)
    return app


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        issues = []
        for err in exc.errors():
            loc = [str(p) for p in err.get("loc", ()) if p != "body"]
            issues.append({"path": ".".join(loc), "message": err.get("msg", "Invalid value")})
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Invalid request payload", "issues": issues},
        )


def _install_metrics_middleware(app: FastAPI) -> None:
    metrics: RequestMetrics = app.state.metrics

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start_time = time.time()
        response = None
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(f"Unhandled exception during {request.method} {request.url.path}: {exc}", exc_info=True)
            response = JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"message": "Unexpected server error"},
            )
        finally:
            endpoint = _endpoint_label(request.url.path)
            metrics.latency.labels(endpoint=endpoint).observe(time.time() - start_time)
            metrics.count.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=getattr(response, "status_code", 500),
            ).inc()
        return response


def _register_routes(app: FastAPI) -> None:
    # -------------------
    # Health / monitoring
    # -------------------
    @app.get("/health", response_model=HealthOut, tags=["Monitoring"])
    def health():
        return {"status": "ok"}

    @app.get("/metrics", tags=["Monitoring"])
    def metrics(request: Request):
        return Response(generate_latest(request.app.state.metrics.registry), media_type=CONTENT_TYPE_LATEST)

    # -------------------
    # Auth
    # -------------------
    @app.post("/auth/login", response_model=LoginOut, tags=["Auth"])
    def login(payload: LoginIn, request: Request, db: Session = Depends(get_db)):
        u = db.query(User).filter(User.email == payload.email).first()
        if not u or not request.app.state.passwords.verify(payload.password, u.password_hash):
            logger.warning(f"Login failed for {payload.email}")
            raise Unauthenticated("Invalid credentials")

        logger.info(f"Login successful for user {u.id}")
        return {"token": request.app.state.tokens.sign(u.id), "user": UserOut.model_validate(u)}

    @app.post("/auth/signup", response_model=UserOut, status_code=status.HTTP_201_CREATED, tags=["Auth"])
    def signup(payload: SignupIn, request: Request, db: Session = Depends(get_db)):
        if db.query(User).filter(User.email == payload.email).first():
            raise ValidationError([FieldError("email", "Email already exists")], message="Invalid request payload")

        u = User(
            email=payload.email,
            name=payload.name,
            password_hash=request.app.state.passwords.hash(payload.password),
        )
        db.add(u)
        db.commit()
        db.refresh(u)
        logger.info(f"User {u.id} signed up")
        return u

    @app.get("/me", response_model=UserOut, tags=["Auth"])
    def me(user_id: str = Depends(require_user_id), db: Session = Depends(get_db)):
        u = db.query(User).filter(User.id == user_id).first()
        if not u:
            raise NotFound("User not found")
        return u

    # -------------------
    # Orders
    # -------------------
    @app.post("/orders", response_model=OrderOut, status_code=status.HTTP_201_CREATED, tags=["Orders"])
    def create_order(
        payload: Dict[str, Any] = Body(...),
        user_id: str = Depends(require_user_id),
        db: Session = Depends(get_db),
        now: datetime = Depends(get_now),
    ):
        return orders.create_order(db, user_id, payload, now)

    @app.get("/orders/{order_id}", response_model=OrderOut, tags=["Orders"])
    def get_order(
        order_id: str,
        user_id: str = Depends(require_user_id),
        db: Session = Depends(get_db),
    ):
        return orders.get_order(db, user_id, order_id)

    @app.put("/orders/{order_id}", response_model=OrderOut, tags=["Orders"])
    def update_order(
        order_id: str,
        payload: Dict[str, Any] = Body(...),
        user_id: str = Depends(require_user_id),
        db: Session = Depends(get_db),
        now: datetime = Depends(get_now),
    ):
        return orders.update_order(db, user_id, order_id, payload, now)


def run() -> None:
    import uvicorn

    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
