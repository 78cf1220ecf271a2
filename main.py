import time
from contextlib import asynccontextmanager

import asyncpg
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

# Monitoring imports
from prometheus_fastapi_instrumentator import Instrumentator

from ledger.application.v1.account.routers import router as account_router
from ledger.application.v1.errors import register_exception_handlers
from ledger.application.v1.payment.routers import router as payment_router
from ledger.infrastructure.config import load_config
from ledger.infrastructure.db.account.postgresql_repository import (
    PostgreSQLAccountRepository,
)
from ledger.infrastructure.db.payment.postgresql_repository import (
    PostgreSQLPaymentRepository,
)
from ledger.infrastructure.db.token.postgresql_repository import (
    PostgreSQLTokenRepository,
)
from ledger.infrastructure.db.wallet.postgresql_repository import (
    PostgreSQLWalletRepository,
)
from ledger.shared.monitoring.logging import get_logger, setup_logging
from ledger.shared.monitoring.metrics import (
    api_request_duration_seconds,
    api_requests_total,
    database_health_status,
    record_error,
    set_app_info,
    set_pool_metrics,
)
from ledger.shared.monitoring.quota_monitor import (
    QuotaMonitorManager,
    QuotaMonitorService,
)

config = load_config()

setup_logging(config.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Starting Account Ledger v{config.app_version} ({config.environment})"
    )

    try:
        # Database setup
        pool = await asyncpg.create_pool(
            config.postgres_dsn,
            min_size=config.postgres_pool_min_size,
            max_size=config.postgres_pool_max_size,
            command_timeout=config.postgres_command_timeout,
        )
        app.state.pool = pool
        app.state.config = config
        app.state.wallet_repo = PostgreSQLWalletRepository(pool)
        app.state.account_repo = PostgreSQLAccountRepository(pool, app.state.wallet_repo)
        app.state.token_repo = PostgreSQLTokenRepository(pool)
        app.state.payment_repo = PostgreSQLPaymentRepository(pool)

        set_pool_metrics(pool)
        database_health_status.set(1)

        # Quota monitor setup
        app.state.quota_monitor_manager = QuotaMonitorManager()
        if config.quota_monitor_enabled:
            app.state.quota_monitor_manager.add_monitor(
                QuotaMonitorService(
                    account_repo=app.state.account_repo,
                    token_repo=app.state.token_repo,
                    payment_repo=app.state.payment_repo,
                    poll_interval=config.quota_monitor_interval,
                )
            )
        await app.state.quota_monitor_manager.start_all()

        set_app_info(config.app_version, config.environment)

        logger.info("Application started successfully")

        yield

    except Exception as e:
        logger.error(f"Failed to start application: {str(e)}")
        record_error(type(e).__name__, "startup")
        raise
    finally:
        logger.info("Shutting down application")

        if hasattr(app.state, "quota_monitor_manager"):
            await app.state.quota_monitor_manager.stop_all()

        if hasattr(app.state, "pool"):
            await app.state.pool.close()


app = FastAPI(
    title="Account Ledger",
    description="Account ledger and capability tokens for a custodial key-derivation payment service.",
    version=config.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus metrics middleware
if config.enable_metrics:
    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics", "/health", "/docs", "/openapi.json"],
        env_var_name="ENABLE_METRICS",
        inprogress_name="inprogress",
        inprogress_labels=True,
    )
    instrumentator.instrument(app)


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    start_time = time.time()

    client_ip = request.client.host if request.client else "unknown"
    # url.path only: query strings and the Authorization header stay out of logs
    quiet = request.url.path in ["/health", "/metrics"]
    log = logger.debug if quiet else logger.info

    log(f"HTTP {request.method} {request.url.path} from {client_ip}")

    try:
        response = await call_next(request)
        duration = time.time() - start_time

        log(
            f"HTTP {request.method} {request.url.path} completed - Status: {response.status_code}, Duration: {duration:.3f}s"
        )

        api_requests_total.labels(
            method=request.method,
            endpoint=request.url.path,
            status_code=response.status_code,
        ).inc()

        api_request_duration_seconds.labels(
            method=request.method, endpoint=request.url.path
        ).observe(duration)

        return response

    except Exception as e:
        duration = time.time() - start_time

        logger.error(
            f"HTTP {request.method} {request.url.path} failed after {duration:.3f}s: {str(e)}"
        )

        api_requests_total.labels(
            method=request.method, endpoint=request.url.path, status_code=500
        ).inc()

        record_error(type(e).__name__, "http_middleware")

        raise


register_exception_handlers(app)

app.include_router(account_router)
app.include_router(payment_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check with database and quota monitor status"""
    health_info = {
        "status": "ok",
        "version": config.app_version,
        "environment": config.environment,
        "database_connected": False,
        "database_pool_size": 0,
        "database_pool_used": 0,
        "quota_monitors": {},
    }

    if hasattr(app.state, "pool") and app.state.pool:
        try:
            async with app.state.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            health_info["database_connected"] = True
            health_info["database_pool_size"] = app.state.pool.get_size()
            health_info["database_pool_used"] = (
                app.state.pool.get_size() - app.state.pool.get_idle_size()
            )
            set_pool_metrics(app.state.pool)
            database_health_status.set(1)

        except Exception as e:
            health_info["database_connected"] = False
            health_info["database_error"] = str(e)
            database_health_status.set(0)

    if hasattr(app.state, "quota_monitor_manager"):
        health_info["quota_monitors"] = (
            await app.state.quota_monitor_manager.health_check()
        )

    if not health_info["database_connected"]:
        health_info["status"] = "unhealthy"
    elif health_info["quota_monitors"].get("status") == "degraded":
        health_info["status"] = "degraded"

    return health_info


if config.enable_metrics:

    @app.get("/metrics", tags=["Monitoring"])
    def metrics():
        """Prometheus metrics endpoint"""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information"""
    return {
        "message": "Account Ledger",
        "version": config.app_version,
        "environment": config.environment,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics" if config.enable_metrics else None,
    }
