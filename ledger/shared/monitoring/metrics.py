from prometheus_client import Counter, Histogram, Gauge, Info
import time
from functools import wraps
from typing import Callable, Any
import asyncio

# API Request Metrics
api_requests_total = Counter(
    'api_requests_total',
    'Total number of API requests',
    ['method', 'endpoint', 'status_code']
)

api_request_duration_seconds = Histogram(
    'api_request_duration_seconds',
    'API request duration in seconds',
    ['method', 'endpoint']
)

# Account Metrics
accounts_created_total = Counter(
    'accounts_created_total',
    'Total number of accounts created'
)

account_operations_total = Counter(
    'account_operations_total',
    'Total account operations',
    ['operation', 'status']
)

# Token Metrics
tokens_issued_total = Counter(
    'tokens_issued_total',
    'Total number of capability tokens issued'
)

tokens_revoked_total = Counter(
    'tokens_revoked_total',
    'Total number of capability tokens revoked'
)

token_authentications_total = Counter(
    'token_authentications_total',
    'Token authentication attempts',
    ['result']
)

token_authentication_duration_seconds = Histogram(
    'token_authentication_duration_seconds',
    'Time spent authenticating a token, lookup and use record included'
)

# Payment Metrics
payments_created_total = Counter(
    'payments_created_total',
    'Total number of pending payments recorded'
)

payments_paid_total = Counter(
    'payments_paid_total',
    'Total number of payments marked paid'
)

payment_satoshis_total = Counter(
    'payment_satoshis_total',
    'Total satoshis across recorded payments'
)

# Quota Metrics
account_quota_status = Gauge(
    'account_quota_status',
    'Number of accounts per quota status at the last monitor pass',
    ['status']
)

quota_recharges_total = Counter(
    'quota_recharges_total',
    'Total number of quota recharges'
)

# Database Metrics
database_operations_total = Counter(
    'database_operations_total',
    'Total database operations',
    ['operation', 'table', 'status']
)

database_operation_duration_seconds = Histogram(
    'database_operation_duration_seconds',
    'Database operation duration',
    ['operation', 'table']
)

database_connection_pool_size = Gauge(
    'database_connection_pool_size',
    'Current database connection pool size'
)

database_connection_pool_used = Gauge(
    'database_connection_pool_used',
    'Current database connection pool used connections'
)

database_connection_pool_idle = Gauge(
    'database_connection_pool_idle',
    'Current database connection pool idle connections'
)

database_health_status = Gauge(
    'database_health_status',
    'Database health status (1=healthy, 0=unhealthy)'
)

# System Metrics
app_info = Info(
    'app_info',
    'Application information'
)

# Error Metrics
errors_total = Counter(
    'errors_total',
    'Total number of errors',
    ['error_type', 'component']
)

# Decorators for automatic metrics collection

def track_time(metric: Histogram, labels: dict = None):
    """Decorator to track execution time"""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            start_time = time.time()
            try:
                return await func(*args, **kwargs)
            finally:
                duration = time.time() - start_time
                if labels:
                    metric.labels(**labels).observe(duration)
                else:
                    metric.observe(duration)

        @wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            start_time = time.time()
            try:
                return func(*args, **kwargs)
            finally:
                duration = time.time() - start_time
                if labels:
                    metric.labels(**labels).observe(duration)
                else:
                    metric.observe(duration)

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        else:
            return sync_wrapper

    return decorator

# Metrics collection functions

def record_database_operation(operation: str, table: str, status: str, duration: float = None):
    """Record a database operation"""
    database_operations_total.labels(operation=operation, table=table, status=status).inc()
    if duration is not None:
        database_operation_duration_seconds.labels(operation=operation, table=table).observe(duration)

def record_account_created(count: int = 1):
    """Record account creation"""
    accounts_created_total.inc(count)

def record_account_operation(operation: str, status: str):
    """Record account operation"""
    account_operations_total.labels(operation=operation, status=status).inc()

def record_token_issued():
    tokens_issued_total.inc()

def record_token_revoked():
    tokens_revoked_total.inc()

def record_authentication(result: str):
    """Record an authentication attempt: success, unknown or malformed"""
    token_authentications_total.labels(result=result).inc()

def record_payment_created(satoshis: int):
    payments_created_total.inc()
    payment_satoshis_total.inc(satoshis)

def record_payment_paid():
    payments_paid_total.inc()

def record_quota_recharge():
    quota_recharges_total.inc()

def set_quota_status_counts(counts: dict):
    """Publish the per-status account counts of a monitor pass"""
    for status, count in counts.items():
        account_quota_status.labels(status=status).set(count)

def record_error(error_type: str, component: str):
    """Record an error"""
    errors_total.labels(error_type=error_type, component=component).inc()

def set_app_info(version: str, environment: str):
    """Set application information"""
    app_info.info({
        'version': version,
        'environment': environment
    })

def set_pool_metrics(pool):
    """Mirror asyncpg pool sizes into the pool gauges"""
    database_connection_pool_size.set(pool.get_size())
    database_connection_pool_used.set(pool.get_size() - pool.get_idle_size())
    database_connection_pool_idle.set(pool.get_idle_size())

# Context managers for tracking operations

class MetricsContext:
    """Context manager timing one repository call against a table"""

    def __init__(self, operation: str, table: str):
        self.operation = operation
        self.table = table
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time

        if exc_type is None:
            status = "success"
        else:
            status = "error"
            record_error(exc_type.__name__, self.table)

        record_database_operation(self.operation, self.table, status, duration)

        # Don't suppress exceptions
        return False
