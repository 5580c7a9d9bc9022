"""Service modules"""
from .account_service import AccountService
from .monitor import HealthMonitor
from .pool_setup import PoolContext, build_pool

__all__ = ["AccountService", "HealthMonitor", "PoolContext", "build_pool"]
