from .lock import Lock, PgAdvisoryLock, ProcessLock, held

__all__ = ["Lock", "PgAdvisoryLock", "ProcessLock", "held"]
