import datetime

import pytz


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(pytz.utc)


def utcnow_iso() -> str:
    """Marca de tiempo para cada ``lastUpdated``."""
    return utcnow().isoformat()
