import logging
import traceback

from django.db import DatabaseError

from .models import SystemLog

logger = logging.getLogger(__name__)


def record_error(message, *, household=None, source=SystemLog.SOURCE_BACKEND, details=None):
    """Grava um SystemLog de erro; falhas ao gravar só vão para o logger."""
    if details is None:
        details = traceback.format_exc()
    try:
        return SystemLog.objects.create(
            household=household,
            level=SystemLog.LEVEL_ERROR,
            source=source,
            message=(str(message) or "Erro interno no servidor")[:255],
            details=details,
        )
    except DatabaseError as exc:
        logger.error("Falha ao criar SystemLog: %s", exc)
        return None
