"""
Constantes relacionadas con sincronizaciones, locks y auditoría de operaciones.
"""
from enum import Enum


class OperationStatus(str, Enum):
    """Estados de un registro de OperationLog."""
    STARTED = "started"
    SUCCESS = "success"
    ERROR = "error"
    BLOCKED = "blocked"


class SyncJobStatus(str, Enum):
    """Estados de un job de sincronización de declaraciones."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"


class ExchangeRateSyncType(str, Enum):
    """Modos de sincronización de tipos de cambio."""
    FULL = "full"
    DAILY = "daily"


class CompanyRole(str, Enum):
    """Roles de un usuario dentro de una empresa."""
    OWNER = "OWNER"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"


TERMINAL_SYNC_JOB_STATUSES = frozenset({
    SyncJobStatus.COMPLETED.value,
    SyncJobStatus.CANCELLED.value,
    SyncJobStatus.ERROR.value,
})

# Nombres de operación registrados en OperationLog
OPERATION_EXCHANGE_RATES_SYNC = "EXCHANGE_RATES_SYNC"
OPERATION_DECLARATIONS_SYNC = "DECLARATIONS_SYNC"
OPERATION_SUMMARY_BACKFILL = "DECLARATION_SUMMARY_BACKFILL"
OPERATION_ADMIN_CANCEL_SYNC_JOB = "ADMIN_CANCEL_SYNC_JOB"

# Códigos de grupo de clientes en el XML 61.1 (ccd_cl_gr)
CLIENT_GROUP_SENDER = "2"
CLIENT_GROUP_RECIPIENT = "8"
CLIENT_GROUP_CONTRACT_HOLDER = "9"
CLIENT_GROUP_REPRESENTATIVE = "14"
CLIENT_GROUP_CARRIER = "50"

# Valor placeholder usado por la aduana para campos vacíos
EMPTY_PLACEHOLDER = "---"

# Límites de paginación
BACKFILL_DEFAULT_BATCH_SIZE = 100
BACKFILL_MAX_BATCH_SIZE = 500
DETAILS_BATCH_SIZE = 200
SYNC_JOB_PAGE_SIZE_DEFAULT = 50
SYNC_JOB_PAGE_SIZE_MAX = 200
MAX_CHUNK_DAYS = 45
ERROR_MESSAGE_MAX_LENGTH = 500
