"""
Orquestador de la sincronización de declaraciones de una empresa.

Fase 1 (60.1): el período se parte en chunks; por cada chunk se lista lo
registrado en la aduana y se guarda/actualiza cada declaración con su
resumen básico. Un chunk fallido queda en `sync_job_errors` y el loop sigue.

Fase 2 (61.1): para las declaraciones del período que aún no tienen
detalle se pide el documento completo, se mezcla en el sobre y se
recalcula el resumen. Un GUID fallido se loguea y se salta.

Cada chunk y cada GUID es su propia transacción. La cancelación es un
estado en la base que se consulta entre unidades.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.application.services.declaration_summary_extractor import has_61_1_data, parse_payload
from app.application.use_cases.declaration_summary_use_cases import DeclarationSummaryUseCases
from app.application.use_cases.sync_job_use_cases import SyncJobUseCases
from app.core.config import settings
from app.infrastructure.database.models import DeclarationModel, SyncJobModel
from app.infrastructure.external.customs.gateway_client import (
    CustomsGatewayError,
    DeclarationListResult,
    DeclarationSource,
    retry_wait_seconds,
)
from app.infrastructure.operations.operation_lock import LOCK_REASON_LOCKED, OperationLock
from app.infrastructure.operations.operation_log import OperationLog
from app.infrastructure.repositories.declaration_repository import DeclarationRepository
from app.shared.constants.sync_constants import (
    DETAILS_BATCH_SIZE,
    MAX_CHUNK_DAYS,
    OPERATION_DECLARATIONS_SYNC,
    OperationStatus,
    SyncJobStatus,
)
from app.shared.exceptions.base import AppException
from app.shared.exceptions.domain import OperationLockedException, SyncJobAlreadyRunningException
from app.shared.utils.datetime_utils import DateLike, DateTimeUtils
from app.shared.utils.period_splitter import DateRange, split_period
from app.shared.utils.statistics_cache import StatisticsCache

MAX_RETRIES = 1
DEFAULT_SYNC_YEARS = 3
GUID_PROGRESS_EVERY = 10
API_ERROR_CODE = "API_ERROR"

CLEARED_STATUSES = frozenset({"R", "10", "11"})
REJECTED_STATUSES = frozenset({"N", "F", "90"})

# Referencias fuertes a las tareas en background
_background_tasks: Set[asyncio.Task] = set()


def map_declaration_status(ccd_status: Any) -> str:
    """Estado interno a partir de `ccd_status` de la aduana."""
    value = str(ccd_status or "").strip()
    if value in CLEARED_STATUSES:
        return "CLEARED"
    if value in REJECTED_STATUSES:
        return "REJECTED"
    return "PROCESSING"


def sync_scope_key(company_id: int) -> str:
    return f"SYNC_DECLARATIONS:company_{company_id}"


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _error_code(error: Exception) -> str:
    if isinstance(error, CustomsGatewayError):
        return error.error_code
    return type(error).__name__


@dataclass(frozen=True)
class SyncStartResult:
    job_id: int
    total_chunks: int
    date_from: datetime
    date_to: datetime


class DeclarationSyncUseCases:
    """
    Casos de uso de la sincronización de declaraciones.

    Args:
        session_factory: Factory de sesiones (una transacción por chunk/GUID)
        source: Fuente de declaraciones (gateway aduanero)
        lock: Lock de operaciones
        operation_log: Auditoría de operaciones
        statistics_cache: Cache a invalidar al escribir resúmenes
        chunk_days: Días por chunk 60.1 (1..45)
        request_delay_s: Pausa entre requests a la aduana
        sleep: Función de espera (inyectable en tests)
        today: Función que retorna la fecha de hoy
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        source: DeclarationSource,
        *,
        lock: OperationLock,
        operation_log: OperationLog,
        statistics_cache: Optional[StatisticsCache] = None,
        chunk_days: int = settings.SYNC_CHUNK_DAYS,
        request_delay_s: float = settings.SYNC_REQUEST_DELAY_SECONDS,
        lock_ttl_s: int = settings.SYNC_LOCK_TTL_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        today: Callable[[], date] = lambda: DateTimeUtils.now_utc().date(),
    ) -> None:
        self._session_factory = session_factory
        self.source = source
        self.lock = lock
        self.operation_log = operation_log
        self.statistics_cache = statistics_cache
        self.chunk_days = max(1, min(MAX_CHUNK_DAYS, int(chunk_days)))
        self.request_delay_s = max(0.0, float(request_delay_s))
        self.lock_ttl_s = lock_ttl_s
        self._sleep = sleep
        self._today = today

    def default_range(self) -> DateRange:
        """1 de enero de hace tres años hasta el fin del día de hoy."""
        today = self._today()
        start = date(today.year - DEFAULT_SYNC_YEARS, 1, 1)
        return DateRange(DateTimeUtils.start_of_day(start), DateTimeUtils.end_of_day(today))

    async def start_sync(
        self,
        company_id: int,
        date_from: Optional[DateLike] = None,
        date_to: Optional[DateLike] = None,
        user_id: Optional[str] = None,
        run_in_background: bool = True,
    ) -> SyncStartResult:
        """
        Crea el job y lanza las dos fases.

        Raises:
            OperationLockedException: Otra sincronización de la empresa tiene el lock
            SyncJobAlreadyRunningException: La empresa ya tiene un job en processing
        """
        default = self.default_range()
        range_start = DateTimeUtils.start_of_day(date_from) if date_from else default.start
        range_end = DateTimeUtils.end_of_day(date_to) if date_to else default.end
        if range_start > range_end:
            range_start, range_end = DateTimeUtils.start_of_day(range_end), DateTimeUtils.end_of_day(range_start)
        range_start, range_end = DateTimeUtils.ensure_utc(range_start), DateTimeUtils.ensure_utc(range_end)

        scope_key = sync_scope_key(company_id)
        acquired = await self.lock.acquire(
            scope_key,
            OPERATION_DECLARATIONS_SYNC,
            self.lock_ttl_s,
            company_id=company_id,
            user_id=user_id,
        )
        if not acquired.ok:
            if acquired.reason == LOCK_REASON_LOCKED:
                await self.operation_log.record(
                    OPERATION_DECLARATIONS_SYNC,
                    OperationStatus.BLOCKED,
                    company_id=company_id,
                    user_id=user_id,
                    details="Lock ocupado",
                )
                raise OperationLockedException(scope_key)
            raise AppException(
                message="No se pudo tomar el lock de sincronización",
                status_code=500,
                error_code="LOCK_ERROR",
                details={"scope_key": scope_key},
            )

        try:
            chunks = split_period(range_start, range_end, self.chunk_days)
            async with self._session_factory() as db:
                jobs = SyncJobUseCases(db)
                active = await jobs.get_active_for_company(company_id)
                if active is not None:
                    raise SyncJobAlreadyRunningException(company_id, active.id)
                job = await jobs.create(company_id, range_start, range_end, len(chunks))
                await db.commit()
                job_id = job.id
        except Exception:
            await self.lock.release(scope_key)
            raise

        logger.info(
            f"Sync declaraciones empresa={company_id} job={job_id}: "
            f"{range_start.date()}..{range_end.date()} en {len(chunks)} chunks"
        )

        runner = self.run_job(job_id, company_id, chunks, user_id=user_id)
        if run_in_background:
            task = asyncio.create_task(runner)
            _background_tasks.add(task)
            task.add_done_callback(_background_tasks.discard)
        else:
            await runner

        return SyncStartResult(job_id=job_id, total_chunks=len(chunks), date_from=range_start, date_to=range_end)

    async def run_job(
        self,
        job_id: int,
        company_id: int,
        chunks: List[DateRange],
        user_id: Optional[str] = None,
    ) -> None:
        """
        Ejecuta las dos fases de un job ya creado y libera el lock al final.

        Un fallo inesperado deja el job en `error`; no se propaga al loop.
        """
        scope_key = sync_scope_key(company_id)
        try:
            async with self.operation_log.track(
                OPERATION_DECLARATIONS_SYNC,
                company_id=company_id,
                user_id=user_id,
                meta={"sync_job_id": job_id, "chunks": len(chunks)},
            ) as handle:
                failed_chunks = await self._run_phase_1(job_id, company_id, chunks)
                handle.meta["failed_chunks"] = failed_chunks
                if failed_chunks is None:
                    handle.details = "Cancelado durante 60.1"
                    return
                completed = await self._run_phase_2(job_id, company_id, chunks[0].start, chunks[-1].end)
                handle.meta["completed_61_1"] = completed
        except Exception as exc:
            logger.exception(f"SyncJob {job_id} falló: {exc}")
            await self._fail_job(job_id, str(exc) or type(exc).__name__)
        finally:
            await self.lock.release(scope_key)

    async def cancel_sync(self, company_id: int) -> Optional[SyncJobModel]:
        """Cancela el job en processing de la empresa; None si no hay."""
        async with self._session_factory() as db:
            job = await SyncJobUseCases(db).cancel_for_company(company_id)
            await db.commit()
            return job

    async def get_active_job(self, company_id: int) -> Optional[SyncJobModel]:
        async with self._session_factory() as db:
            return await SyncJobUseCases(db).get_active_for_company(company_id)

    async def _is_cancelled(self, job_id: int) -> bool:
        async with self._session_factory() as db:
            return await SyncJobUseCases(db).is_cancelled(job_id)

    async def _fail_job(self, job_id: int, message: str) -> None:
        async with self._session_factory() as db:
            jobs = SyncJobUseCases(db)
            if await jobs.repository.get_status(job_id) != SyncJobStatus.PROCESSING.value:
                return
            await jobs.fail(job_id, message)
            await db.commit()

    async def _run_phase_1(self, job_id: int, company_id: int, chunks: List[DateRange]) -> Optional[int]:
        """
        Lista 60.1 chunk por chunk.

        Returns:
            Optional[int]: Cantidad de chunks fallidos, o None si se canceló
        """
        failed = 0
        for number, chunk in enumerate(chunks, start=1):
            if await self._is_cancelled(job_id):
                logger.info(f"SyncJob {job_id} cancelado antes del chunk {number}/{len(chunks)}")
                return None

            result: Optional[DeclarationListResult] = None
            fetch_error: Optional[Exception] = None
            try:
                result = await self._fetch_chunk(chunk)
            except Exception as exc:
                fetch_error = exc

            async with self._session_factory() as db:
                jobs = SyncJobUseCases(db)
                if fetch_error is not None:
                    failed += 1
                    await jobs.record_chunk_error(
                        job_id,
                        number,
                        chunk,
                        str(fetch_error) or type(fetch_error).__name__,
                        error_code=_error_code(fetch_error),
                        retry_attempts=MAX_RETRIES,
                        is_retried=True,
                    )
                elif result.error:
                    failed += 1
                    await jobs.record_chunk_error(
                        job_id,
                        number,
                        chunk,
                        result.error,
                        error_code=API_ERROR_CODE,
                        retry_attempts=0,
                        is_retried=False,
                    )
                else:
                    stored = await self._store_declarations(db, company_id, result.declarations)
                    logger.debug(f"SyncJob {job_id} chunk {number}/{len(chunks)}: {stored} declaraciones")
                await jobs.complete_chunk(job_id)
                await db.commit()

            if number < len(chunks):
                await self._sleep(self.request_delay_s)

        async with self._session_factory() as db:
            total_guids = await DeclarationRepository(db).count_distinct_guids(
                company_id, chunks[0].start, chunks[-1].end
            )
            summary = f"{failed} de {len(chunks)} chunks 60.1 fallaron" if failed else None
            await SyncJobUseCases(db).set_total_guids(job_id, total_guids, summary)
            await db.commit()

        logger.info(f"SyncJob {job_id} fase 60.1 terminada: guids={total_guids} chunks_fallidos={failed}")
        return failed

    async def _fetch_chunk(self, chunk: DateRange) -> DeclarationListResult:
        """Lista un chunk reintentando una vez los errores transitorios."""
        attempt = 0
        while True:
            try:
                return await asyncio.to_thread(self.source.list_declarations, chunk.start, chunk.end)
            except Exception as exc:
                wait = retry_wait_seconds(exc)
                if wait is None or attempt >= MAX_RETRIES:
                    raise
                attempt += 1
                logger.warning(f"Chunk {chunk.start.date()}..{chunk.end.date()} falló ({exc}); reintento en {wait}s")
                await self._sleep(wait)

    async def _store_declarations(self, db: AsyncSession, company_id: int, items: List[Dict[str, Any]]) -> int:
        """Guarda las declaraciones de una lista 60.1 y su resumen básico."""
        repository = DeclarationRepository(db)
        summaries = DeclarationSummaryUseCases(db, self.statistics_cache)
        stored = 0

        for item in items:
            guid = _text(item.get("guid"))
            mrn = _text(item.get("MRN"))
            if not guid and not mrn:
                continue

            status = map_declaration_status(item.get("ccd_status"))
            registered = DateTimeUtils.parse_registered(_text(item.get("ccd_registered")))
            envelope = json.dumps({"data60_1": item}, ensure_ascii=False)

            declaration = await repository.find_by_guid_or_mrn(company_id, guid, mrn)
            if declaration is None:
                declaration = await repository.create(
                    company_id=company_id,
                    customs_id=guid,
                    mrn=mrn,
                    status=status,
                    date=registered or DateTimeUtils.now_utc(),
                    xml_data=envelope,
                    declarant_name=_text(item.get("ccd_decl_name")),
                    sender_name=_text(item.get("ccd_sender_name")),
                    recipient_name=_text(item.get("ccd_recipient_name")),
                )
                await summaries.update_declaration_summary(declaration.id, envelope, company_id)
                stored += 1
                continue

            declaration.status = status
            declaration.date = registered or declaration.date
            declaration.customs_id = declaration.customs_id or guid
            declaration.mrn = declaration.mrn or mrn
            declaration.declarant_name = _text(item.get("ccd_decl_name")) or declaration.declarant_name
            declaration.sender_name = _text(item.get("ccd_sender_name")) or declaration.sender_name
            declaration.recipient_name = _text(item.get("ccd_recipient_name")) or declaration.recipient_name

            # Con detalle 61.1 ya guardado (sobre o XML crudo) el payload no se pisa con la lista
            if not has_61_1_data(declaration.xml_data):
                declaration.xml_data = envelope
                await db.flush()
                await summaries.update_declaration_summary(declaration.id, envelope, company_id)
            stored += 1

        await db.flush()
        return stored

    async def _run_phase_2(self, job_id: int, company_id: int, date_from: datetime, date_to: datetime) -> Optional[int]:
        """
        Descarga el detalle 61.1 de las declaraciones que no lo tienen.

        Returns:
            Optional[int]: GUIDs procesados, o None si se canceló
        """
        completed = 0
        cursor = None

        while True:
            async with self._session_factory() as db:
                if await SyncJobUseCases(db).is_cancelled(job_id):
                    logger.info(f"SyncJob {job_id} cancelado durante 61.1")
                    return None
                scanner = DeclarationRepository(db).scanner_missing_details(company_id, date_from, date_to)
                page = await scanner.scan(db, DETAILS_BATCH_SIZE, cursor)

            for row in page.rows:
                if await self._is_cancelled(job_id):
                    await self._persist_guid_progress(job_id, completed)
                    logger.info(f"SyncJob {job_id} cancelado durante 61.1")
                    return None

                try:
                    await self._store_details(company_id, row.id, row.customs_id)
                except Exception as exc:
                    logger.error(f"SyncJob {job_id}: error procesando 61.1 de {row.customs_id}: {exc}")

                completed += 1
                if completed % GUID_PROGRESS_EVERY == 0:
                    await self._persist_guid_progress(job_id, completed)
                await self._sleep(self.request_delay_s)

            if page.done:
                break
            cursor = page.next_cursor

        async with self._session_factory() as db:
            jobs = SyncJobUseCases(db)
            await jobs.set_completed_guids(job_id, completed)
            await jobs.complete(job_id)
            await db.commit()

        logger.success(f"SyncJob {job_id} completado: 61.1 procesados={completed}")
        return completed

    async def _persist_guid_progress(self, job_id: int, completed: int) -> None:
        async with self._session_factory() as db:
            await SyncJobUseCases(db).set_completed_guids(job_id, completed)
            await db.commit()

    async def _store_details(self, company_id: int, declaration_id: int, guid: str) -> bool:
        """
        Pide el 61.1 de un GUID y lo mezcla en el sobre de la declaración.

        Returns:
            bool: True si se guardó detalle
        """
        details = await asyncio.to_thread(self.source.get_declaration_details, guid)
        if details.error or not details.xml:
            logger.warning(f"61.1 no disponible para {guid}: {details.error or 'respuesta vacía'}")
            return False

        async with self._session_factory() as db:
            declaration: Optional[DeclarationModel] = await DeclarationRepository(db).get_by_id(declaration_id)
            if declaration is None:
                return False

            current = parse_payload(declaration.xml_data)
            envelope: Dict[str, Any] = {}
            if current.data60_1:
                envelope["data60_1"] = current.data60_1
            envelope["data61_1"] = details.xml
            payload = json.dumps(envelope, ensure_ascii=False)

            declaration.xml_data = payload
            await db.flush()
            summary = await DeclarationSummaryUseCases(db, self.statistics_cache).update_declaration_summary(
                declaration_id, payload, company_id
            )
            if summary is not None:
                declaration.declarant_name = summary.declarant_name or declaration.declarant_name
                declaration.sender_name = summary.sender_name or declaration.sender_name
                declaration.recipient_name = summary.recipient_name or declaration.recipient_name
            await db.commit()
        return True
