"""
Modelos de base de datos (ORM).
"""
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from app.infrastructure.database.session import Base
from app.shared.constants.sync_constants import SyncJobStatus, OperationStatus


class OperationLockModel(Base):
    """
    Lock advisory por scope.

    La unicidad de `scope_key` es el único mecanismo de exclusión: un INSERT
    que viola la constraint significa que otro proceso tiene el lock.
    """

    __tablename__ = "operation_locks"

    id = Column(Integer, primary_key=True, index=True)
    scope_key = Column(String(255), nullable=False, unique=True)
    operation = Column(String(100), nullable=False)
    company_id = Column(Integer, nullable=True)
    user_id = Column(String(255), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<OperationLock(scope_key={self.scope_key}, expires_at={self.expires_at})>"


class OperationLogModel(Base):
    """Registro de auditoría de operaciones (nunca se borra)."""

    __tablename__ = "operation_logs"

    id = Column(Integer, primary_key=True, index=True)
    operation = Column(String(100), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=OperationStatus.STARTED.value)
    company_id = Column(Integer, nullable=True, index=True)
    user_id = Column(String(255), nullable=True)
    details = Column(Text, nullable=True)
    meta = Column(JSON, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=False)
    finished_at = Column(DateTime(timezone=True), nullable=True)
    duration_ms = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<OperationLog(id={self.id}, operation={self.operation}, status={self.status})>"


class ExchangeRateModel(Base):
    """Tipo de cambio oficial NBU para un día y una moneda."""

    __tablename__ = "exchange_rates"
    __table_args__ = (
        UniqueConstraint("date", "currency_code", name="uq_exchange_rates_date_currency"),
    )

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    currency_code = Column(String(3), nullable=False)
    rate = Column(Float, nullable=False)
    currency_name = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ExchangeRate(date={self.date}, currency={self.currency_code}, rate={self.rate})>"


class CompanyModel(Base):
    """Empresa propietaria de declaraciones y jobs de sync."""

    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    edrpou = Column(String(20), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Company(id={self.id}, name={self.name})>"


class DeclarationModel(Base):
    """
    Declaración aduanera.

    `xml_data` guarda un sobre JSON `{"data60_1": {...}, "data61_1": "<xml>"}`
    o, en registros antiguos, el XML 61.1 crudo.
    """

    __tablename__ = "declarations"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    customs_id = Column(String(64), nullable=True, index=True)
    mrn = Column(String(64), nullable=True, index=True)
    status = Column(String(32), nullable=False, default="PROCESSING")
    date = Column(DateTime(timezone=True), nullable=True, index=True)
    xml_data = Column(Text, nullable=True)
    declarant_name = Column(String(500), nullable=True)
    sender_name = Column(String(500), nullable=True)
    recipient_name = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Declaration(id={self.id}, customs_id={self.customs_id}, mrn={self.mrn})>"


class DeclarationSummaryModel(Base):
    """Proyección 1:1 de los campos consultables de una declaración."""

    __tablename__ = "declaration_summaries"

    id = Column(Integer, primary_key=True, index=True)
    declaration_id = Column(
        Integer, ForeignKey("declarations.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    customs_value = Column(Float, nullable=True)
    currency = Column(String(10), nullable=True)
    total_items = Column(Integer, nullable=True)
    customs_office = Column(String(255), nullable=True)
    declarant_name = Column(String(500), nullable=True)
    sender_name = Column(String(500), nullable=True)
    recipient_name = Column(String(500), nullable=True)
    contract_holder = Column(String(500), nullable=True)
    representative_name = Column(String(500), nullable=True)
    carrier_name = Column(String(500), nullable=True)
    bank_name = Column(String(500), nullable=True)
    declaration_type = Column(String(100), nullable=True)
    registered_date = Column(DateTime(timezone=True), nullable=True)
    invoice_value = Column(Float, nullable=True)
    invoice_currency = Column(String(10), nullable=True)
    invoice_value_uah = Column(Float, nullable=True)
    exchange_rate = Column(Float, nullable=True)
    transport_details = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<DeclarationSummary(declaration_id={self.declaration_id})>"


class DeclarationHsCodeModel(Base):
    """Códigos HS (UKTZED) distintos de una declaración."""

    __tablename__ = "declaration_hs_codes"
    __table_args__ = (
        UniqueConstraint("declaration_id", "hs_code", name="uq_declaration_hs_codes"),
    )

    id = Column(Integer, primary_key=True, index=True)
    declaration_id = Column(
        Integer, ForeignKey("declarations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    hs_code = Column(String(20), nullable=False, index=True)


class SyncJobModel(Base):
    """
    Job de sincronización de declaraciones en dos fases.

    Fase 1 (60.1): listas por chunk de fechas.
    Fase 2 (61.1): detalle por GUID.
    """

    __tablename__ = "sync_jobs"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=SyncJobStatus.PROCESSING.value, index=True)
    date_from = Column(DateTime(timezone=True), nullable=False)
    date_to = Column(DateTime(timezone=True), nullable=False)
    total_chunks_60_1 = Column(Integer, nullable=False, default=0)
    completed_chunks_60_1 = Column(Integer, nullable=False, default=0)
    total_guids = Column(Integer, nullable=False, default=0)
    completed_61_1 = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<SyncJob(id={self.id}, company_id={self.company_id}, status={self.status})>"


class SyncJobErrorModel(Base):
    """Error de un chunk de fase 1 (append-only)."""

    __tablename__ = "sync_job_errors"

    id = Column(Integer, primary_key=True, index=True)
    sync_job_id = Column(Integer, ForeignKey("sync_jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    chunk_number = Column(Integer, nullable=False)
    date_from = Column(DateTime(timezone=True), nullable=False)
    date_to = Column(DateTime(timezone=True), nullable=False)
    error_message = Column(Text, nullable=False)
    error_code = Column(String(50), nullable=True)
    retry_attempts = Column(Integer, nullable=False, default=0)
    is_retried = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<SyncJobError(job={self.sync_job_id}, chunk={self.chunk_number})>"
