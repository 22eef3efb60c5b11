"""
INSERT ... ON CONFLICT DO UPDATE independiente del dialecto.

PostgreSQL en producción y SQLite en tests exponen la misma API
(`on_conflict_do_update` + `excluded`) desde sus módulos de dialecto.
"""
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def dialect_insert(db: AsyncSession, model):
    """
    Construye un `insert()` del dialecto de la sesión con soporte de upsert.

    Args:
        db: Sesión async ligada a un engine
        model: Modelo ORM destino

    Returns:
        Insert: Statement con `on_conflict_do_update` disponible

    Raises:
        NotImplementedError: Si el dialecto no soporta ON CONFLICT
    """
    dialect_name = db.get_bind().dialect.name
    if dialect_name == "postgresql":
        return postgresql.insert(model)
    if dialect_name == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upsert no soportado para el dialecto '{dialect_name}'")
