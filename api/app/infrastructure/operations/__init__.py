"""
Primitivas de coordinación de operaciones sobre la base de datos compartida.

- OperationLock: exclusión mutua advisory por scope con TTL. La constraint
  UNIQUE sobre `scope_key` es el único mecanismo de corrección; no hay
  servidor de locks dedicado.
- OperationLog: auditoría de operaciones (started -> success/error/blocked).
  Es puramente observacional: nunca decide si algo se ejecuta.
"""
