"""
Dependencias de acceso: empresa activa, rol del usuario y token de admin.

La autenticación de usuarios vive en el gateway de la plataforma, que
reenvía la empresa activa y el rol en headers.
"""
import secrets
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Header

from app.core.config import settings
from app.shared.constants.sync_constants import CompanyRole
from app.shared.exceptions.auth import (
    ForbiddenException,
    ServerMisconfiguredException,
    UnauthorizedException,
)


@dataclass(frozen=True)
class CompanyAccess:
    """Empresa activa y rol del usuario que hace la request."""

    company_id: int
    role: CompanyRole
    user_id: Optional[str] = None


async def get_company_access(
    x_company_id: Optional[int] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
) -> CompanyAccess:
    """
    Resuelve la empresa activa.

    Raises:
        UnauthorizedException: Si no hay empresa activa
        ForbiddenException: Si el rol no es reconocido
    """
    if x_company_id is None:
        raise UnauthorizedException("Empresa activa no establecida")
    try:
        role = CompanyRole((x_user_role or "").strip().upper())
    except ValueError:
        raise ForbiddenException("Rol de empresa desconocido") from None
    return CompanyAccess(company_id=x_company_id, role=role, user_id=x_user_id)


def require_company_roles(*roles: CompanyRole) -> Callable:
    """Dependencia que exige uno de los roles dados en la empresa activa."""

    async def dependency(access: CompanyAccess = Depends(get_company_access)) -> CompanyAccess:
        if access.role not in roles:
            raise ForbiddenException("Rol insuficiente para esta operacion")
        return access

    return dependency


require_company_writer = require_company_roles(CompanyRole.OWNER, CompanyRole.MEMBER)


async def require_admin_token(x_admin_token: Optional[str] = Header(None)) -> str:
    """
    Valida el token de administración.

    Raises:
        ServerMisconfiguredException: ADMIN_API_TOKEN no configurado
        UnauthorizedException: Token ausente o distinto
    """
    expected = settings.ADMIN_API_TOKEN
    if not expected:
        raise ServerMisconfiguredException("ADMIN_API_TOKEN")
    if not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise UnauthorizedException("Token de administracion invalido")
    return x_admin_token
