"""
Seed data for development and testing.
Creates the base roles with their masks, the areas, an administrator and a
few contextual rules.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import Area, ContextualPermissionRule, Role, User
from rest_api.services.permissions import ContextCondition, PermissionBit, mask_from_bits
from shared.config.constants import AreaType, ResourceType, Roles
from shared.config.logging import get_logger, mask_cip

logger = get_logger(__name__)


# =============================================================================
# Seed constants
# =============================================================================

ADMIN_CIP = "00000001"

ROLE_MASKS = {
    Roles.ADMIN: 255,
    Roles.MESA_PARTES: mask_from_bits([
        PermissionBit.CREAR,
        PermissionBit.EDITAR,
        PermissionBit.VER,
        PermissionBit.DERIVAR,
        PermissionBit.EXPORTAR,
    ]),
    Roles.RESPONSABLE_AREA: mask_from_bits([
        PermissionBit.CREAR,
        PermissionBit.EDITAR,
        PermissionBit.ELIMINAR,
        PermissionBit.VER,
        PermissionBit.DERIVAR,
        PermissionBit.AUDITAR,
        PermissionBit.EXPORTAR,
    ]),
    Roles.OPERADOR: mask_from_bits([
        PermissionBit.EDITAR,
        PermissionBit.VER,
        PermissionBit.DERIVAR,
    ]),
    Roles.CONSULTA: mask_from_bits([PermissionBit.VER]),
}

ROLE_DESCRIPTIONS = {
    Roles.ADMIN: "Administración total del sistema",
    Roles.MESA_PARTES: "Recepción y registro de documentos",
    Roles.RESPONSABLE_AREA: "Jefatura de área",
    Roles.OPERADOR: "Personal que tramita documentos",
    Roles.CONSULTA: "Solo lectura",
}

AREAS = [
    {"name": "Mesa de Partes", "code": "MP", "area_type": AreaType.ADMINISTRATIVA},
    {"name": "Dirección", "code": "DIR", "area_type": AreaType.ADMINISTRATIVA},
    {"name": "Asesoría Legal", "code": "AL", "area_type": AreaType.ESPECIALIZADA},
    {"name": "Logística", "code": "LOG", "area_type": AreaType.OPERATIVA},
]


def seed_roles(db: Session) -> dict[str, Role]:
    roles = {role.name: role for role in db.execute(select(Role)).scalars()}
    for name, mask in ROLE_MASKS.items():
        if name in roles:
            continue
        role = Role(name=name, mask=mask, description=ROLE_DESCRIPTIONS[name])
        db.add(role)
        roles[name] = role
    db.flush()
    return roles


def seed_areas(db: Session) -> dict[str, Area]:
    areas = {area.code: area for area in db.execute(select(Area)).scalars()}
    for area_data in AREAS:
        if area_data["code"] in areas:
            continue
        area = Area(**area_data)
        db.add(area)
        areas[area.code] = area
    db.flush()
    return areas


def seed_rules(db: Session, roles: dict[str, Role], areas: dict[str, Area]) -> None:
    """
    Area heads may edit and derive any document of their own area; operators
    may edit the documents assigned to them.
    """
    if db.scalar(select(ContextualPermissionRule.id).limit(1)):
        return

    for area in areas.values():
        for bit in (PermissionBit.EDITAR, PermissionBit.DERIVAR):
            db.add(ContextualPermissionRule(
                role_id=roles[Roles.RESPONSABLE_AREA].id,
                area_id=area.id,
                resource_type=ResourceType.DOCUMENTO,
                condition=ContextCondition.MISMA_AREA.value,
                action_bit=int(bit),
                description="Jefatura: documentos de su área",
            ))
        db.add(ContextualPermissionRule(
            role_id=roles[Roles.OPERADOR].id,
            area_id=area.id,
            resource_type=ResourceType.DOCUMENTO,
            condition=ContextCondition.ASIGNADO.value,
            action_bit=int(PermissionBit.EDITAR),
            description="Operador: documentos asignados",
        ))
    db.flush()


def seed(db: Session) -> None:
    """
    Seed the database with the base organization.
    Idempotent: existing roles, areas and users are left untouched.
    """
    roles = seed_roles(db)
    areas = seed_areas(db)
    seed_rules(db, roles, areas)

    if db.scalar(select(User.id).where(User.cip == ADMIN_CIP)) is None:
        admin = User(
            cip=ADMIN_CIP,
            first_name="Administrador",
            last_name="del Sistema",
            role_id=roles[Roles.ADMIN].id,
            area_id=areas["MP"].id,
        )
        db.add(admin)
        logger.info("Administrator user created", cip=mask_cip(ADMIN_CIP))

    db.commit()
    logger.info("Seed completed", roles=len(roles), areas=len(areas))
