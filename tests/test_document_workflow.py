"""
Tests for DocumentWorkflowService.

Covers the state machine, authorization order, and the one-entry-per-mutation
ledger contract.
"""

import pytest

from rest_api.models import Document, TrazabilidadEntry
from rest_api.repositories import DocumentFilters
from rest_api.services.domain import DocumentWorkflowService, TrazabilidadLedger
from rest_api.services.permissions import AccessDecisionOrchestrator, PermissionBit
from shared.config.constants import DocumentState, Roles, TrazabilidadAction
from shared.utils.exceptions import (
    AreaNotFoundError,
    ConcurrentModificationError,
    ConflictError,
    DocumentNotFoundError,
    DuplicateEntityError,
    ForbiddenError,
    InvalidTransitionError,
    TerminalStateError,
    ValidationError,
)
from shared.utils.schemas import DocumentCreate, DocumentUpdate


@pytest.fixture
def service(db_session, orchestrator):
    return DocumentWorkflowService(db_session, orchestrator=orchestrator)


@pytest.fixture
def ledger(db_session):
    return TrazabilidadLedger(db_session)


@pytest.fixture
def admin(admin_user, actor_of):
    return actor_of(admin_user)


@pytest.fixture
def mesa(mesa_user, actor_of):
    return actor_of(mesa_user)


def register(service, actor, areas, **overrides):
    data = {
        "subject": "Solicitud de información",
        "origin_area_id": areas["MP"].id,
        "destination_area_id": areas["DIR"].id,
    }
    data.update(overrides)
    return service.register(DocumentCreate(**data), actor)


class TestRegister:
    def test_register_then_read(self, service, mesa, areas):
        document = register(service, mesa, areas, subject="X")

        loaded = service.read(document.id, mesa)
        assert loaded.subject == "X"
        assert loaded.state == DocumentState.REGISTRADO
        assert loaded.current_area_id == areas["DIR"].id
        assert loaded.creator_id == mesa.id

    def test_register_defaults_to_origin_area(self, service, mesa, areas):
        document = register(service, mesa, areas, destination_area_id=None)
        assert document.current_area_id == areas["MP"].id

    def test_register_writes_one_registro_entry(self, service, ledger, mesa, areas):
        document = register(service, mesa, areas)

        entries = ledger.history(document.id)
        assert len(entries) == 1
        assert entries[0].action == TrazabilidadAction.REGISTRO
        assert entries[0].origin_area_id == areas["MP"].id
        assert entries[0].destination_area_id == areas["DIR"].id
        assert entries[0].new_state == DocumentState.REGISTRADO
        assert entries[0].actor_id == mesa.id

    def test_generated_code_uses_prefix(self, service, mesa, areas):
        document = register(service, mesa, areas)
        assert document.code.startswith("EXP-")

    def test_duplicate_code_conflict(self, service, mesa, areas):
        register(service, mesa, areas, code="oficio-001")
        with pytest.raises(DuplicateEntityError) as exc_info:
            register(service, mesa, areas, code="OFICIO-001")
        assert exc_info.value.status_code == 409
        assert "OFICIO-001" in exc_info.value.detail

    def test_unknown_area_not_found(self, service, mesa, areas):
        with pytest.raises(AreaNotFoundError):
            register(service, mesa, areas, destination_area_id=9999)

    def test_missing_crear_bit_forbidden(self, service, viewer_user, actor_of, areas, db_session):
        with pytest.raises(ForbiddenError) as exc_info:
            register(service, actor_of(viewer_user), areas)
        assert exc_info.value.reason_code == "MissingBit"
        assert db_session.query(Document).count() == 0

    def test_read_missing_or_deleted_not_found(self, service, admin, areas):
        document = register(service, admin, areas)
        service.soft_delete(document.id, admin)

        with pytest.raises(DocumentNotFoundError):
            service.read(document.id, admin)
        with pytest.raises(DocumentNotFoundError):
            service.read(424242, admin)


class TestDerive:
    def test_derive_moves_area_and_starts_processing(self, service, ledger, mesa, areas):
        document = register(service, mesa, areas)

        derived = service.derive(document.id, areas["AL"].id, mesa, urgent=True, reason="Opinión legal")

        assert derived.current_area_id == areas["AL"].id
        assert derived.state == DocumentState.EN_PROCESO
        entries = ledger.history(document.id)
        assert [e.action for e in entries] == [TrazabilidadAction.REGISTRO, TrazabilidadAction.DERIVACION]
        assert entries[1].origin_area_id == areas["DIR"].id
        assert entries[1].destination_area_id == areas["AL"].id
        assert entries[1].urgent is True
        assert entries[1].reason == "Opinión legal"

    def test_same_area_conflict_before_permission_check(
        self, service, audit, make_user, make_document, actor_of, areas
    ):
        owner = make_user("50000001", Roles.CONSULTA, "DIR")
        document = make_document(owner, areas["DIR"])
        stranger = make_user("50000002", Roles.CONSULTA, "AL", mask_override=0)

        with pytest.raises(ConflictError):
            service.derive(document.id, areas["DIR"].id, actor_of(stranger))
        assert audit.records == []

    def test_mask_16_owner_derives(self, service, ledger, make_user, make_document, actor_of, areas):
        deriver = make_user("50000003", Roles.OPERADOR, "DIR", mask_override=16)
        document = make_document(deriver, areas["DIR"])

        derived = service.derive(document.id, areas["AL"].id, actor_of(deriver))

        assert derived.state == DocumentState.EN_PROCESO
        entries = ledger.history(document.id)
        assert len(entries) == 1
        assert entries[0].action == TrazabilidadAction.DERIVACION

    def test_non_owner_without_rules_forbidden(self, service, make_user, make_document, actor_of, areas):
        owner = make_user("50000004", Roles.OPERADOR, "DIR")
        other = make_user("50000005", Roles.OPERADOR, "DIR")
        document = make_document(owner, areas["DIR"])

        with pytest.raises(ForbiddenError) as exc_info:
            service.derive(document.id, areas["AL"].id, actor_of(other))
        assert exc_info.value.reason_code == "NotOwner"

    def test_same_area_rule_lets_colleague_derive(
        self, service, roles, make_user, make_rule, make_document, actor_of, areas
    ):
        owner = make_user("50000006", Roles.OPERADOR, "DIR")
        colleague = make_user("50000007", Roles.OPERADOR, "DIR")
        make_rule(roles[Roles.OPERADOR], areas["DIR"], "MISMA_AREA", PermissionBit.DERIVAR)
        document = make_document(owner, areas["DIR"])

        derived = service.derive(document.id, areas["AL"].id, actor_of(colleague))
        assert derived.current_area_id == areas["AL"].id

    def test_unknown_destination_not_found(self, service, admin, areas):
        document = register(service, admin, areas)
        with pytest.raises(AreaNotFoundError):
            service.derive(document.id, 9999, admin)


class TestStatus:
    def test_legal_edges(self, service, ledger, admin, areas):
        document = register(service, admin, areas)

        service.set_status(document.id, DocumentState.EN_PROCESO, admin)
        service.set_status(document.id, DocumentState.OBSERVADO, admin, observations="Falta firma")
        service.set_status(document.id, DocumentState.EN_PROCESO, admin)
        finalized = service.set_status(document.id, DocumentState.FINALIZADO, admin)

        assert finalized.finalized_at is not None
        entries = ledger.history(document.id)
        assert len(entries) == 5
        assert entries[2].previous_state == DocumentState.EN_PROCESO
        assert entries[2].new_state == DocumentState.OBSERVADO
        assert entries[2].observations == "Falta firma"

    @pytest.mark.parametrize(
        "target",
        [DocumentState.FINALIZADO, DocumentState.OBSERVADO, DocumentState.ARCHIVADO, DocumentState.REGISTRADO],
    )
    def test_illegal_edge_conflict(self, service, ledger, admin, areas, target):
        document = register(service, admin, areas)
        with pytest.raises(InvalidTransitionError):
            service.set_status(document.id, target, admin)
        assert ledger.count(document.id) == 1

    def test_unknown_state_validation(self, service, admin, areas):
        document = register(service, admin, areas)
        with pytest.raises(ValidationError):
            service.set_status(document.id, "PERDIDO", admin)

    def test_archive_after_finalize(self, service, admin, areas):
        document = register(service, admin, areas)
        for state in (DocumentState.EN_PROCESO, DocumentState.FINALIZADO, DocumentState.ARCHIVADO):
            document = service.set_status(document.id, state, admin)
        assert document.state == DocumentState.ARCHIVADO


class TestTerminalDocuments:
    @pytest.fixture
    def finalized(self, service, admin, areas):
        document = register(service, admin, areas)
        service.set_status(document.id, DocumentState.EN_PROCESO, admin)
        return service.set_status(document.id, DocumentState.FINALIZADO, admin)

    def test_update_conflict(self, service, admin, finalized):
        with pytest.raises(TerminalStateError):
            service.update(finalized.id, DocumentUpdate(subject="Nuevo"), admin)

    def test_derive_conflict(self, service, admin, areas, finalized):
        with pytest.raises(TerminalStateError):
            service.derive(finalized.id, areas["AL"].id, admin)

    def test_purge_without_soft_delete_conflict(self, service, admin, finalized):
        with pytest.raises(ConflictError):
            service.purge(finalized.id, admin)

    def test_purge_after_soft_delete(self, service, ledger, admin, finalized, db_session):
        document_id = finalized.id
        service.soft_delete(document_id, admin)
        service.purge(document_id, admin)

        assert db_session.get(Document, document_id) is None
        entries = ledger.history(document_id)
        assert entries[-1].observations == "Documento eliminado permanentemente"
        assert len(entries) == 5


class TestUpdate:
    def test_update_fields(self, service, ledger, mesa, areas):
        document = register(service, mesa, areas)
        updated = service.update(document.id, DocumentUpdate(subject="Asunto corregido", priority="ALTA"), mesa)

        assert updated.subject == "Asunto corregido"
        assert updated.priority == "ALTA"
        last = ledger.history(document.id)[-1]
        assert last.action == TrazabilidadAction.ACTUALIZACION
        assert "priority" in last.observations

    def test_empty_update_validation(self, service, mesa, areas):
        document = register(service, mesa, areas)
        with pytest.raises(ValidationError):
            service.update(document.id, DocumentUpdate(), mesa)

    def test_owner_rule_rejects_non_owner(
        self, service, roles, make_user, make_rule, make_document, actor_of, areas, audit
    ):
        owner = make_user("60000001", Roles.OPERADOR, "DIR")
        other = make_user("60000002", Roles.OPERADOR, "DIR")
        make_rule(roles[Roles.OPERADOR], areas["DIR"], "PROPIETARIO", PermissionBit.EDITAR)
        document = make_document(owner, areas["DIR"])

        service.update(document.id, DocumentUpdate(content="ok"), actor_of(owner))
        with pytest.raises(ForbiddenError) as exc_info:
            service.update(document.id, DocumentUpdate(content="no"), actor_of(other))
        assert exc_info.value.reason_code == "ContextRuleRejected"
        assert audit.last["reason"] == "ContextRuleRejected"


class TestTrash:
    def test_soft_delete_and_restore(self, service, ledger, admin, areas):
        document = register(service, admin, areas)

        service.soft_delete(document.id, admin)
        trash, total = service.list_trash(DocumentFilters(), admin)
        assert total == 1 and trash[0].id == document.id
        active, _ = service.list_documents(DocumentFilters(), admin)
        assert active == []

        restored = service.restore(document.id, admin)
        assert restored.is_active
        assert ledger.count(document.id) == 3

    def test_restore_active_conflict(self, service, admin, areas):
        document = register(service, admin, areas)
        with pytest.raises(ConflictError):
            service.restore(document.id, admin)

    def test_soft_delete_requires_ownership(self, service, make_user, make_document, actor_of, areas):
        owner = make_user("70000001", Roles.RESPONSABLE_AREA, "DIR")
        other = make_user("70000002", Roles.RESPONSABLE_AREA, "DIR")
        document = make_document(owner, areas["DIR"])

        with pytest.raises(ForbiddenError):
            service.soft_delete(document.id, actor_of(other))
        assert service.soft_delete(document.id, actor_of(owner)).is_active is False

    def test_history_of_trashed_document(self, service, admin, areas):
        document = register(service, admin, areas)
        service.soft_delete(document.id, admin)
        assert len(service.history(document.id, admin)) == 2

    def test_history_survives_purge(self, service, admin, areas):
        document = register(service, admin, areas)
        service.soft_delete(document.id, admin)
        service.purge(document.id, admin)

        entries = service.history(document.id, admin)
        assert [e.action for e in entries][0] == TrazabilidadAction.REGISTRO
        assert entries[-1].observations == "Documento eliminado permanentemente"
        with pytest.raises(DocumentNotFoundError):
            service.history(document.id + 1000, admin)

    def test_purged_history_still_authorized(
        self, service, roles, areas, make_user, make_rule, actor_of, admin
    ):
        document = register(service, admin, areas)
        service.soft_delete(document.id, admin)
        service.purge(document.id, admin)

        viewer = make_user("71000001", Roles.CONSULTA, "AL")
        make_rule(roles[Roles.CONSULTA], areas["AL"], "MISMA_AREA", PermissionBit.VER)
        with pytest.raises(ForbiddenError) as exc_info:
            service.history(document.id, actor_of(viewer))
        assert exc_info.value.reason_code == "ContextRuleRejected"


class TestLedgerInvariants:
    def test_one_entry_per_mutation_with_increasing_timestamps(self, service, ledger, admin, areas):
        document = register(service, admin, areas)
        service.derive(document.id, areas["AL"].id, admin)
        service.set_status(document.id, DocumentState.OBSERVADO, admin)
        service.derive(document.id, areas["MP"].id, admin)
        service.update(document.id, DocumentUpdate(observations="Revisado"), admin)

        entries = ledger.history(document.id)
        assert len(entries) == 5
        stamps = [e.created_at for e in entries]
        assert all(a < b for a, b in zip(stamps, stamps[1:]))

    def test_failed_mutation_leaves_no_entry(self, service, ledger, admin, areas, db_session):
        document = register(service, admin, areas)
        with pytest.raises(ConflictError):
            service.derive(document.id, areas["DIR"].id, admin)

        assert ledger.count(document.id) == 1
        db_session.expire_all()
        assert db_session.get(Document, document.id).state == DocumentState.REGISTRADO

    def test_version_increments_on_each_change(self, service, admin, areas):
        document = register(service, admin, areas)
        first = document.version
        service.derive(document.id, areas["AL"].id, admin)
        assert document.version == first + 1

    def test_stale_version_is_concurrent_modification(
        self, service, admin, areas, other_session, audit, db_session
    ):
        document = register(service, admin, areas)
        stale = other_session.get(Document, document.id)
        assert stale.state == DocumentState.REGISTRADO

        service.derive(document.id, areas["AL"].id, admin)

        other = DocumentWorkflowService(
            other_session,
            orchestrator=AccessDecisionOrchestrator.for_session(other_session, audit=audit),
        )
        with pytest.raises(ConcurrentModificationError) as exc_info:
            other.set_status(document.id, DocumentState.CANCELADO, admin)
        assert exc_info.value.status_code == 409

        db_session.expire_all()
        current = db_session.get(Document, document.id)
        assert current.state == DocumentState.EN_PROCESO
        assert TrazabilidadLedger(db_session).count(document.id) == 2


class TestListing:
    def test_filters_and_newest_first(self, service, admin, areas):
        first = register(service, admin, areas, subject="Compra de insumos")
        second = register(service, admin, areas, subject="Informe legal", destination_area_id=areas["AL"].id)

        items, total = service.list_documents(DocumentFilters(), admin)
        assert total == 2
        assert [d.id for d in items] == [second.id, first.id]

        items, total = service.list_documents(DocumentFilters(area_id=areas["AL"].id), admin)
        assert [d.id for d in items] == [second.id]

        items, _ = service.list_documents(DocumentFilters(search="insumos"), admin)
        assert [d.id for d in items] == [first.id]

    def test_ver_rule_narrows_listing_like_read(
        self, service, admin, areas, roles, make_rule, viewer_user, actor_of
    ):
        make_rule(roles[Roles.CONSULTA], areas["DIR"], "MISMA_AREA", PermissionBit.VER)
        elsewhere = register(service, admin, areas, destination_area_id=areas["MP"].id)
        here = register(service, admin, areas, destination_area_id=areas["DIR"].id)
        viewer = actor_of(viewer_user)

        with pytest.raises(ForbiddenError) as exc_info:
            service.read(elsewhere.id, viewer)
        assert exc_info.value.reason_code == "ContextRuleRejected"
        assert service.read(here.id, viewer).id == here.id

        items, total = service.list_documents(DocumentFilters(), viewer)
        assert [d.id for d in items] == [here.id]
        assert total == 1

        service.soft_delete(elsewhere.id, admin)
        trash, total = service.list_trash(DocumentFilters(), viewer)
        assert trash == [] and total == 0

    def test_rules_combine_as_any_match(
        self, service, admin, areas, roles, make_rule, make_user, make_document, actor_of
    ):
        boss = make_user("80000001", Roles.OPERADOR, "DIR")
        report = make_user("80000002", Roles.OPERADOR, "AL", supervisor=boss)
        stranger = make_user("80000003", Roles.OPERADOR, "AL")
        make_rule(roles[Roles.OPERADOR], areas["DIR"], "SUPERVISOR", PermissionBit.VER)
        make_rule(roles[Roles.OPERADOR], areas["DIR"], "ASIGNADO", PermissionBit.VER)

        by_report = make_document(report, areas["AL"])
        assigned = make_document(stranger, areas["AL"], assignee=boss)
        make_document(stranger, areas["AL"])

        items, total = service.list_documents(DocumentFilters(), actor_of(boss))
        assert {d.id for d in items} == {by_report.id, assigned.id}
        assert total == 2

    def test_export_follows_ver_rules(self, service, admin, mesa, areas, roles, make_rule):
        make_rule(roles[Roles.MESA_PARTES], areas["MP"], "MISMA_AREA", PermissionBit.VER)
        register(service, admin, areas, code="EXP-MP-1", destination_area_id=areas["MP"].id)
        register(service, admin, areas, code="EXP-DIR-1", destination_area_id=areas["DIR"].id)

        rows = service.export_rows(DocumentFilters(), mesa)
        assert [r["code"] for r in rows] == ["EXP-MP-1"]

    def test_admin_listing_ignores_rules(self, service, admin, areas, roles, make_rule):
        make_rule(roles[Roles.ADMIN], areas["DIR"], "PROPIETARIO", PermissionBit.VER)
        register(service, admin, areas, destination_area_id=areas["AL"].id)
        _, total = service.list_documents(DocumentFilters(), admin)
        assert total == 1

    def test_invalid_state_filter(self, service, admin):
        with pytest.raises(ValidationError):
            service.list_documents(DocumentFilters(state="PERDIDO"), admin)

    def test_export_requires_exportar(self, service, operator_user, actor_of):
        with pytest.raises(ForbiddenError):
            service.export_rows(DocumentFilters(), actor_of(operator_user))

    def test_export_csv(self, service, mesa, areas):
        register(service, mesa, areas, subject="Exportable", code="EXP-CSV-1")
        content = service.export_csv(DocumentFilters(), mesa)
        lines = content.strip().splitlines()
        assert lines[0].startswith("id,code,subject")
        assert "EXP-CSV-1" in lines[1]


def test_trazabilidad_rows_are_immutable(service, admin, areas, db_session):
    document = register(service, admin, areas)
    entry = db_session.query(TrazabilidadEntry).filter_by(document_id=document.id).one()
    entry.observations = "editado"
    with pytest.raises(RuntimeError):
        db_session.flush()
    db_session.rollback()
