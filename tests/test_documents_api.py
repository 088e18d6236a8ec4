"""
Tests for the /api/documentos endpoints.
"""

from shared.config.constants import Roles
from shared.security.auth import sign_user_token


def create_document(client, headers, areas, **overrides):
    body = {
        "subject": "Oficio de la Dirección",
        "origin_area_id": areas["MP"].id,
        "destination_area_id": areas["DIR"].id,
    }
    body.update(overrides)
    return client.post("/api/documentos", json=body, headers=headers)


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get("/api/documentos")
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "UNAUTHENTICATED"

    def test_expired_token(self, client, admin_user):
        token = sign_user_token(admin_user.id, ttl_seconds=-10)
        response = client.get("/api/documentos", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_unknown_user(self, client, areas):
        token = sign_user_token(987654)
        response = client.get("/api/documentos", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestDocumentLifecycle:
    def test_register_read_derive_history(self, client, mesa_headers, areas):
        response = create_document(client, mesa_headers, areas, subject="X")
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        document = body["data"]
        assert document["state"] == "REGISTRADO"

        response = client.get(f"/api/documentos/{document['id']}", headers=mesa_headers)
        assert response.status_code == 200
        assert response.json()["data"]["subject"] == "X"

        response = client.post(
            f"/api/documentos/{document['id']}/derivar",
            json={"destination_area_id": areas["AL"].id, "urgent": True},
            headers=mesa_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["state"] == "EN_PROCESO"

        response = client.get(f"/api/documentos/{document['id']}/trazabilidad", headers=mesa_headers)
        actions = [entry["action"] for entry in response.json()["data"]]
        assert actions == ["REGISTRO", "DERIVACION"]

    def test_status_change_and_illegal_edge(self, client, admin_headers, areas):
        document = create_document(client, admin_headers, areas).json()["data"]

        response = client.patch(
            f"/api/documentos/{document['id']}/estado",
            json={"state": "FINALIZADO"},
            headers=admin_headers,
        )
        assert response.status_code == 409
        assert response.json()["error"] == "CONFLICT"

        response = client.patch(
            f"/api/documentos/{document['id']}/estado",
            json={"state": "EN_PROCESO", "observations": "Recibido"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["state"] == "EN_PROCESO"

    def test_derive_same_area_conflict(self, client, admin_headers, areas):
        document = create_document(client, admin_headers, areas).json()["data"]
        response = client.post(
            f"/api/documentos/{document['id']}/derivar",
            json={"destination_area_id": areas["DIR"].id},
            headers=admin_headers,
        )
        assert response.status_code == 409

    def test_trash_restore_purge(self, client, admin_headers, areas):
        document = create_document(client, admin_headers, areas).json()["data"]
        doc_url = f"/api/documentos/{document['id']}"

        assert client.delete(f"{doc_url}/eliminar-permanente", headers=admin_headers).status_code == 409
        assert client.delete(doc_url, headers=admin_headers).status_code == 200
        assert client.get(doc_url, headers=admin_headers).status_code == 404

        trash = client.get("/api/documentos/papelera", headers=admin_headers).json()["data"]
        assert [d["id"] for d in trash["items"]] == [document["id"]]

        assert client.post(f"{doc_url}/restaurar", headers=admin_headers).status_code == 200
        assert client.delete(doc_url, headers=admin_headers).status_code == 200
        assert client.delete(f"{doc_url}/eliminar-permanente", headers=admin_headers).status_code == 200
        assert client.get(doc_url, headers=admin_headers).status_code == 404

        history = client.get(f"{doc_url}/trazabilidad", headers=admin_headers)
        assert history.status_code == 200
        entries = history.json()["data"]
        assert len(entries) == 5
        assert entries[-1]["observations"] == "Documento eliminado permanentemente"
        assert client.get("/api/documentos/999999/trazabilidad", headers=admin_headers).status_code == 404

    def test_update(self, client, mesa_headers, areas):
        document = create_document(client, mesa_headers, areas).json()["data"]
        response = client.put(
            f"/api/documentos/{document['id']}",
            json={"subject": "Asunto nuevo"},
            headers=mesa_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["subject"] == "Asunto nuevo"

        response = client.put(f"/api/documentos/{document['id']}", json={}, headers=mesa_headers)
        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION"


class TestAuthorization:
    def test_viewer_cannot_register(self, client, viewer_user, headers_for, areas):
        response = create_document(client, headers_for(viewer_user), areas)
        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "FORBIDDEN"
        assert body["message"] == "No autorizado: permisos insuficientes"

    def test_viewer_can_list(self, client, viewer_user, headers_for, admin_headers, areas):
        create_document(client, admin_headers, areas)
        response = client.get("/api/documentos", headers=headers_for(viewer_user))
        assert response.status_code == 200
        page = response.json()["data"]
        assert page["pagination"]["total"] == 1

    def test_non_owner_cannot_delete(self, client, make_user, headers_for, admin_headers, areas):
        head = make_user("90000001", Roles.RESPONSABLE_AREA, "DIR")
        document = create_document(client, admin_headers, areas).json()["data"]
        response = client.delete(f"/api/documentos/{document['id']}", headers=headers_for(head))
        assert response.status_code == 403


class TestValidation:
    def test_body_validation_envelope(self, client, mesa_headers, areas):
        response = client.post(
            "/api/documentos",
            json={"subject": "", "origin_area_id": areas["MP"].id},
            headers=mesa_headers,
        )
        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "VALIDATION"
        assert "subject" in body["message"]

    def test_unknown_field_rejected(self, client, mesa_headers, areas):
        response = create_document(client, mesa_headers, areas, state="FINALIZADO")
        assert response.status_code == 422

    def test_unknown_area(self, client, mesa_headers, areas):
        response = create_document(client, mesa_headers, areas, destination_area_id=9999)
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"


class TestListingAndExport:
    def test_filters_and_pagination(self, client, admin_headers, areas):
        for i in range(3):
            create_document(client, admin_headers, areas, subject=f"Oficio {i}")
        create_document(client, admin_headers, areas, subject="Carta", destination_area_id=areas["AL"].id)

        page = client.get("/api/documentos?limit=2", headers=admin_headers).json()["data"]
        assert len(page["items"]) == 2
        assert page["pagination"]["total"] == 4
        assert page["pagination"]["has_next"] is True

        page = client.get(f"/api/documentos?area_id={areas['AL'].id}", headers=admin_headers).json()["data"]
        assert [d["subject"] for d in page["items"]] == ["Carta"]

        page = client.get("/api/documentos?search=oficio", headers=admin_headers).json()["data"]
        assert page["pagination"]["total"] == 3

    def test_export_csv(self, client, admin_headers, areas):
        create_document(client, admin_headers, areas, code="EXP-API-1")
        response = client.get("/api/documentos/exportar", headers=admin_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "EXP-API-1" in response.text

    def test_export_requires_bit(self, client, viewer_user, headers_for):
        response = client.get("/api/documentos/exportar", headers=headers_for(viewer_user))
        assert response.status_code == 403
