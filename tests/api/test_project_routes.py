"""Tests for project API routes."""
import zipfile
from io import BytesIO

from tender_api.models.database import Project, ProjectDocument, ProjectStatus, WorkPackage, WorkPackageContent
from tender_engine.errors import RateLimitError, UpstreamGenerationError
from tender_engine.workflow import WorkPackageStatus


class TestProjectCrud:
    def test_create_and_get(self, client, sample_organization):
        response = client.post(
            "/api/projects",
            json={"organization_id": sample_organization.id, "name": "Harbour Dredging"},
        )

        assert response.status_code == 201
        project = response.json()
        assert project["status"] == "setup"
        assert client.get(f"/api/projects/{project['id']}").json()["name"] == "Harbour Dredging"

    def test_create_for_unknown_organization_is_404(self, client):
        response = client.post("/api/projects", json={"organization_id": "missing", "name": "X"})
        assert response.status_code == 404

    def test_update_instructions(self, client, sample_project):
        response = client.patch(f"/api/projects/{sample_project.id}", json={"instructions": "Keep it short."})
        assert response.status_code == 200
        assert response.json()["instructions"] == "Keep it short."
        assert response.json()["name"] == "City Bridge Maintenance"

    def test_work_packages_listed_in_order(self, client, sample_project, make_work_package):
        make_work_package(sample_project, document_type="Second", order=1)
        make_work_package(sample_project, document_type="First", order=0)

        response = client.get(f"/api/projects/{sample_project.id}/work-packages")

        assert [wp["document_type"] for wp in response.json()] == ["First", "Second"]


class TestProjectDocuments:
    def test_upload_text_file_extracts_content(self, client, db_session, sample_project):
        response = client.post(
            f"/api/projects/{sample_project.id}/documents",
            files={"file": ("scope.txt", b"The contractor shall inspect all bridges.", "text/plain")},
            data={"category": "scope_of_works"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["content_extracted"] is True
        assert data["category"] == "scope_of_works"
        assert data["is_primary_rft"] is False
        document = db_session.get(ProjectDocument, data["id"])
        assert document.content_text == "The contractor shall inspect all bridges."

    def test_unreadable_pdf_is_stored_without_text(self, client, sample_project):
        """Test that a failed extraction still stores the document."""
        response = client.post(
            f"/api/projects/{sample_project.id}/documents",
            files={"file": ("scan.pdf", b"not really a pdf", "application/pdf")},
        )

        assert response.status_code == 201
        assert response.json()["content_extracted"] is False

    def test_disallowed_extension_is_415(self, client, sample_project):
        response = client.post(
            f"/api/projects/{sample_project.id}/documents",
            files={"file": ("tool.exe", b"MZ", "application/octet-stream")},
        )
        assert response.status_code == 415

    def test_upload_as_primary_clears_previous(self, client, sample_project, make_project_document):
        previous = make_project_document(sample_project, name="Old.pdf", is_primary_rft=True)

        response = client.post(
            f"/api/projects/{sample_project.id}/documents",
            files={"file": ("New.txt", b"New RFT text", "text/plain")},
            data={"is_primary_rft": "true"},
        )

        assert response.status_code == 201
        assert response.json()["is_primary_rft"] is True
        listed = client.get(f"/api/projects/{sample_project.id}/documents").json()
        assert listed[0]["id"] == response.json()["id"]
        assert [d["is_primary_rft"] for d in listed if d["id"] == previous.id] == [False]

    def test_set_primary_moves_flag(self, client, db_session, sample_project, make_project_document):
        first = make_project_document(sample_project, name="A.pdf", is_primary_rft=True)
        second = make_project_document(sample_project, name="B.pdf")

        response = client.post(f"/api/projects/{sample_project.id}/documents/{second.id}/primary")

        assert response.status_code == 200
        assert response.json()["is_primary_rft"] is True
        db_session.expire_all()
        assert db_session.get(ProjectDocument, first.id).is_primary_rft is False
        assert db_session.get(ProjectDocument, second.id).is_primary_rft is True
        primaries = db_session.query(ProjectDocument).filter(ProjectDocument.is_primary_rft.is_(True)).all()
        assert [d.id for d in primaries] == [second.id]

    def test_set_primary_for_unknown_document_is_404(self, client, sample_project):
        response = client.post(f"/api/projects/{sample_project.id}/documents/missing/primary")
        assert response.status_code == 404

    def test_delete_document(self, client, db_session, sample_project):
        uploaded = client.post(
            f"/api/projects/{sample_project.id}/documents",
            files={"file": ("notes.md", b"# Notes", "text/markdown")},
        ).json()

        response = client.delete(f"/api/projects/{sample_project.id}/documents/{uploaded['id']}")

        assert response.status_code == 204
        assert client.get(f"/api/projects/{sample_project.id}/documents").json() == []


class TestAnalyze:
    def test_creates_work_packages_and_starts_project(self, client, db_session, sample_project, make_project_document):
        make_project_document(sample_project, is_primary_rft=True)

        response = client.post(f"/api/projects/{sample_project.id}/analyze")

        assert response.status_code == 200
        packages = response.json()["work_packages"]
        assert [(wp["document_type"], wp["order"]) for wp in packages] == [
            ("Methodology Statement", 0),
            ("Case Studies", 1),
        ]
        assert packages[0]["requirements"][0]["text"] == "Describe the delivery methodology"
        db_session.expire_all()
        assert db_session.get(Project, sample_project.id).status == ProjectStatus.IN_PROGRESS

    def test_failure_restores_project_status(self, client, db_session, mock_llm, sample_project, make_project_document):
        make_project_document(sample_project)
        mock_llm.responses["rft_analysis"] = UpstreamGenerationError("Generation failed")

        response = client.post(f"/api/projects/{sample_project.id}/analyze")

        assert response.status_code == 500
        db_session.expire_all()
        assert db_session.get(Project, sample_project.id).status == ProjectStatus.SETUP

    def test_malformed_model_output_is_500_and_restores_status(
        self, client, db_session, mock_llm, sample_project, make_project_document
    ):
        make_project_document(sample_project)
        mock_llm.responses["rft_analysis"] = '{"documents": [{"document_type": "Pricing", "requirements": [5]}]}'

        response = client.post(f"/api/projects/{sample_project.id}/analyze")

        assert response.status_code == 500
        assert "error" in response.json()
        db_session.expire_all()
        assert db_session.get(Project, sample_project.id).status == ProjectStatus.SETUP
        assert db_session.query(WorkPackage).count() == 0

    def test_without_rft_text_is_400(self, client, sample_project):
        response = client.post(f"/api/projects/{sample_project.id}/analyze")
        assert response.status_code == 400


class TestContextSummary:
    def test_counts_documents_and_estimates_tokens(
        self, client, sample_organization, sample_project, make_organization_document, make_project_document
    ):
        make_organization_document(sample_organization)
        make_project_document(sample_project)

        response = client.get(f"/api/projects/{sample_project.id}/context")

        assert response.status_code == 200
        data = response.json()
        # Company profile section plus one document
        assert data["organization_documents"] == 2
        assert data["rft_documents"] == 1
        assert data["valid"] is True
        assert data["warning"] is None
        assert data["token_estimate"] == -(-data["characters"] // 4)


class TestBulkExport:
    def test_archive_entries_follow_work_package_order(self, client, sample_project, make_work_package):
        for order in (2, 0, 1):
            make_work_package(
                sample_project,
                document_type=f"Order {order}",
                order=order,
                status=WorkPackageStatus.COMPLETED,
                content=f"# Order {order}",
            )

        response = client.post(f"/api/projects/{sample_project.id}/export")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        disposition = response.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="City_Bridge_Maintenance_TenderDocuments_')
        assert disposition.endswith('.zip"')
        with zipfile.ZipFile(BytesIO(response.content)) as archive:
            assert archive.namelist() == ["01_Order_0.docx", "02_Order_1.docx", "03_Order_2.docx"]

    def test_only_completed_packages_are_included(self, client, sample_project, make_work_package):
        make_work_package(sample_project, document_type="Done", order=0,
                          status=WorkPackageStatus.COMPLETED, content="# Done")
        make_work_package(sample_project, document_type="Draft", order=1,
                          status=WorkPackageStatus.IN_PROGRESS, content="# Draft")
        make_work_package(sample_project, document_type="Empty", order=2,
                          status=WorkPackageStatus.COMPLETED)

        response = client.post(f"/api/projects/{sample_project.id}/export")

        with zipfile.ZipFile(BytesIO(response.content)) as archive:
            assert archive.namelist() == ["01_Done.docx"]

    def test_no_completed_packages_is_400(self, client, sample_project, make_work_package):
        make_work_package(sample_project, status=WorkPackageStatus.IN_PROGRESS, content="# Draft")

        response = client.post(f"/api/projects/{sample_project.id}/export")

        assert response.status_code == 400
        assert response.json()["error"] == "No completed work packages to export"

    def test_unknown_project_is_404(self, client):
        assert client.post("/api/projects/missing/export").status_code == 404


class TestGenerateBatch:
    def _batch(self, client, project_id, work_package_ids):
        return client.post(
            f"/api/projects/{project_id}/generate-batch",
            json={"work_package_ids": work_package_ids},
        )

    def test_generates_and_saves_each_package(
        self, client, db_session, mock_llm, sample_project, make_work_package, make_project_document
    ):
        make_project_document(sample_project, is_primary_rft=True)
        first = make_work_package(sample_project, order=0)
        second = make_work_package(sample_project, document_type="Case Studies", order=1)

        response = self._batch(client, sample_project.id, [first.id, second.id])

        assert response.status_code == 200
        data = response.json()
        assert data["execution_mode"] == "batch_prompt"
        assert [r["work_package_id"] for r in data["results"]] == [first.id, second.id]
        assert all(r["success"] for r in data["results"])
        assert data["total_generated"] == 2
        assert data["total_saved"] == 2
        assert [call["task_type"] for call in mock_llm.calls] == ["batch_generation"]

        db_session.expire_all()
        for work_package_id in (first.id, second.id):
            content = (
                db_session.query(WorkPackageContent)
                .filter(WorkPackageContent.work_package_id == work_package_id)
                .one()
            )
            assert content.bid_analysis["total_score"] == 70
            assert len(content.win_themes) == 3
            assert content.content.startswith("# Methodology Statement")
            assert db_session.get(WorkPackage, work_package_id).status == WorkPackageStatus.IN_PROGRESS

    def test_malformed_batch_response_falls_back(self, client, mock_llm, sample_project, make_work_package):
        mock_llm.responses["batch_generation"] = "[]"
        first = make_work_package(sample_project, order=0)
        second = make_work_package(sample_project, order=1)

        response = self._batch(client, sample_project.id, [first.id, second.id])

        assert response.status_code == 200
        assert response.json()["execution_mode"] == "fallback_sequential"
        assert response.json()["total_saved"] == 2
        assert len(mock_llm.calls_for("strategy")) == 2

    def test_more_than_three_packages_is_400(self, client, mock_llm, sample_project, make_work_package):
        ids = [make_work_package(sample_project, order=i).id for i in range(4)]

        response = self._batch(client, sample_project.id, ids)

        assert response.status_code == 400
        assert response.json()["error"] == "Batch size too large. Maximum 3 work packages per batch."
        assert mock_llm.calls == []

    def test_empty_batch_is_422(self, client, sample_project):
        assert self._batch(client, sample_project.id, []).status_code == 422

    def test_package_from_another_project_is_404(
        self, client, db_session, mock_llm, sample_organization, sample_project, make_work_package
    ):
        other = Project(organization_id=sample_organization.id, name="Harbour Dredging")
        db_session.add(other)
        db_session.commit()
        foreign = make_work_package(other)

        response = self._batch(client, sample_project.id, [foreign.id])

        assert response.status_code == 404
        assert mock_llm.calls == []

    def test_context_too_large_is_400_with_token_count(
        self, client, db_session, mock_llm, sample_organization, sample_project, make_work_package,
        make_organization_document,
    ):
        for i in range(3):
            make_organization_document(sample_organization, name=f"Capability {i}.pdf", text="x" * 100000)
        work_package = make_work_package(sample_project)

        response = self._batch(client, sample_project.id, [work_package.id])

        assert response.status_code == 400
        assert 74000 < response.json()["tokenCount"] < 76000
        assert mock_llm.calls == []
        db_session.expire_all()
        assert db_session.get(WorkPackage, work_package.id).status == WorkPackageStatus.PENDING

    def test_headroom_per_package_is_enforced(
        self, client, mock_llm, sample_organization, sample_project, make_work_package, make_organization_document
    ):
        """Test that a context under the single-package budget can still be too large for a batch."""
        make_organization_document(sample_organization, text="x" * 232000)
        ids = [make_work_package(sample_project, order=i).id for i in range(3)]

        response = self._batch(client, sample_project.id, ids)

        assert response.status_code == 400
        data = response.json()
        assert data["error"].startswith("Batch would exceed token limit")
        assert 60000 < data["tokenCount"] < 64000
        assert mock_llm.calls == []

    def test_rate_limit_is_429(self, client, mock_llm, sample_project, make_work_package):
        mock_llm.responses["batch_generation"] = RateLimitError(retry_delay_seconds=20)
        work_package = make_work_package(sample_project)

        response = self._batch(client, sample_project.id, [work_package.id])

        assert response.status_code == 429
        assert response.json()["retryDelaySeconds"] == 20
