"""Tests for work package API routes."""
import pytest

from tender_api.models.database import OrganizationDocument, WorkPackage, WorkPackageContent
from tender_engine.errors import RateLimitError, UpstreamGenerationError
from tender_engine.workflow import WorkPackageStatus

STRATEGY = {"bid_analysis": {"total_score": 70, "recommendation": "bid"}}


def _content(db_session, work_package_id):
    db_session.expire_all()
    return (
        db_session.query(WorkPackageContent)
        .filter(WorkPackageContent.work_package_id == work_package_id)
        .first()
    )


def _status(db_session, work_package_id):
    db_session.expire_all()
    return db_session.query(WorkPackage).filter(WorkPackage.id == work_package_id).one().status


def _oversized_organization(db_session, organization):
    """Three 100,000-character capability documents, about 75,000 tokens."""
    for i in range(3):
        db_session.add(OrganizationDocument(
            organization_id=organization.id,
            name=f"Capability {i}.pdf",
            file_path=f"organizations/{i}.pdf",
            content_text="x" * 100000,
            content_extracted=True,
        ))
    db_session.commit()


class TestAuthentication:
    def test_missing_identity_is_401(self, anonymous_client, sample_project):
        response = anonymous_client.post(
            "/api/work-packages",
            json={"project_id": sample_project.id, "document_type": "Methodology Statement"},
        )
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}


class TestCreateWorkPackage:
    def test_first_package_gets_order_zero(self, client, sample_project):
        response = client.post(
            "/api/work-packages",
            json={
                "project_id": sample_project.id,
                "document_type": "Methodology Statement",
                "requirements": ["Describe approach", {"text": "Name key staff", "priority": "optional"}],
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["order"] == 0
        assert data["status"] == "pending"
        assert [r["text"] for r in data["requirements"]] == ["Describe approach", "Name key staff"]
        assert data["requirements"][1]["priority"] == "optional"

    def test_next_order_follows_maximum(self, client, sample_project, make_work_package):
        """Test that a new package gets max(order) + 1."""
        make_work_package(sample_project, order=4)
        response = client.post(
            "/api/work-packages",
            json={"project_id": sample_project.id, "document_type": "Case Studies"},
        )
        assert response.json()["order"] == 5

    def test_unknown_project_is_404(self, client):
        response = client.post("/api/work-packages", json={"project_id": "nope", "document_type": "X"})
        assert response.status_code == 404

    def test_blank_document_type_rejected(self, client, sample_project):
        response = client.post(
            "/api/work-packages", json={"project_id": sample_project.id, "document_type": "   "}
        )
        assert response.status_code == 422

    def test_update_requirements(self, client, sample_project, make_work_package):
        work_package = make_work_package(sample_project)
        response = client.patch(
            f"/api/work-packages/{work_package.id}", json={"requirements": ["Updated requirement"]}
        )
        assert response.status_code == 200
        assert response.json()["requirements"][0]["text"] == "Updated requirement"


class TestExtractRequirements:
    def test_no_rft_text_is_400(self, client, sample_project, make_work_package, make_project_document):
        make_project_document(sample_project, text=None)
        work_package = make_work_package(sample_project)

        response = client.post(f"/api/work-packages/{work_package.id}/extract-requirements")

        assert response.status_code == 400
        assert "RFT" in response.json()["error"]

    def test_extracts_and_persists(self, client, db_session, sample_project, make_work_package, make_project_document):
        make_project_document(sample_project, name="Annex.pdf", text="Annex text")
        make_project_document(sample_project, name="Main.pdf", text="Main text", is_primary_rft=True)
        work_package = make_work_package(sample_project)

        response = client.post(f"/api/work-packages/{work_package.id}/extract-requirements")

        assert response.status_code == 200
        assert len(response.json()["requirements"]) == 3
        db_session.expire_all()
        assert len(db_session.get(WorkPackage, work_package.id).requirements) == 3


class TestGenerateStrategy:
    def test_saves_bid_analysis_and_themes_together(self, client, db_session, sample_project, make_work_package):
        work_package = make_work_package(sample_project)

        response = client.post(f"/api/work-packages/{work_package.id}/generate-strategy")

        assert response.status_code == 200
        data = response.json()
        assert data["bidAnalysis"]["total_score"] == 70
        assert len(data["winThemes"]) == 3
        content = _content(db_session, work_package.id)
        assert content.bid_analysis["recommendation"] == "bid"
        assert content.win_themes == data["winThemes"]
        assert content.content_version == 1

    def test_context_too_large_is_400_with_token_count(
        self, client, db_session, mock_llm, sample_organization, sample_project, make_work_package
    ):
        """Test that 300,000 characters of org docs block strategy generation."""
        _oversized_organization(db_session, sample_organization)
        work_package = make_work_package(sample_project)

        response = client.post(f"/api/work-packages/{work_package.id}/generate-strategy")

        assert response.status_code == 400
        data = response.json()
        assert data["tokenCount"] > 64000
        assert 74000 < data["tokenCount"] < 76000
        assert "exceeds" in data["warning"]
        assert mock_llm.calls == []
        assert _content(db_session, work_package.id) is None

    def test_rate_limit_is_429_with_default_delay(self, client, mock_llm, sample_project, make_work_package):
        mock_llm.responses["strategy"] = RateLimitError()
        work_package = make_work_package(sample_project)

        response = client.post(f"/api/work-packages/{work_package.id}/generate-strategy")

        assert response.status_code == 429
        data = response.json()
        assert data["isRateLimitError"] is True
        assert data["retryDelaySeconds"] == 60
        assert response.headers["Retry-After"] == "60"

    def test_upstream_failure_is_500_and_saves_nothing(
        self, client, db_session, mock_llm, sample_project, make_work_package
    ):
        mock_llm.responses["strategy"] = UpstreamGenerationError("Generation failed: boom")
        work_package = make_work_package(sample_project)

        response = client.post(f"/api/work-packages/{work_package.id}/generate-strategy")

        assert response.status_code == 500
        assert _content(db_session, work_package.id) is None


class TestWinThemes:
    def test_generates_and_saves(self, client, db_session, sample_project, make_work_package):
        work_package = make_work_package(sample_project)

        response = client.post(f"/api/work-packages/{work_package.id}/win-themes")

        assert response.status_code == 200
        assert len(response.json()["win_themes"]) == 2
        assert _content(db_session, work_package.id).win_themes == response.json()["win_themes"]

    def test_context_too_large_is_400_without_model_call(
        self, client, db_session, mock_llm, sample_organization, sample_project, make_work_package
    ):
        _oversized_organization(db_session, sample_organization)
        work_package = make_work_package(sample_project)

        response = client.post(f"/api/work-packages/{work_package.id}/win-themes")

        assert response.status_code == 400
        assert 74000 < response.json()["tokenCount"] < 76000
        assert mock_llm.calls == []
        assert _content(db_session, work_package.id) is None
        assert _status(db_session, work_package.id) == WorkPackageStatus.PENDING


class TestGenerateContent:
    @pytest.mark.parametrize("status", list(WorkPackageStatus))
    def test_without_win_themes_is_400_and_status_unchanged(
        self, client, db_session, mock_llm, sample_project, make_work_package, status
    ):
        work_package = make_work_package(sample_project, status=status, bid_analysis=STRATEGY["bid_analysis"])

        response = client.post(f"/api/work-packages/{work_package.id}/generate-content")

        assert response.status_code == 400
        assert response.json()["error"] == "Win themes must be generated first"
        assert _status(db_session, work_package.id) == status
        assert mock_llm.calls == []

    def test_context_too_large_is_400_before_status_change(
        self, client, db_session, mock_llm, sample_organization, sample_project, make_work_package
    ):
        """Test that the budget check runs before the package moves to in_progress."""
        _oversized_organization(db_session, sample_organization)
        work_package = make_work_package(sample_project, win_themes=["Local team"])

        response = client.post(f"/api/work-packages/{work_package.id}/generate-content")

        assert response.status_code == 400
        data = response.json()
        assert 74000 < data["tokenCount"] < 76000
        assert "exceeds" in data["warning"]
        assert mock_llm.calls == []
        assert _status(db_session, work_package.id) == WorkPackageStatus.PENDING
        content = _content(db_session, work_package.id)
        assert content.content is None
        assert content.win_themes == ["Local team"]

    def test_win_theme_check_runs_before_budget_check(
        self, client, db_session, mock_llm, sample_organization, sample_project, make_work_package
    ):
        _oversized_organization(db_session, sample_organization)
        work_package = make_work_package(sample_project)

        response = client.post(f"/api/work-packages/{work_package.id}/generate-content")

        assert response.status_code == 400
        assert response.json()["error"] == "Win themes must be generated first"
        assert "tokenCount" not in response.json()
        assert _status(db_session, work_package.id) == WorkPackageStatus.PENDING
        assert mock_llm.calls == []

    def test_generates_and_moves_to_in_progress(self, client, db_session, mock_llm, sample_project, make_work_package):
        work_package = make_work_package(sample_project, win_themes=["Local team"])

        response = client.post(
            f"/api/work-packages/{work_package.id}/generate-content",
            json={"instructions": "Use British English"},
        )

        assert response.status_code == 200
        assert response.json()["content"].startswith("# Methodology Statement")
        assert _status(db_session, work_package.id) == WorkPackageStatus.IN_PROGRESS
        assert _content(db_session, work_package.id).content == response.json()["content"]
        assert "Use British English" in mock_llm.calls_for("content_generation")[0]["prompt"]

    def test_model_failure_leaves_in_progress(self, client, db_session, mock_llm, sample_project, make_work_package):
        mock_llm.responses["content_generation"] = UpstreamGenerationError("Generation failed")
        work_package = make_work_package(sample_project, win_themes=["Local team"])

        response = client.post(f"/api/work-packages/{work_package.id}/generate-content")

        assert response.status_code == 500
        assert _status(db_session, work_package.id) == WorkPackageStatus.IN_PROGRESS
        assert _content(db_session, work_package.id).content is None


class TestEditorAction:
    def test_unknown_action_is_400(self, client, sample_project, make_work_package):
        work_package = make_work_package(sample_project)
        response = client.post(
            f"/api/work-packages/{work_package.id}/editor-action",
            json={"action": "translate", "selected_text": "Text", "full_document": "Doc"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid action: translate"

    def test_add_evidence_uses_organization_docs(
        self, client, mock_llm, sample_organization, sample_project, make_work_package, make_organization_document
    ):
        make_organization_document(sample_organization, text="Maintained 40 bridges")
        work_package = make_work_package(sample_project)

        response = client.post(
            f"/api/work-packages/{work_package.id}/editor-action",
            json={"action": "add_evidence", "selected_text": "We are experienced.", "full_document": "Doc"},
        )

        assert response.status_code == 200
        assert response.json()["modified_text"] == "Revised text generated by the mock editor."
        assert "Maintained 40 bridges" in mock_llm.calls_for("editor_action")[0]["prompt"]

    def test_check_compliance_uses_requirements(self, client, mock_llm, sample_project, make_work_package):
        work_package = make_work_package(sample_project, requirements=[{"text": "Annual inspections"}])

        response = client.post(
            f"/api/work-packages/{work_package.id}/editor-action",
            json={"action": "check_compliance", "selected_text": "", "full_document": "Our draft"},
        )

        assert response.status_code == 200
        assert "1. Annual inspections" in mock_llm.calls[0]["prompt"]

    def test_custom_without_instruction_is_400(self, client, sample_project, make_work_package):
        work_package = make_work_package(sample_project)
        response = client.post(
            f"/api/work-packages/{work_package.id}/editor-action",
            json={"action": "custom", "selected_text": "Text"},
        )
        assert response.status_code == 400


class TestExport:
    def test_without_content_is_400_and_status_unchanged(self, client, db_session, sample_project, make_work_package):
        work_package = make_work_package(sample_project, status=WorkPackageStatus.IN_PROGRESS, win_themes=["T"])

        response = client.post(f"/api/work-packages/{work_package.id}/export")

        assert response.status_code == 400
        assert _status(db_session, work_package.id) == WorkPackageStatus.IN_PROGRESS

    def test_export_completes_and_link_downloads(self, client, db_session, sample_project, make_work_package):
        work_package = make_work_package(
            sample_project, status=WorkPackageStatus.IN_PROGRESS, win_themes=["T"], content="# Draft\n\nBody"
        )

        response = client.post(f"/api/work-packages/{work_package.id}/export")

        assert response.status_code == 200
        data = response.json()
        assert data["filename"] == "Methodology_Statement_City_Bridge_Maintenance.docx"
        assert _status(db_session, work_package.id) == WorkPackageStatus.COMPLETED
        content = _content(db_session, work_package.id)
        assert content.exported_file_path.endswith(data["filename"])
        assert content.exported_at is not None

        download = client.get(data["download_url"])
        assert download.status_code == 200
        assert download.content[:2] == b"PK"

    def test_storage_failure_leaves_status(self, client, db_session, monkeypatch, sample_project, make_work_package):
        def fail(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr("pathlib.Path.write_bytes", fail)
        work_package = make_work_package(sample_project, status=WorkPackageStatus.IN_PROGRESS, content="# Draft")

        response = client.post(f"/api/work-packages/{work_package.id}/export")

        assert response.status_code == 500
        assert _status(db_session, work_package.id) == WorkPackageStatus.IN_PROGRESS
        assert _content(db_session, work_package.id).exported_file_path is None

    def test_tampered_download_link_is_403(self, client):
        response = client.get("/api/exports/download", params={"path": "x.docx", "expires": 9999999999, "signature": "bad"})
        assert response.status_code == 403


class TestWorkflowView:
    def test_reflects_stored_content(self, client, sample_project, make_work_package):
        work_package = make_work_package(
            sample_project,
            requirements=[{"text": "R1"}],
            bid_analysis=STRATEGY["bid_analysis"],
            win_themes=["T"],
        )

        response = client.get(f"/api/work-packages/{work_package.id}/workflow")

        assert response.status_code == 200
        data = response.json()
        assert data["completed_steps"] == ["requirements", "strategy"]
        assert data["next_stage"] == "generate"
        assert data["accessible_stages"] == ["requirements", "strategy", "generate"]

    def test_content_round_trip(self, client, sample_project, make_work_package):
        work_package = make_work_package(sample_project)
        assert client.get(f"/api/work-packages/{work_package.id}/content").json()["content"] is None

        saved = client.put(f"/api/work-packages/{work_package.id}/content", json={"content": "# Edited"})
        assert saved.status_code == 200
        assert saved.json()["content_version"] == 1
        assert client.get(f"/api/work-packages/{work_package.id}/content").json()["content"] == "# Edited"


def test_strategy_response_uses_camel_case_keys(client, sample_project, make_work_package):
    work_package = make_work_package(sample_project)
    body = client.post(f"/api/work-packages/{work_package.id}/generate-strategy").json()
    assert set(body) == {"bidAnalysis", "winThemes"}
