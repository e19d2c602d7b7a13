"""
Tests for the document preview router.
"""

import pytest

pytestmark = pytest.mark.integration

DOCUMENTS = "/api/v1/documents"


class TestTemplatesEndpoint:
    @pytest.mark.asyncio
    async def test_requires_authentication(self, anonymous_client):
        response = await anonymous_client.get(f"{DOCUMENTS}/templates")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_lists_templates(self, async_client):
        response = await async_client.get(f"{DOCUMENTS}/templates")

        assert response.status_code == 200
        assert len(response.json()) == 7
        assert {"id": "modern-sidebar", "kind": "resume", "name": "Modern Sidebar"} in (
            response.json()
        )


class TestPreviewEndpoints:
    """Test HTML previews."""

    @pytest.mark.asyncio
    async def test_resume_preview(self, async_client):
        response = await async_client.post(
            f"{DOCUMENTS}/resume/preview",
            json={
                "templateId": "elegant-divider",
                "data": {"fullName": "Jane Doe", "skills": ["Python"]},
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["templateId"] == "elegant-divider"
        assert body["kind"] == "resume"
        assert body["title"] == "Jane Doe - Resume"
        assert "Python" in body["html"]

    @pytest.mark.asyncio
    async def test_cover_letter_preview(self, async_client):
        response = await async_client.post(
            f"{DOCUMENTS}/cover-letter/preview",
            json={"templateId": "standard", "data": {"fullName": "Jane Doe", "body": "Hello."}},
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Jane Doe - Cover Letter"

    @pytest.mark.asyncio
    async def test_unknown_template_is_404(self, async_client):
        response = await async_client.post(
            f"{DOCUMENTS}/resume/preview", json={"templateId": "neon-glow", "data": {}}
        )

        assert response.status_code == 404
        assert "neon-glow" in response.json()["detail"]


class TestLayoutEndpoints:
    """Test zoom and page-break hints."""

    @pytest.mark.asyncio
    async def test_page_breaks(self, async_client):
        response = await async_client.post(
            f"{DOCUMENTS}/page-breaks",
            json={
                "elements": [
                    {"top": 100, "height": 300, "classes": ["entry"]},
                    {"top": 1000, "height": 200, "breakInside": "avoid"},
                ],
                "scale": 1,
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["breaks"] == [1000.0]
        assert body["pageCount"] == 2
        assert body["pageHeight"] == 1123.0

    @pytest.mark.asyncio
    async def test_page_breaks_reject_zero_scale(self, async_client):
        response = await async_client.post(
            f"{DOCUMENTS}/page-breaks", json={"elements": [], "scale": 0}
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_zoom_fit(self, async_client):
        response = await async_client.post(
            f"{DOCUMENTS}/zoom", json={"viewportWidth": 1920, "viewportHeight": 1080}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["scale"] == pytest.approx(0.8)
        assert body["fitScale"] == pytest.approx(0.8)
        assert body["deviceClass"] == "desktop"
        assert body["minScale"] == 0.5
        assert body["maxScale"] == 1.2

    @pytest.mark.asyncio
    async def test_zoom_in_from_current_scale(self, async_client):
        response = await async_client.post(
            f"{DOCUMENTS}/zoom",
            json={"viewportWidth": 375, "viewportHeight": 667, "scale": 1.0, "action": "in"},
        )

        body = response.json()
        assert body["scale"] == pytest.approx(1.1)
        assert body["fitScale"] == pytest.approx(0.4)
        assert body["deviceClass"] == "mobile"
