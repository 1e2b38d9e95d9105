"""API tests for document upload, download and page endpoints."""

import zipfile
from io import BytesIO

import pytest
from httpx import AsyncClient
from pypdf import PdfReader

from src.infrastructure.storage import LocalFileStorage

DOSSIER = "8d4c1e2f-5a6b-4c7d-9e8f-0a1b2c3d4e5f"
BASE = f"/api/v1/dossiers/{DOSSIER}/documents"


class TestDocumentAPI:
    """API tests for document endpoints."""

    @pytest.mark.asyncio
    async def test_upload_two_page_pdf(self, client: AsyncClient, make_pdf, files_payload):
        """Test uploading a 2 page PDF to a document without versions."""
        response = await client.put(
            f"{BASE}/passport",
            files=files_payload(("scan.pdf", make_pdf(pages=2), "application/pdf")),
            data={"isNewVersion": "false"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["filesProcessed"] == 1
        assert data["pagesAdded"] == 2
        assert data["document"] == {"code": "passport"}
        assert set(data["version"]) == {"id", "name"}

        pages = await client.get(f"{BASE}/passport/pages")
        assert pages.status_code == 200
        listing = pages.json()
        assert listing["version"]["id"] == data["version"]["id"]
        assert [page["pageNumber"] for page in listing["pages"]] == [1, 2]
        assert [page["originalName"] for page in listing["pages"]] == ["scan_page_1.jpg", "scan_page_2.jpg"]
        assert all(page["mimeType"] == "image/jpeg" for page in listing["pages"])

    @pytest.mark.asyncio
    async def test_batch_as_new_version_and_zip_download(
        self, client: AsyncClient, make_image, docx_bytes: bytes, files_payload
    ):
        """Test a JPEG and a DOCX uploaded together as a new version named "Batch A"."""
        response = await client.put(
            f"{BASE}/contract",
            files=files_payload(
                ("photo.jpg", make_image(), "image/jpeg"),
                ("terms.docx", docx_bytes, "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
            ),
            data={"name": "Batch A", "isNewVersion": "true"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["version"]["name"] == "Batch A"
        assert data["pagesAdded"] == 2

        dossier = (await client.get(f"/api/v1/dossiers/{DOSSIER}")).json()
        [contract] = dossier["documents"]
        assert contract["currentVersion"] == data["version"]

        download = await client.get(f"{BASE}/contract")
        assert download.status_code == 200
        assert download.headers["content-type"] == "application/zip"
        assert download.headers["content-disposition"] == 'attachment; filename="contract.zip"'
        with zipfile.ZipFile(BytesIO(download.content)) as archive:
            assert archive.namelist() == ["photo.jpg", "terms.docx"]
            assert archive.read("terms.docx") == docx_bytes

    @pytest.mark.asyncio
    async def test_new_version_upload_keeps_existing_current(self, client: AsyncClient, make_image, files_payload):
        first = await client.put(f"{BASE}/passport", files=files_payload(("a.jpg", make_image(), "image/jpeg")))
        second = await client.put(
            f"{BASE}/passport",
            files=files_payload(("b.jpg", make_image(), "image/jpeg")),
            data={"name": "Batch A", "isNewVersion": "true"},
        )

        assert second.status_code == 201
        dossier = (await client.get(f"/api/v1/dossiers/{DOSSIER}")).json()
        [passport] = dossier["documents"]
        assert passport["currentVersion"]["id"] == first.json()["version"]["id"]
        assert len(passport["versions"]) == 2

    @pytest.mark.asyncio
    async def test_download_merges_pages_into_pdf(self, client: AsyncClient, make_pdf, make_image, files_payload):
        await client.put(
            f"{BASE}/passport",
            files=files_payload(
                ("scan.pdf", make_pdf(pages=2), "application/pdf"),
                ("photo.jpg", make_image(), "image/jpeg"),
            ),
        )

        first = await client.get(f"{BASE}/passport")
        second = await client.get(f"{BASE}/passport")

        assert first.status_code == 200
        assert first.headers["content-type"] == "application/pdf"
        assert first.headers["content-disposition"] == 'attachment; filename="passport.pdf"'
        assert int(first.headers["content-length"]) == len(first.content)
        assert len(PdfReader(BytesIO(first.content)).pages) == 3
        assert first.content == second.content

    @pytest.mark.asyncio
    async def test_download_single_file_uses_its_own_type(self, client: AsyncClient, make_image, files_payload):
        await client.put(f"{BASE}/passport", files=files_payload(("only.png", make_image(image_format="PNG"), "image/png")))

        response = await client.get(f"{BASE}/passport")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.headers["content-disposition"] == 'attachment; filename="only.jpg"'
        assert response.content[:2] == b"\xff\xd8"

    @pytest.mark.asyncio
    async def test_delete_only_page_then_download_is_not_found(self, client: AsyncClient, make_image, files_payload):
        """Test that a document whose only page was deleted cannot be downloaded."""
        await client.put(f"{BASE}/passport", files=files_payload(("a.jpg", make_image(), "image/jpeg")))
        [page] = (await client.get(f"{BASE}/passport/pages")).json()["pages"]

        deleted = await client.delete(f"{BASE}/passport/pages/{page['uuid']}")
        assert deleted.status_code == 200
        assert deleted.json() == {"message": "File deleted successfully"}

        download = await client.get(f"{BASE}/passport")
        assert download.status_code == 404
        assert download.json()["code"] == "E_DOCUMENT_NOT_FOUND"

        again = await client.delete(f"{BASE}/passport/pages/{page['uuid']}")
        assert again.status_code == 404
        assert again.json()["code"] == "E_FILE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_delete_page_evicts_cached_download(
        self, client: AsyncClient, make_image, files_payload, storage: LocalFileStorage
    ):
        """Test that the merged download is rebuilt without the deleted page."""
        await client.put(
            f"{BASE}/passport",
            files=files_payload(("a.jpg", make_image(), "image/jpeg"), ("b.jpg", make_image(), "image/jpeg")),
        )
        first, _ = (await client.get(f"{BASE}/passport/pages")).json()["pages"]
        before = await client.get(f"{BASE}/passport")
        assert len(PdfReader(BytesIO(before.content)).pages) == 2
        assert len(list(storage.cache_root.iterdir())) == 1

        deleted = await client.delete(f"{BASE}/passport/pages/{first['uuid']}")

        assert deleted.status_code == 200
        assert list(storage.cache_root.iterdir()) == []
        after = await client.get(f"{BASE}/passport")
        assert after.headers["content-type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_get_single_page(self, client: AsyncClient, make_image, files_payload):
        await client.put(
            f"{BASE}/passport",
            files=files_payload(("a.jpg", make_image(), "image/jpeg"), ("b.jpg", make_image(), "image/jpeg")),
        )
        pages = (await client.get(f"{BASE}/passport/pages")).json()["pages"]

        response = await client.get(f"{BASE}/passport/pages/{pages[1]['uuid']}")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.headers["content-disposition"] == 'inline; filename="b.jpg"'
        assert len(response.content) == pages[1]["size"]

    @pytest.mark.asyncio
    async def test_page_of_other_document_is_not_found(self, client: AsyncClient, make_image, files_payload):
        await client.put(f"{BASE}/passport", files=files_payload(("a.jpg", make_image(), "image/jpeg")))
        await client.put(f"{BASE}/contract", files=files_payload(("b.jpg", make_image(), "image/jpeg")))
        [contract_page] = (await client.get(f"{BASE}/contract/pages")).json()["pages"]

        response = await client.get(f"{BASE}/passport/pages/{contract_page['uuid']}")
        assert response.status_code == 404

        response = await client.get(f"{BASE}/passport/pages/unknown-page")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_upload_validation(self, client: AsyncClient, docx_bytes: bytes, files_payload):
        """Test the 422 responses of the upload endpoint."""
        missing = await client.put(f"{BASE}/passport", data={"name": "Empty"})
        assert missing.status_code == 422

        disallowed = await client.put(
            f"{BASE}/passport", files=files_payload(("terms.docx", docx_bytes, "application/msword"))
        )
        assert disallowed.status_code == 422
        assert disallowed.json()["code"] == "E_INVALID_FILE_TYPE"

        bad_type = await client.put(
            f"{BASE}/not%20valid!", files=files_payload(("terms.docx", docx_bytes, "application/msword"))
        )
        assert bad_type.status_code == 422

        bad_uuid = await client.put(
            "/api/v1/dossiers/not-a-uuid/documents/passport",
            files=files_payload(("terms.docx", docx_bytes, "application/msword")),
        )
        assert bad_uuid.status_code == 422

    @pytest.mark.asyncio
    async def test_unprocessable_file_returns_422(self, client: AsyncClient, files_payload):
        response = await client.put(f"{BASE}/passport", files=files_payload(("broken.pdf", b"not a pdf", "application/pdf")))

        assert response.status_code == 422
        assert response.json()["code"] == "E_DOCUMENT_PROCESSING_FAILED"

        dossier = await client.get(f"/api/v1/dossiers/{DOSSIER}")
        assert dossier.json()["documents"] == []

    @pytest.mark.asyncio
    async def test_unknown_document_or_dossier_is_not_found(self, client: AsyncClient):
        response = await client.get(f"{BASE}/passport")
        assert response.status_code == 404
        assert response.json()["code"] == "E_DOSSIER_NOT_FOUND"

        await client.get(f"/api/v1/dossiers/{DOSSIER}")
        response = await client.get(f"{BASE}/passport/pages")
        assert response.status_code == 404
        assert response.json()["code"] == "E_DOCUMENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_pages_of_specific_version(self, client: AsyncClient, make_image, files_payload):
        first = await client.put(f"{BASE}/passport", files=files_payload(("a.jpg", make_image(), "image/jpeg")))
        second = await client.put(
            f"{BASE}/passport",
            files=files_payload(("b.jpg", make_image(), "image/jpeg"), ("c.jpg", make_image(), "image/jpeg")),
            data={"isNewVersion": "true"},
        )

        current = (await client.get(f"{BASE}/passport/pages")).json()
        other = (await client.get(f"{BASE}/passport/pages", params={"versionId": second.json()["version"]["id"]})).json()

        assert current["version"]["id"] == first.json()["version"]["id"]
        assert [page["name"] for page in current["pages"]] == ["a.jpg"]
        assert [page["name"] for page in other["pages"]] == ["b.jpg", "c.jpg"]

        download = await client.get(f"{BASE}/passport", params={"versionId": second.json()["version"]["id"]})
        assert download.headers["content-type"] == "application/pdf"
