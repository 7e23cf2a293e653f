"""
Tests for banners, company info, settings, the contact form and uploads.
"""

from django.core.files.uploadedfile import SimpleUploadedFile

import pytest

from drcarcold.models import Banner, CompanyInfo, Contact, ContactStatus, MediaType, Setting
from drcarcold.services.settings_store import get_settings_store

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.mark.django_db
class TestBanners:
    def test_public_sees_only_active(self, api_client):
        Banner.objects.create(title="Summer", image="/api/files/banners/a.jpg")
        Banner.objects.create(title="Old", image="/api/files/banners/b.jpg", is_active=False)

        response = api_client.get("/api/banners/")

        assert [b["title"] for b in response.json()["data"]] == ["Summer"]

    def test_create_detects_media_type(self, staff_client):
        response = staff_client.post(
            "/api/banners/",
            {"title": "Promo", "image": "/api/files/banners/promo.mp4"},
            format="json",
        )

        assert response.status_code == 201
        assert response.json()["data"]["media_type"] == MediaType.VIDEO

    def test_filter_by_position(self, api_client):
        Banner.objects.create(title="Home", image="a.jpg", position="homepage")
        Banner.objects.create(title="Shop", image="b.jpg", position="products")

        response = api_client.get("/api/banners/", {"position": "products"})

        assert [b["title"] for b in response.json()["data"]] == ["Shop"]


@pytest.mark.django_db
class TestCompanyInfo:
    def test_get_creates_default_record(self, api_client):
        response = api_client.get("/api/company-info/")

        assert response.status_code == 200
        assert response.json()["data"]["company_name"] == "車冷博士"
        assert CompanyInfo.objects.count() == 1

    def test_update_requires_staff(self, api_client):
        response = api_client.put("/api/company-info/", {"phone": "123"}, format="json")

        assert response.status_code == 401

    def test_update(self, staff_client):
        response = staff_client.put("/api/company-info/", {"phone": "04-12345678"}, format="json")

        assert response.status_code == 200
        assert CompanyInfo.load().phone == "04-12345678"


@pytest.mark.django_db
class TestSettings:
    def test_requires_staff(self, api_client):
        assert api_client.get("/api/settings/").status_code == 401

    def test_set_and_get_single_key(self, staff_client):
        response = staff_client.post(
            "/api/settings/", {"key": "auto_publish_enabled", "value": True}, format="json"
        )
        assert response.status_code == 200
        assert Setting.objects.get(key="auto_publish_enabled").value == "true"

        response = staff_client.get("/api/settings/", {"key": "auto_publish_enabled"})
        assert response.json()["data"]["value"] is True

    def test_bulk_update(self, staff_client):
        response = staff_client.post(
            "/api/settings/",
            {"auto_crawl_interval": 90, "seo_keywords": "冷媒,R134a"},
            format="json",
        )

        assert response.json()["data"] == {"updated": 2}
        store = get_settings_store()
        assert store.get_int("auto_crawl_interval") == 90
        assert store.get_list("seo_keywords") == ["冷媒", "R134a"]

    def test_get_all_coerces_values(self, staff_client):
        Setting.objects.create(key="auto_crawl_enabled", value="false")
        Setting.objects.create(key="auto_crawl_interval", value="45")

        data = staff_client.get("/api/settings/").json()["data"]

        assert data["auto_crawl_enabled"] is False
        assert data["auto_crawl_interval"] == 45

    def test_missing_key_is_404(self, staff_client):
        response = staff_client.get("/api/settings/", {"key": "nope"})

        assert response.status_code == 404

    def test_write_invalidates_cached_value(self, staff_client):
        store = get_settings_store()
        store.set("auto_crawl_interval", 60)
        assert store.get_int("auto_crawl_interval") == 60

        staff_client.post("/api/settings/", {"key": "auto_crawl_interval", "value": 15}, format="json")

        assert store.get_int("auto_crawl_interval") == 15


@pytest.mark.django_db
class TestContactForm:
    PAYLOAD = {
        "name": "王小明",
        "email": "ming@example.com",
        "phone": "0912345678",
        "subject": "詢問冷媒價格",
        "message": "請問 R134a 的價格？",
    }

    def test_submit_stores_and_emails(self, api_client, mailoutbox):
        response = api_client.post(
            "/api/contact/", self.PAYLOAD, format="json", HTTP_X_FORWARDED_FOR="203.0.113.5, 10.0.0.1"
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "感謝您的來信，我們會盡快回覆您！"
        contact = Contact.objects.get(pk=body["data"]["id"])
        assert contact.ip_address == "203.0.113.5"
        assert contact.status == ContactStatus.NEW
        assert len(mailoutbox) == 1
        assert "詢問冷媒價格" in mailoutbox[0].subject

    def test_invalid_email_is_rejected(self, api_client):
        response = api_client.post("/api/contact/", {**self.PAYLOAD, "email": "nope"}, format="json")

        assert response.status_code == 400
        assert "email" in response.json()["details"]

    def test_throttled_after_five_submissions(self, api_client):
        for _ in range(5):
            assert api_client.post("/api/contact/", self.PAYLOAD, format="json").status_code == 201

        response = api_client.post("/api/contact/", self.PAYLOAD, format="json")

        assert response.status_code == 429
        assert response.json()["success"] is False


@pytest.mark.django_db
class TestContactAdmin:
    def test_list_with_stats(self, staff_client, contact):
        Contact.objects.create(
            name="B", email="b@example.com", subject="s", message="m", status=ContactStatus.REPLIED, is_read=True
        )

        body = staff_client.get("/api/contacts/").json()

        assert body["pagination"]["total"] == 2
        assert body["stats"]["new"] == 1
        assert body["stats"]["replied"] == 1
        assert body["stats"]["total"] == 2
        assert body["stats"]["unread"] == 1

    def test_filter_by_status(self, staff_client, contact):
        body = staff_client.get("/api/contacts/", {"status": "closed"}).json()

        assert body["data"] == []

    def test_get_marks_read(self, staff_client, contact):
        response = staff_client.get(f"/api/contacts/{contact.id}/")

        assert response.json()["data"]["is_read"] is True
        contact.refresh_from_db()
        assert contact.is_read is True

    def test_update_status_keeps_submission_fields(self, staff_client, contact):
        response = staff_client.patch(
            f"/api/contacts/{contact.id}/",
            {"status": "replied", "admin_notes": "已回覆", "name": "changed"},
            format="json",
        )

        assert response.status_code == 200
        contact.refresh_from_db()
        assert contact.status == ContactStatus.REPLIED
        assert contact.admin_notes == "已回覆"
        assert contact.name == "王小明"


@pytest.mark.django_db
class TestUploads:
    def test_upload_and_serve(self, staff_client, api_client):
        image = SimpleUploadedFile("my photo.png", PNG_BYTES, content_type="image/png")

        response = staff_client.post(
            "/api/upload/", {"type": "banners", "files[]": [image]}, format="multipart"
        )

        assert response.status_code == 200
        stored = response.json()["data"]["files"][0]
        assert stored["media_type"] == MediaType.IMAGE
        assert stored["url"].startswith("/api/files/banners/")
        assert stored["name"].endswith("_my_photo.png")

        served = api_client.get(stored["url"])
        assert served.status_code == 200
        assert served["Content-Type"] == "image/png"
        assert "immutable" in served["Cache-Control"]
        assert b"".join(served.streaming_content) == PNG_BYTES

    def test_html_name_is_stored_as_image(self, staff_client, api_client):
        image = SimpleUploadedFile("x.html", PNG_BYTES, content_type="image/png")

        response = staff_client.post(
            "/api/upload/", {"type": "news", "files[]": [image]}, format="multipart"
        )

        stored = response.json()["data"]["files"][0]
        assert stored["name"].endswith("_x.png")
        assert stored["content_type"] == "image/png"
        assert api_client.get(stored["url"])["Content-Type"] == "image/png"

    def test_partial_success_reports_errors(self, staff_client):
        image = SimpleUploadedFile("ok.png", PNG_BYTES, content_type="image/png")
        document = SimpleUploadedFile("doc.pdf", b"%PDF", content_type="application/pdf")

        response = staff_client.post(
            "/api/upload/", {"type": "products", "files[]": [image, document]}, format="multipart"
        )

        data = response.json()["data"]
        assert len(data["files"]) == 1
        assert data["errors"][0]["file"] == "doc.pdf"

    def test_all_rejected_is_400(self, staff_client):
        video = SimpleUploadedFile("clip.mp4", b"\x00" * 10, content_type="video/mp4")

        response = staff_client.post(
            "/api/upload/",
            {"type": "news", "files[]": [video], "accept_video": "false"},
            format="multipart",
        )

        assert response.status_code == 400
        assert response.json()["details"][0]["file"] == "clip.mp4"

    def test_unknown_type_is_400(self, staff_client):
        image = SimpleUploadedFile("ok.png", PNG_BYTES, content_type="image/png")

        response = staff_client.post(
            "/api/upload/", {"type": "secrets", "files[]": [image]}, format="multipart"
        )

        assert response.status_code == 400

    def test_upload_requires_staff(self, api_client):
        image = SimpleUploadedFile("ok.png", PNG_BYTES, content_type="image/png")

        response = api_client.post("/api/upload/", {"type": "news", "files[]": [image]}, format="multipart")

        assert response.status_code == 401

    def test_serve_missing_file_is_404(self, api_client):
        assert api_client.get("/api/files/news/missing.png").status_code == 404

    def test_serve_rejects_traversal(self, api_client):
        response = api_client.get("/api/files/news/..%2F..%2Fsettings.py")

        assert response.status_code in (400, 404)
