"""
Tests for the catalogue API (products and categories).
"""

import pytest

from drcarcold.models import Category, Product


@pytest.mark.django_db
class TestProductList:
    """GET/POST /api/products/"""

    def test_public_list_uses_envelope_and_pagination(self, api_client, product):
        response = api_client.get("/api/products/")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "timestamp" in body
        assert body["pagination"] == {"page": 1, "limit": 20, "total": 1, "totalPages": 1}
        assert body["data"][0]["slug"] == "r134a-13kg"
        assert body["data"][0]["category_detail"]["slug"] == "refrigerants"

    def test_anonymous_users_only_see_active_products(self, api_client, product):
        Product.objects.create(
            category=product.category, name="Old gauge", slug="old-gauge", description="x", is_active=False
        )

        response = api_client.get("/api/products/")

        slugs = [p["slug"] for p in response.json()["data"]]
        assert slugs == ["r134a-13kg"]

    def test_admin_sees_inactive_products(self, staff_client, product):
        Product.objects.create(
            category=product.category, name="Old gauge", slug="old-gauge", description="x", is_active=False
        )

        response = staff_client.get("/api/products/")

        assert response.json()["pagination"]["total"] == 2

    def test_filters_by_category_slug_and_search(self, api_client, product):
        other = Category.objects.create(name="工具", slug="tools")
        Product.objects.create(category=other, name="扳手", slug="wrench", description="tool")

        by_category = api_client.get("/api/products/", {"category": "tools"}).json()
        by_search = api_client.get("/api/products/", {"search": "134a"}).json()

        assert [p["slug"] for p in by_category["data"]] == ["wrench"]
        assert [p["slug"] for p in by_search["data"]] == ["r134a-13kg"]

    def test_limit_is_capped_at_100(self, api_client, product):
        response = api_client.get("/api/products/", {"limit": 500})

        assert response.json()["pagination"]["limit"] == 100

    def test_create_requires_authentication(self, api_client, category):
        response = api_client.post(
            "/api/products/",
            {"category": str(category.id), "name": "New", "description": "d"},
            format="json",
        )

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["statusCode"] == 401
        assert body["path"] == "/api/products/"

    def test_create_derives_slug_from_name(self, staff_client, category):
        response = staff_client.post(
            "/api/products/",
            {
                "category": str(category.id),
                "name": "PAG 46 冷凍油",
                "description": "冷凍油",
                "price": "380",
                "features": ["高潤滑性"],
            },
            format="json",
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["slug"] == "pag-46-冷凍油"
        assert Product.objects.filter(slug="pag-46-冷凍油").exists()

    def test_duplicate_slug_is_rejected(self, staff_client, product):
        response = staff_client.post(
            "/api/products/",
            {
                "category": str(product.category_id),
                "name": "Another",
                "slug": product.slug,
                "description": "d",
            },
            format="json",
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert "slug" in body["details"]

    def test_negative_price_is_rejected(self, staff_client, category):
        response = staff_client.post(
            "/api/products/",
            {"category": str(category.id), "name": "Bad", "description": "d", "price": "-1"},
            format="json",
        )

        assert response.status_code == 400
        assert "price" in response.json()["details"]


@pytest.mark.django_db
class TestProductDetail:
    """GET/PUT/DELETE /api/products/<id>/"""

    def test_get_unknown_product_is_404(self, api_client):
        response = api_client.get("/api/products/00000000-0000-0000-0000-000000000000/")

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_put_updates_only_given_fields(self, staff_client, product):
        response = staff_client.put(
            f"/api/products/{product.id}/", {"stock": 7}, format="json"
        )

        assert response.status_code == 200
        product.refresh_from_db()
        assert product.stock == 7
        assert product.name == "R-134a 冷媒 13.6kg"

    def test_blank_slug_is_rebuilt_from_name(self, staff_client, product):
        response = staff_client.put(
            f"/api/products/{product.id}/", {"slug": ""}, format="json"
        )

        assert response.status_code == 200
        product.refresh_from_db()
        assert product.slug == "r-134a-冷媒-13-6kg"

    def test_blank_slug_without_usable_name_is_rejected(self, staff_client, product):
        product.name = "???"
        product.save()

        response = staff_client.put(
            f"/api/products/{product.id}/", {"slug": ""}, format="json"
        )

        assert response.status_code == 400
        assert "slug" in response.json()["details"]
        product.refresh_from_db()
        assert product.slug == "r134a-13kg"

    def test_delete(self, staff_client, product):
        response = staff_client.delete(f"/api/products/{product.id}/")

        assert response.status_code == 200
        assert not Product.objects.filter(pk=product.pk).exists()

    def test_anonymous_delete_is_refused(self, api_client, product):
        response = api_client.delete(f"/api/products/{product.id}/")

        assert response.status_code == 401
        assert Product.objects.filter(pk=product.pk).exists()


@pytest.mark.django_db
class TestCategories:
    """/api/categories/"""

    def test_list_includes_product_count(self, api_client, product):
        Category.objects.create(name="Empty", slug="empty")

        response = api_client.get("/api/categories/")

        counts = {c["slug"]: c["product_count"] for c in response.json()["data"]}
        assert counts == {"refrigerants": 1, "empty": 0}

    def test_create_category(self, staff_client):
        response = staff_client.post(
            "/api/categories/", {"name": "Quick Couplers"}, format="json"
        )

        assert response.status_code == 201
        assert response.json()["data"]["slug"] == "quick-couplers"

    def test_duplicate_category_slug_is_rejected(self, staff_client, category):
        response = staff_client.post(
            "/api/categories/", {"name": "Other", "slug": category.slug}, format="json"
        )

        assert response.status_code == 400

    def test_blank_slug_on_update_uses_new_name(self, staff_client, category):
        response = staff_client.put(
            f"/api/categories/{category.id}/", {"name": "Compressor Oil", "slug": ""}, format="json"
        )

        assert response.status_code == 200
        category.refresh_from_db()
        assert category.slug == "compressor-oil"

    def test_delete_with_products_is_refused(self, staff_client, product):
        response = staff_client.delete(f"/api/categories/{product.category_id}/")

        assert response.status_code == 400
        assert Category.objects.filter(pk=product.category_id).exists()

    def test_delete_empty_category(self, staff_client, category):
        response = staff_client.delete(f"/api/categories/{category.id}/")

        assert response.status_code == 200
        assert not Category.objects.filter(pk=category.pk).exists()
