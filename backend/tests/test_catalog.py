"""
Category catalog tests.

Verifies:
- display_order stays dense across create / delete / reorder
- Abbreviations are generated and unique per type
- Excel export/import and CSV import
- Category edits are admin-only
"""

import io

import pytest
from openpyxl import load_workbook

from merchpos.extensions import db
from merchpos.models import Category
from merchpos.routes.categories import XLSX_MIMETYPE
from merchpos.services import catalog_service
from merchpos.services.catalog_service import CategoryError


def orders(category_type):
    return [(c.value, c.display_order) for c in catalog_service.list_categories(category_type)]


# =============================================================================
# ORDERING
# =============================================================================


class TestOrdering:

    def test_create_appends(self, db_session):
        catalog_service.create_category("type", "Shirt")
        catalog_service.create_category("type", "Pants")
        assert orders("type") == [("Shirt", 0), ("Pants", 1)]

    def test_duplicate_value_is_conflict(self, db_session):
        catalog_service.create_category("color", "Red")
        with pytest.raises(CategoryError) as exc_info:
            catalog_service.create_category("color", "red")
        assert exc_info.value.status_code == 409

    def test_unknown_type(self, db_session):
        with pytest.raises(CategoryError) as exc_info:
            catalog_service.create_category("flavor", "Mint")
        assert exc_info.value.status_code == 400
        assert "allowed" in exc_info.value.details

    def test_delete_renumbers_survivors(self, db_session):
        shirt = catalog_service.create_category("type", "Shirt")
        pants = catalog_service.create_category("type", "Pants")
        catalog_service.create_category("type", "Hat")

        catalog_service.delete_category(pants.id)
        assert orders("type") == [("Shirt", 0), ("Hat", 1)]

        with pytest.raises(CategoryError) as exc_info:
            catalog_service.delete_category(pants.id)
        assert exc_info.value.status_code == 409
        assert db.session.get(Category, shirt.id).is_active

    def test_deleted_value_can_be_recreated(self, db_session):
        red = catalog_service.create_category("color", "Red")
        catalog_service.delete_category(red.id)
        again = catalog_service.create_category("color", "Red")
        assert again.id != red.id
        assert again.display_order == 0

    def test_reorder(self, db_session):
        shirt = catalog_service.create_category("type", "Shirt")
        hat = catalog_service.create_category("type", "Hat")

        catalog_service.reorder_categories("type", [hat.id, shirt.id])
        assert orders("type") == [("Hat", 0), ("Shirt", 1)]

    def test_reorder_rejects_foreign_ids(self, db_session):
        shirt = catalog_service.create_category("type", "Shirt")
        red = catalog_service.create_category("color", "Red")

        with pytest.raises(CategoryError) as exc_info:
            catalog_service.reorder_categories("type", [shirt.id, red.id])
        assert exc_info.value.details["missing_ids"] == [red.id]

    def test_update_rejects_blank_value_without_changes(self, db_session):
        shirt = catalog_service.create_category("type", "Shirt")
        with pytest.raises(CategoryError):
            catalog_service.update_category(shirt.id, {"value": "  ", "display_order": 3})
        assert db.session.get(Category, shirt.id).display_order == 0


# =============================================================================
# ABBREVIATIONS / SEEDING
# =============================================================================


class TestAbbreviations:

    def test_generated_on_create(self, db_session):
        assert catalog_service.create_category("color", "Black").abbreviation == "BK"
        assert catalog_service.create_category("styleGroup", "Long Sleeve").abbreviation == "LS"

    def test_unique_within_type(self, db_session):
        first = catalog_service.create_category("color", "Bark")
        second = catalog_service.create_category("color", "Bamboo")
        assert first.abbreviation == "BA"
        assert second.abbreviation == "BA1"

    def test_backfill(self, db_session):
        db.session.add(Category(type="size", value="Medium", display_order=0))
        db.session.commit()

        updated = catalog_service.backfill_abbreviations()
        assert [c.abbreviation for c in updated] == ["M"]
        assert catalog_service.backfill_abbreviations() == []

    def test_seed_is_idempotent(self, db_session):
        created = catalog_service.seed_defaults()
        assert created == sum(len(v) for v in catalog_service.DEFAULT_CATEGORIES.values())
        assert catalog_service.seed_defaults() == 0

        grouped = catalog_service.grouped_categories()
        assert grouped["type"][0] == "Shirt"
        assert "Multi-Color" in grouped["color"]


# =============================================================================
# IMPORT / EXPORT
# =============================================================================


class TestImportExport:

    def test_excel_round_trip(self, db_session):
        catalog_service.create_category("type", "Shirt")
        catalog_service.create_category("color", "Red")
        catalog_service.create_category("color", "Blue")

        content = catalog_service.export_workbook()
        wb = load_workbook(io.BytesIO(content))
        assert wb.sheetnames == ["Type", "Color", "Size", "Design", "GroupType", "StyleGroup"]
        assert [row for row in wb["Color"].values] == [
            ("Value", "Display Order", "Is Active"),
            ("Red", 0, "Yes"),
            ("Blue", 1, "Yes"),
        ]

        for cat in catalog_service.list_categories():
            catalog_service.delete_category(cat.id)

        result = catalog_service.import_rows(catalog_service.rows_from_workbook(io.BytesIO(content)))
        assert result["successCount"] == 3
        assert result["errorCount"] == 0
        assert orders("color") == [("Red", 0), ("Blue", 1)]

    def test_csv_import_counts(self, db_session):
        catalog_service.create_category("color", "Red")
        text = "type,value\ncolor,red\ncolor,Teal\nflavor,Mint\nsize,\n"

        result = catalog_service.import_rows(catalog_service.rows_from_csv(text))
        assert result["successCount"] == 1
        assert result["skippedCount"] == 1
        assert result["errorCount"] == 2
        assert result["totalErrors"] == 2
        assert result["errors"][0].startswith("Row 3")


# =============================================================================
# API
# =============================================================================


class TestCategoryRoutes:

    def test_anyone_signed_in_can_read(self, client, associate_headers):
        catalog_service.create_category("type", "Shirt")
        resp = client.get("/api/categories?grouped=true", headers=associate_headers)
        assert resp.status_code == 200
        assert resp.json["type"] == ["Shirt"]

        resp = client.get("/api/categories/type", headers=associate_headers)
        assert resp.json[0]["displayOrder"] == 0

    def test_unknown_type_route(self, client, associate_headers):
        resp = client.get("/api/categories/flavor", headers=associate_headers)
        assert resp.status_code == 400

    def test_associate_cannot_edit(self, client, associate_headers):
        resp = client.post("/api/categories", json={"type": "color", "value": "Red"}, headers=associate_headers)
        assert resp.status_code == 403

    def test_admin_create_update_delete(self, client, admin_headers):
        resp = client.post("/api/categories", json={"type": "color", "value": "Red"}, headers=admin_headers)
        assert resp.status_code == 201
        category_id = resp.json["id"]
        assert resp.json["abbreviation"] == "RD"

        resp = client.put(f"/api/categories/{category_id}", json={"value": "Scarlet"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["value"] == "Scarlet"

        resp = client.put(f"/api/categories/{category_id}", json={"color": "x"}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.delete(f"/api/categories/{category_id}", headers=admin_headers)
        assert resp.status_code == 200
        resp = client.delete(f"/api/categories/{category_id}", headers=admin_headers)
        assert resp.status_code == 409

    def test_reorder_route(self, client, admin_headers):
        shirt = catalog_service.create_category("type", "Shirt")
        hat = catalog_service.create_category("type", "Hat")
        resp = client.post(
            "/api/categories/reorder",
            json={"type": "type", "categoryIds": [hat.id, shirt.id]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert [c["value"] for c in resp.json] == ["Hat", "Shirt"]

    def test_export_route(self, client, admin_headers):
        resp = client.get("/api/categories/export/excel", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.mimetype == XLSX_MIMETYPE

    def test_csv_upload(self, client, admin_headers):
        data = {"categoryFile": (io.BytesIO(b"type,value\ncolor,Teal\n"), "categories.csv")}
        resp = client.post(
            "/api/categories/import/file",
            data=data,
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        assert resp.json["successCount"] == 1

    def test_upload_requires_file(self, client, admin_headers):
        resp = client.post(
            "/api/categories/import/file",
            data={},
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400
