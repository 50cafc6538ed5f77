import json

import pytest

from admin import app as flask_app
from bulkedit.categories import CategoryLookup, TaxonomyCache
from bulkedit.gateways.local import LocalCatalogGateway
from bulkedit.service import BulkEditService

PRODUCTS = [
    {
        "id": "101",
        "title": "Red Shirt",
        "description": "Soft cotton",
        "vendor": "acme",
        "status": "ACTIVE",
        "variants": [{"id": "1011", "price": "20.00"}],
    },
    {
        "id": "102",
        "title": "Hat",
        "description": "",
        "vendor": "acme",
        "status": "ACTIVE",
        "variants": [{"id": "1021", "price": "5.00"}],
    },
    {
        "id": "103",
        "title": "Blue Shirt",
        "description": "Linen",
        "vendor": "Other",
        "status": "ACTIVE",
        "variants": [],
    },
]

TAXONOMY = [
    {"id": "gid://shopify/TaxonomyCategory/aa", "fullName": "Apparel & Accessories"},
    {"id": "gid://shopify/TaxonomyCategory/aa-1", "fullName": "Apparel & Accessories > Clothing"},
]


@pytest.fixture(autouse=True)
def configure_test_env(tmp_path, monkeypatch):
    flask_app.app.config.update(TESTING=True)
    talisman = flask_app.app.extensions.get("talisman")
    if talisman:
        talisman.force_https = False

    product_file = tmp_path / "products.json"
    product_file.write_text(json.dumps(PRODUCTS, indent=2), encoding="utf-8")
    taxonomy_file = tmp_path / "taxonomy.json"
    taxonomy_file.write_text(json.dumps(TAXONOMY), encoding="utf-8")

    gateway = LocalCatalogGateway(product_file, backups=1, taxonomy_path=taxonomy_file)
    service = BulkEditService(gateway, categories=CategoryLookup(gateway.list_categories, TaxonomyCache()))
    monkeypatch.setattr(flask_app, "_SERVICE", service)
    yield product_file


@pytest.fixture
def client():
    return flask_app.app.test_client()
