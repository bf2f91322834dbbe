"""
Unit tests for listing management and duplication
"""
from unittest.mock import MagicMock, patch

import pytest

from painel_ml.services.listing_tools import (
    AUCTION_MESSAGE,
    BIDS_MESSAGE,
    ListingManagementService,
    build_copy_payload,
    copy_title,
    filter_attributes,
    merge_first_variation,
)
from painel_ml.utils.exceptions import MercadoLibreAPIError


ACTIVE_ITEM = {
    "id": "MLB1",
    "title": "Caneca Personalizada",
    "category_id": "MLB1234",
    "price": 49.9,
    "currency_id": "BRL",
    "available_quantity": 0,
    "buying_mode": "buy_it_now",
    "listing_type_id": "gold_special",
    "condition": "new",
    "status": "active",
    "pictures": [{"secure_url": f"https://img/{i}.jpg"} for i in range(12)],
    "attributes": [
        {"id": "BRAND", "value_name": "Genérica"},
        {"id": "NET_WEIGHT", "value_name": "300 g"},
        {"id": "COLOR", "value_id": "52049", "value_name": "Branco"},
        {"id": "PACK_COUNT", "value_name": "1"},
    ],
    "shipping": {"mode": "me2", "free_shipping": True, "local_pick_up": False},
}


@pytest.fixture
def meli():
    return MagicMock()


@pytest.fixture
def service(db_session, account, meli):
    service = ListingManagementService(db_session, account.id, client=meli)
    service.items = MagicMock()
    return service


class TestCopyHelpers:
    def test_filter_attributes(self):
        filtered = filter_attributes(ACTIVE_ITEM["attributes"] + [{"id": "SALE_FORMAT", "value_id": "1"}])

        ids = [a["id"] for a in filtered]
        assert ids == ["BRAND", "COLOR", "SALE_FORMAT", "UNITS_PER_PACK"]
        assert filtered[1] == {"id": "COLOR", "value_id": "52049", "value_name": "Branco"}

    def test_build_copy_payload(self):
        payload = build_copy_payload(ACTIVE_ITEM)

        assert payload["available_quantity"] == 1
        assert len(payload["pictures"]) == 10
        assert payload["pictures"][0] == {"source": "https://img/0.jpg"}
        assert payload["shipping"] == {"mode": "me2", "free_shipping": True, "local_pick_up": False}
        assert "id" not in payload

    @pytest.mark.parametrize("modifications,expected", [
        ({}, "Caneca - Cópia"),
        ({"titleSuffix": "Azul"}, "Caneca Azul"),
        ({"titlePrefix": "Kit"}, "Kit Caneca"),
        ({"titleReplace": {"from": "Caneca", "to": "Xícara"}}, "Xícara"),
    ])
    def test_copy_title(self, modifications, expected):
        assert copy_title("Caneca", modifications, 0, 1) == expected

    def test_copy_title_numbers_and_truncates(self):
        assert copy_title("Caneca", {}, 1, 3) == "Caneca - Cópia 2"
        assert len(copy_title("x" * 80, {}, 0, 1)) == 60

    def test_merge_first_variation(self):
        item = dict(ACTIVE_ITEM, variations=[{
            "price": 59.9,
            "available_quantity": 3,
            "attribute_combinations": [{"id": "SIZE", "value_name": "M"}],
        }])

        merged = merge_first_variation(item)

        assert merged["price"] == 59.9
        assert merged["available_quantity"] == 3
        assert {"id": "SIZE", "value_id": None, "value_name": "M"} in merged["attributes"]
        assert len(item["attributes"]) == 4


class TestDuplicate:
    @patch("painel_ml.services.listing_tools.time.sleep")
    def test_creates_copies(self, mock_sleep, service, meli):
        meli.get_item.return_value = ACTIVE_ITEM
        meli.create_item.side_effect = [
            {"id": "MLB2", "title": "c1", "permalink": "p2"},
            {"id": "MLB3", "title": "c2", "permalink": "p3"},
        ]

        result = service.duplicate_item("MLB1", {"quantity": 2, "titleSuffix": "Novo"})

        assert result["success"] is True
        assert result["created"] == 2
        assert result["failed"] == 0
        assert [i["itemId"] for i in result["items"]] == ["MLB2", "MLB3"]
        titles = [c.args[0]["title"] for c in meli.create_item.call_args_list]
        assert titles == ["Caneca Personalizada Novo 1", "Caneca Personalizada Novo 2"]
        assert service.items.sync_item.call_count == 2
        mock_sleep.assert_called_once()

    def test_refuses_variations(self, service, meli):
        meli.get_item.return_value = dict(ACTIVE_ITEM, variations=[{}, {}])

        result = service.duplicate_item("MLB1", {})

        assert result["success"] is False
        assert result["reason"] == "HAS_VARIATIONS"
        assert result["variationsCount"] == 2
        meli.create_item.assert_not_called()

    def test_ignore_variations(self, service, meli):
        meli.get_item.return_value = dict(ACTIVE_ITEM, variations=[{"price": 10.0, "available_quantity": 2}])
        meli.create_item.return_value = {"id": "MLB9"}

        result = service.duplicate_item("MLB1", {"ignoreVariations": True})

        assert result["success"] is True
        assert meli.create_item.call_args.args[0]["price"] == 10.0

    def test_refuses_inactive(self, service, meli):
        meli.get_item.return_value = dict(ACTIVE_ITEM, status="paused")

        result = service.duplicate_item("MLB1", {})

        assert result["reason"] == "NOT_ACTIVE"
        assert result["status"] == "paused"

    def test_partial_failure(self, service, meli):
        meli.get_item.return_value = ACTIVE_ITEM
        meli.create_item.side_effect = MercadoLibreAPIError(
            "bad", status_code=400, response_data={"message": "title invalid"})

        result = service.duplicate_item("MLB1", {})

        assert result["success"] is False
        assert result["errors"][0]["error"] == "title invalid"

    def test_preview(self, service, meli):
        meli.get_item.return_value = ACTIVE_ITEM

        result = service.preview_duplicate("MLB1")

        assert result["originalItem"]["hasVariations"] == 0
        assert result["dataToSend"]["title"] == "Caneca Personalizada - Preview"


class TestUpdates:
    def test_update_stock(self, service, meli):
        result = service.update_stock("MLB1", 7)

        assert result == {"success": True, "itemId": "MLB1", "newQuantity": 7}
        meli.update_stock.assert_called_once_with("MLB1", 7)
        service.items.set_local_values.assert_called_once_with("MLB1", available=7)

    def test_update_price_refuses_auction(self, service, meli):
        meli.get_item.return_value = {"listing_type_id": "auction", "status": "active"}

        result = service.update_price("MLB1", 10.0)

        assert result["success"] is False
        assert result["error"] == AUCTION_MESSAGE
        meli.update_price.assert_not_called()

    def test_update_price_bids_error(self, service, meli):
        meli.get_item.return_value = {"listing_type_id": "gold_special"}
        meli.update_price.side_effect = MercadoLibreAPIError(
            "bad", status_code=400,
            response_data={"cause": [{"code": "item.price.not_modifiable", "message": "has_bids"}]})

        result = service.update_price("MLB1", 10.0)

        assert result["error"] == BIDS_MESSAGE
        assert result["errorCode"] == "item.price.not_modifiable"

    def test_bulk_counts(self, service, meli):
        meli.update_price.side_effect = [None, MercadoLibreAPIError("bad", status_code=400)]

        result = service.update_price_bulk([
            {"itemId": "MLB1", "price": 10.0},
            {"itemId": "MLB2", "price": 20.0},
        ])

        assert result["total"] == 2
        assert result["successful"] == 1
        assert result["failed"] == 1
        assert result["results"][1]["success"] is False
