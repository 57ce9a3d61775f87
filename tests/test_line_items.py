"""Unit tests for line-item keys, colour resolution and removal arithmetic."""

import pytest
from bson import ObjectId

from errors import ProductNotInOrderError, QuantityExceededError
from orders import compute_total, matches, remove_quantity, resolve_color
from schemas import LineItemKey, RemoveLineItemRequest

P1 = ObjectId()
P2 = ObjectId()


def item(pid, qty, color):
    return {"productId": pid, "quantity": qty, "color": {"colorName": color, "image": None}}


class TestLineItemKey:
    def test_parse_and_render(self):
        key = LineItemKey.parse(f"{P1}|Red")

        assert key == LineItemKey(str(P1), "Red")
        assert str(key) == f"{P1}|Red"

    def test_colour_containing_separator_is_kept(self):
        key = LineItemKey.parse(f"{P1}|Black|Gold")

        assert key.product_id == str(P1)
        assert key.color_name == "Black|Gold"

    @pytest.mark.parametrize("raw", ["", "abc", "|Red", f"{P1}|"])
    def test_malformed(self, raw):
        with pytest.raises(ValueError):
            LineItemKey.parse(raw)

    def test_request_accepts_structured_key(self):
        req = RemoveLineItemRequest.model_validate(
            {"orderId": "x", "productId": str(P1), "colorName": "Red", "quantityToRemove": 1}
        )

        assert req.key == LineItemKey(str(P1), "Red")

    def test_request_without_key_is_rejected(self):
        with pytest.raises(ValueError):
            RemoveLineItemRequest.model_validate({"orderId": "x", "quantityToRemove": 1})


class TestResolveColor:
    product = {
        "coverImage": "/cover.png",
        "colors": [{"colorName": "Green", "image": "/green.png"}, {"colorName": "Red", "image": "/red.png"}],
    }

    def test_caller_colour_wins(self):
        color = resolve_color({"colorName": "Red", "image": "/mine.png"}, self.product)

        assert color.color_name == "Red"
        assert color.image == "/mine.png"

    def test_first_product_colour(self):
        assert resolve_color(None, self.product).color_name == "Green"
        assert resolve_color({"colorName": "", "image": "/x.png"}, self.product).color_name == "Green"

    def test_synthesised_default(self):
        color = resolve_color(None, {"coverImage": "/cover.png", "colors": []})

        assert color.color_name == "Default"
        assert color.image == "/cover.png"


class TestRemoveQuantity:
    def test_full_removal_drops_item(self):
        items = [item(P1, 3, "Red"), item(P1, 2, "Blue")]

        result = remove_quantity(items, LineItemKey(str(P1), "Red"), 3)

        assert result == [item(P1, 2, "Blue")]

    def test_partial_removal_keeps_order(self):
        items = [item(P2, 1, "Red"), item(P1, 3, "Red"), item(P1, 2, "Blue")]

        result = remove_quantity(items, LineItemKey(str(P1), "Red"), 1)

        assert result == [item(P2, 1, "Red"), item(P1, 2, "Red"), item(P1, 2, "Blue")]
        assert items[1]["quantity"] == 3

    def test_other_colour_untouched(self):
        items = [item(P1, 3, "Red"), item(P1, 2, "Blue")]

        result = remove_quantity(items, LineItemKey(str(P1), "Blue"), 2)

        assert result == [item(P1, 3, "Red")]

    def test_over_removal(self):
        with pytest.raises(QuantityExceededError):
            remove_quantity([item(P1, 3, "Red")], LineItemKey(str(P1), "Red"), 5)

    def test_no_match(self):
        with pytest.raises(ProductNotInOrderError):
            remove_quantity([item(P1, 3, "Red")], LineItemKey(str(P1), "Green"), 1)
        with pytest.raises(ProductNotInOrderError):
            remove_quantity([item(P1, 3, "Red")], LineItemKey(str(P2), "Red"), 1)


class TestComputeTotal:
    def test_uses_current_prices(self):
        items = [item(P1, 2, "Red"), item(P2, 3, "Red")]
        products = {str(P1): {"newPrice": 10}, str(P2): {"newPrice": 2.5}}

        assert compute_total(items, products) == 27.5

    def test_missing_product_counts_zero(self):
        assert compute_total([item(P1, 2, "Red")], {}) == 0


def test_matches_expanded_reference():
    expanded = {"productId": {"id": str(P1), "title": "Jebba"}, "color": {"colorName": "Red"}}

    assert matches(expanded, LineItemKey(str(P1), "Red"))
    assert not matches({"productId": None, "color": {"colorName": "Red"}}, LineItemKey(str(P1), "Red"))
